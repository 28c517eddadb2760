"""
FastAPI dependency providers
Picks the Supabase or local SQL backend and builds per-request services
"""
from typing import Optional

from fastapi import Depends

from auth_middleware import AuthContext, verify_token
from config import get_settings
from services.job_store import JobStore, SqlJobStore, SupabaseJobStore
from services.metrics_service import MetricsService
from services.orchestrator import AnalysisOrchestrator
from services.record_store import RecordStore, SqlRecordStore, SupabaseRecordStore
from supabase_client import get_supabase, get_user_client


def get_job_store(auth: AuthContext = Depends(verify_token)) -> JobStore:
    if get_settings().use_supabase:
        return SupabaseJobStore(get_user_client(auth.access_token))
    return SqlJobStore()


def get_record_store(auth: AuthContext = Depends(verify_token)) -> RecordStore:
    if get_settings().use_supabase:
        return SupabaseRecordStore(get_user_client(auth.access_token))
    return SqlRecordStore()


def get_orchestrator(
    auth: AuthContext = Depends(verify_token),
    store: JobStore = Depends(get_job_store),
) -> AnalysisOrchestrator:
    return AnalysisOrchestrator(auth, store)


def get_metrics_service() -> Optional[MetricsService]:
    """Metrics history lives in Supabase only"""
    if not get_settings().use_supabase:
        return None
    return MetricsService(get_supabase())

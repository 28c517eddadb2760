"""
Business Logic Services for Shorebreak Analytics

This package provides:
- Job persistence (Supabase / local SQL)
- Workflow triggering and job polling
- Analysis orchestration
- Result normalization and report export
- Google metrics tracking
"""

from .job_store import JobStore, SqlJobStore, SupabaseJobStore, StoreError
from .record_store import RecordStore, SqlRecordStore, SupabaseRecordStore
from .workflow_trigger import WorkflowTrigger, TriggerResult
from .job_poller import JobPoller, PollOutcome
from .orchestrator import AnalysisOrchestrator
from .export_service import ExportService
from .metrics_service import MetricsService

__all__ = [
    # Persistence
    "JobStore",
    "SqlJobStore",
    "SupabaseJobStore",
    "StoreError",
    "RecordStore",
    "SqlRecordStore",
    "SupabaseRecordStore",

    # Job protocol
    "WorkflowTrigger",
    "TriggerResult",
    "JobPoller",
    "PollOutcome",
    "AnalysisOrchestrator",

    # Reports & metrics
    "ExportService",
    "MetricsService",
]

"""
User Routes
Profile, settings, Google metrics, dashboard stats and GDPR data rights
"""
from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import datetime, timezone
from supabase_client import get_supabase
from auth_middleware import verify_token, AuthContext
from dependencies import get_metrics_service
from models.inputs import is_valid_google_maps_url, is_valid_url
from services.metrics_service import MetricsService
import logging

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/users", tags=["users"])


# ============================================
# REQUEST/RESPONSE MODELS
# ============================================

class UpdateProfileRequest(BaseModel):
    full_name: Optional[str] = None
    google_maps_url: Optional[str] = None
    website_url: Optional[str] = None


class UpdateSettingsRequest(BaseModel):
    notifications_enabled: Optional[bool] = None
    weekly_digest: Optional[bool] = None
    data_retention_consent: Optional[bool] = None
    marketing_consent: Optional[bool] = None


class MetricsRequest(BaseModel):
    google_rating: float = Field(ge=0, le=5)
    review_count: int = Field(ge=0)


class MetricsResponse(BaseModel):
    id: str
    user_id: str
    google_rating: Optional[float] = None
    review_count: Optional[int] = None
    recorded_at: datetime


# ============================================
# HELPER FUNCTIONS
# ============================================

def _require_metrics(metrics: Optional[MetricsService]) -> MetricsService:
    if metrics is None:
        raise HTTPException(status_code=503, detail="Metrics history requires Supabase")
    return metrics


# ============================================
# ROUTES
# ============================================

@router.get("/me")
async def get_profile(auth: AuthContext = Depends(verify_token)):
    """Get the current user's profile"""
    supabase = get_supabase()

    try:
        result = supabase.table("users").select("*").eq("id", auth.user_id).limit(1).execute()
        if not result.data:
            raise HTTPException(status_code=404, detail="User not found")
        return result.data[0]

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Failed to get profile: {e}")
        raise HTTPException(status_code=500, detail="Failed to get profile")


@router.patch("/me")
async def update_profile(
    request: UpdateProfileRequest,
    auth: AuthContext = Depends(verify_token)
):
    """Update name and business URLs"""
    updates = request.model_dump(exclude_none=True)
    if not updates:
        raise HTTPException(status_code=400, detail="Nothing to update")

    if updates.get("google_maps_url") and not is_valid_google_maps_url(updates["google_maps_url"]):
        raise HTTPException(status_code=400, detail="Please enter a valid Google Maps URL")
    if updates.get("website_url") and not is_valid_url(updates["website_url"]):
        raise HTTPException(status_code=400, detail="Please enter a valid website URL")

    supabase = get_supabase()

    try:
        updates["updated_at"] = datetime.now(timezone.utc).isoformat()
        result = supabase.table("users").update(updates).eq("id", auth.user_id).execute()
        if not result.data:
            raise HTTPException(status_code=404, detail="User not found")

        logger.info(f"✓ Profile updated for {auth.email}")
        return result.data[0]

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Failed to update profile: {e}")
        raise HTTPException(status_code=500, detail="Failed to update profile")


@router.get("/me/settings")
async def get_user_settings(auth: AuthContext = Depends(verify_token)):
    """Get notification and consent settings"""
    supabase = get_supabase()

    try:
        result = supabase.table("user_settings").select("*").eq("user_id", auth.user_id).limit(1).execute()
        if not result.data:
            raise HTTPException(status_code=404, detail="Settings not found")
        return result.data[0]

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Failed to get settings: {e}")
        raise HTTPException(status_code=500, detail="Failed to get settings")


@router.patch("/me/settings")
async def update_settings(
    request: UpdateSettingsRequest,
    auth: AuthContext = Depends(verify_token)
):
    """Update settings; consent changes are timestamped"""
    updates = request.model_dump(exclude_none=True)
    if not updates:
        raise HTTPException(status_code=400, detail="Nothing to update")

    now = datetime.now(timezone.utc).isoformat()
    for consent in ("data_retention_consent", "marketing_consent"):
        if consent in updates:
            updates[f"{consent}_date"] = now if updates[consent] else None
    updates["updated_at"] = now

    supabase = get_supabase()

    try:
        result = supabase.table("user_settings").update(updates).eq("user_id", auth.user_id).execute()
        if not result.data:
            raise HTTPException(status_code=404, detail="Settings not found")
        return result.data[0]

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Failed to update settings: {e}")
        raise HTTPException(status_code=500, detail="Failed to update settings")


@router.get("/me/metrics", response_model=List[MetricsResponse])
async def get_metrics_history(
    auth: AuthContext = Depends(verify_token),
    metrics: Optional[MetricsService] = Depends(get_metrics_service),
):
    """Google rating/review history, newest first"""
    metrics = _require_metrics(metrics)
    try:
        return metrics.history(auth.user_id)
    except Exception as e:
        logger.error(f"Failed to load metrics: {e}")
        raise HTTPException(status_code=500, detail="Failed to load metrics")


@router.post("/me/metrics", response_model=MetricsResponse)
async def add_metrics(
    request: MetricsRequest,
    auth: AuthContext = Depends(verify_token),
    metrics: Optional[MetricsService] = Depends(get_metrics_service),
):
    """Record a Google rating/review count manually"""
    metrics = _require_metrics(metrics)
    try:
        row = metrics.record(auth.user_id, request.google_rating, request.review_count)
    except Exception as e:
        logger.error(f"Failed to save metrics: {e}")
        raise HTTPException(status_code=500, detail="Failed to save metrics")

    if not row:
        raise HTTPException(status_code=500, detail="Failed to save metrics")
    return row


@router.get("/me/dashboard")
async def get_dashboard_stats(auth: AuthContext = Depends(verify_token)):
    """Dashboard figures: rating evolution, analysis count, last SEO score"""
    supabase = get_supabase()

    try:
        result = supabase.rpc("get_user_dashboard_stats", {"p_user_id": auth.user_id}).execute()
        return result.data

    except Exception as e:
        logger.error(f"Failed to load dashboard stats: {e}")
        raise HTTPException(status_code=500, detail="Failed to load dashboard stats")


@router.get("/me/export")
async def export_user_data(auth: AuthContext = Depends(verify_token)):
    """GDPR export of everything stored about the user"""
    supabase = get_supabase()

    try:
        result = supabase.rpc("export_user_data", {"p_user_id": auth.user_id}).execute()
        logger.info(f"✓ Data export generated for {auth.email}")
        return result.data

    except Exception as e:
        logger.error(f"Data export failed: {e}")
        raise HTTPException(status_code=500, detail="Data export failed")


@router.delete("/me")
async def delete_account(auth: AuthContext = Depends(verify_token)):
    """Delete the account and all its data"""
    supabase = get_supabase()

    try:
        supabase.rpc("delete_user_account", {"p_user_id": auth.user_id}).execute()
        logger.info(f"✓ Account {auth.email} deleted")
        return {"message": "Account deleted successfully"}

    except Exception as e:
        logger.error(f"Account deletion failed: {e}")
        raise HTTPException(status_code=500, detail="Account deletion failed")

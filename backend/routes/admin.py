"""
Admin Routes
Platform statistics, user management and metrics refresh (admin only)
"""
from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from typing import Literal, Optional
from supabase_client import get_supabase
from auth_middleware import verify_admin, AuthContext
from dependencies import get_metrics_service
from services.metrics_service import MetricsService
import logging

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/admin", tags=["admin"])


class UpdateRoleRequest(BaseModel):
    role: Literal["admin", "user"]


@router.get("/stats")
async def get_admin_stats(auth: AuthContext = Depends(verify_admin)):
    """Users, analyses, tokens and weekly activity"""
    supabase = get_supabase()

    try:
        result = supabase.rpc("get_admin_stats").execute()
        return result.data

    except Exception as e:
        logger.error(f"Failed to get admin stats: {e}")
        raise HTTPException(status_code=500, detail="Failed to get statistics")


@router.get("/users")
async def list_users(auth: AuthContext = Depends(verify_admin)):
    """All users, newest first"""
    supabase = get_supabase()

    try:
        result = supabase.table("users").select("*").order("created_at", desc=True).execute()
        return result.data or []

    except Exception as e:
        logger.error(f"Failed to list users: {e}")
        raise HTTPException(status_code=500, detail="Failed to list users")


@router.patch("/users/{user_id}/role")
async def update_user_role(
    user_id: str,
    request: UpdateRoleRequest,
    auth: AuthContext = Depends(verify_admin)
):
    """Promote or demote a user"""
    if user_id == auth.user_id and request.role != "admin":
        raise HTTPException(status_code=400, detail="Cannot remove your own admin role")

    supabase = get_supabase()

    try:
        result = supabase.table("users").update({"role": request.role}).eq("id", user_id).execute()
        if not result.data:
            raise HTTPException(status_code=404, detail="User not found")

        logger.info(f"✓ User {user_id} is now {request.role} (changed by {auth.email})")
        return result.data[0]

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Failed to update role: {e}")
        raise HTTPException(status_code=500, detail="Failed to update role")


@router.delete("/users/{user_id}")
async def delete_user(
    user_id: str,
    auth: AuthContext = Depends(verify_admin)
):
    """Delete a user account (cascade removes their data)"""
    if user_id == auth.user_id:
        raise HTTPException(status_code=400, detail="Cannot delete yourself")

    supabase = get_supabase()

    try:
        user_result = supabase.table("users").select("id").eq("id", user_id).limit(1).execute()
        if not user_result.data:
            raise HTTPException(status_code=404, detail="User not found")

        # Delete from auth.users (cascade will handle users table)
        supabase.auth.admin.delete_user(user_id)

        logger.info(f"✓ User {user_id} deleted by {auth.email}")
        return {"message": "User deleted successfully"}

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Failed to delete user: {e}")
        raise HTTPException(status_code=500, detail="Failed to delete user")


@router.post("/metrics/refresh")
async def refresh_google_metrics(
    auth: AuthContext = Depends(verify_admin),
    metrics: Optional[MetricsService] = Depends(get_metrics_service),
):
    """Scrape every user's Google Maps listing and record the figures"""
    if metrics is None:
        raise HTTPException(status_code=503, detail="Metrics history requires Supabase")

    try:
        results = await metrics.refresh_all()
    except Exception as e:
        logger.error(f"Metrics refresh failed: {e}")
        raise HTTPException(status_code=500, detail=f"Metrics refresh failed: {str(e)}")

    logger.info(f"✓ Metrics refresh by {auth.email}: {len(results)} users processed")
    return {
        "success": True,
        "message": f"Processed {len(results)} users",
        "results": results,
    }

"""
Authentication Routes
Handles signup, login, password reset and the current user's profile
"""
from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, EmailStr
from typing import Optional
from supabase_client import get_supabase
from auth_middleware import verify_token, AuthContext
import logging

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/auth", tags=["auth"])


# ============================================
# REQUEST/RESPONSE MODELS
# ============================================

class SignupRequest(BaseModel):
    email: EmailStr
    password: str
    full_name: str
    google_maps_url: Optional[str] = None
    website_url: Optional[str] = None
    data_retention_consent: bool = False


class SignupResponse(BaseModel):
    user_id: str
    email: str
    message: str


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class LoginResponse(BaseModel):
    access_token: str
    refresh_token: str
    user: dict


class ForgotPasswordRequest(BaseModel):
    email: EmailStr
    redirect_to: Optional[str] = None


class UserProfileResponse(BaseModel):
    id: str
    email: str
    full_name: Optional[str] = None
    role: str
    google_maps_url: Optional[str] = None
    website_url: Optional[str] = None
    created_at: str


# ============================================
# ROUTES
# ============================================

@router.post("/signup", response_model=SignupResponse)
async def signup(request: SignupRequest):
    """
    Sign up a new user.

    Profile fields travel as user metadata; the database trigger on
    auth.users creates the users and user_settings rows from them.
    """
    if not request.data_retention_consent:
        raise HTTPException(status_code=400, detail="Data retention consent is required")

    supabase = get_supabase()

    try:
        existing = supabase.table("users").select("email").eq("email", request.email).execute()
        if existing.data:
            raise HTTPException(status_code=400, detail="User already exists")

        auth_result = supabase.auth.sign_up({
            "email": request.email,
            "password": request.password,
            "options": {
                "data": {
                    "full_name": request.full_name,
                    "google_maps_url": request.google_maps_url or None,
                    "website_url": request.website_url or None,
                    "data_retention_consent": request.data_retention_consent,
                }
            }
        })

        logger.info(f"✓ New user {request.email} signed up")

        return {
            "user_id": auth_result.user.id,
            "email": request.email,
            "message": "Account created successfully"
        }

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Signup failed: {e}")
        raise HTTPException(status_code=500, detail=f"Signup failed: {str(e)}")


@router.post("/login", response_model=LoginResponse)
async def login(request: LoginRequest):
    """Login existing user"""
    supabase = get_supabase()

    try:
        auth_result = supabase.auth.sign_in_with_password({
            "email": request.email,
            "password": request.password
        })

        logger.info(f"✓ User {request.email} logged in")

        return {
            "access_token": auth_result.session.access_token,
            "refresh_token": auth_result.session.refresh_token,
            "user": {
                "id": auth_result.user.id,
                "email": auth_result.user.email,
                "last_sign_in_at": auth_result.user.last_sign_in_at
            }
        }

    except Exception as e:
        logger.error(f"Login failed: {e}")
        raise HTTPException(status_code=401, detail="Invalid credentials")


@router.post("/forgot-password")
async def forgot_password(request: ForgotPasswordRequest):
    """Send a password reset e-mail"""
    supabase = get_supabase()

    try:
        options = {"redirect_to": request.redirect_to} if request.redirect_to else {}
        supabase.auth.reset_password_for_email(request.email, options)
    except Exception as e:
        # Same answer whether or not the address exists
        logger.warning(f"Password reset request for {request.email} failed: {e}")

    return {"message": "If an account exists for this e-mail, a reset link has been sent"}


@router.post("/logout")
async def logout(auth: AuthContext = Depends(verify_token)):
    """Logout current user (revokes the session's refresh tokens)"""
    supabase = get_supabase()

    try:
        supabase.auth.admin.sign_out(auth.access_token)
        logger.info(f"✓ User {auth.email} logged out")
        return {"message": "Logged out successfully"}

    except Exception as e:
        logger.error(f"Logout failed: {e}")
        raise HTTPException(status_code=500, detail="Logout failed")


@router.get("/me", response_model=UserProfileResponse)
async def get_current_user(auth: AuthContext = Depends(verify_token)):
    """Get current user profile"""
    supabase = get_supabase()

    try:
        result = (
            supabase.table("users")
            .select("*")
            .eq("id", auth.user_id)
            .limit(1)
            .execute()
        )

        if not result.data:
            raise HTTPException(status_code=404, detail="User not found")

        return result.data[0]

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Failed to get user profile: {e}")
        raise HTTPException(status_code=500, detail="Failed to get profile")


@router.post("/refresh")
async def refresh_token(refresh_token: str):
    """Refresh access token"""
    supabase = get_supabase()

    try:
        auth_result = supabase.auth.refresh_session(refresh_token)

        return {
            "access_token": auth_result.session.access_token,
            "refresh_token": auth_result.session.refresh_token
        }

    except Exception as e:
        logger.error(f"Token refresh failed: {e}")
        raise HTTPException(status_code=401, detail="Invalid refresh token")

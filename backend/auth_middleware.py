"""
Authentication Middleware
Validates Supabase JWT tokens and builds the explicit user session
"""
from typing import Optional, Dict, Any
import jwt
from fastapi import HTTPException, Security, Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from config import get_settings
from supabase_client import get_supabase
import logging

logger = logging.getLogger(__name__)

security = HTTPBearer()


class AuthContext:
    """Authenticated user session, passed explicitly to services"""

    def __init__(self, user_id: str, email: str, role: str = "user", access_token: Optional[str] = None):
        self.user_id = user_id
        self.email = email
        self.role = role
        self.access_token = access_token

    def is_admin(self) -> bool:
        """Check if user is admin"""
        return self.role == "admin"

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary (token excluded)"""
        return {
            "user_id": self.user_id,
            "email": self.email,
            "role": self.role,
        }

    def __repr__(self):
        return f"<AuthContext {self.email} ({self.role})>"


def _lookup_role(user_id: str, payload: Dict[str, Any]) -> str:
    """Role comes from the users table when Supabase is available, else from token metadata"""
    settings = get_settings()
    if settings.use_supabase:
        result = (
            get_supabase()
            .table("users")
            .select("role")
            .eq("id", user_id)
            .limit(1)
            .execute()
        )
        if not result.data:
            raise HTTPException(status_code=401, detail="User not found in database")
        return result.data[0].get("role") or "user"

    metadata = payload.get("app_metadata") or payload.get("user_metadata") or {}
    return metadata.get("role", "user")


async def verify_token(credentials: HTTPAuthorizationCredentials = Security(security)) -> AuthContext:
    """
    Verify JWT token from Supabase and return user context.

    Usage in routes:
        @router.get("/protected")
        async def protected_route(auth: AuthContext = Depends(verify_token)):
            # auth.user_id, auth.role, etc.
    """
    token = credentials.credentials

    try:
        jwt_secret = get_settings().supabase_jwt_secret
        if not jwt_secret:
            raise ValueError("SUPABASE_JWT_SECRET not configured")

        payload = jwt.decode(
            token,
            jwt_secret,
            algorithms=["HS256"],
            audience="authenticated"
        )

        user_id = payload.get("sub")
        if not user_id:
            raise HTTPException(status_code=401, detail="Invalid token: missing user_id")

        auth_context = AuthContext(
            user_id=user_id,
            email=payload.get("email", ""),
            role=_lookup_role(user_id, payload),
            access_token=token,
        )

        logger.debug(f"✓ Authenticated user: {auth_context.email} (role: {auth_context.role})")
        return auth_context

    except HTTPException:
        raise
    except jwt.ExpiredSignatureError:
        raise HTTPException(status_code=401, detail="Token expired")
    except jwt.InvalidTokenError as e:
        logger.error(f"Invalid token: {e}")
        raise HTTPException(status_code=401, detail="Invalid token")
    except Exception as e:
        logger.error(f"Token verification failed: {e}")
        raise HTTPException(status_code=401, detail="Authentication failed")


async def verify_admin(auth: AuthContext = Depends(verify_token)) -> AuthContext:
    """Verify user is admin"""
    if not auth.is_admin():
        raise HTTPException(
            status_code=403,
            detail="Admin privileges required"
        )
    return auth


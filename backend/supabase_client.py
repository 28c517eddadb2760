"""
Supabase Client Configuration
Service-role client for admin work, user-scoped clients for row-level security
"""
from typing import Optional
from supabase import create_client, Client
from dotenv import load_dotenv
from config import get_settings
import logging

load_dotenv()
logger = logging.getLogger(__name__)


class SupabaseClient:
    """Singleton service-role Supabase client"""

    _instance: Optional[Client] = None

    @classmethod
    def get_client(cls) -> Client:
        """Get or create the service-role client instance"""
        if cls._instance is None:
            settings = get_settings()
            url = settings.supabase_url
            key = settings.supabase_service_role_key

            if not url or not key:
                raise ValueError(
                    "SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY must be set in environment variables"
                )

            cls._instance = create_client(url, key)
            logger.info("✓ Supabase client initialized")

        return cls._instance

    @classmethod
    def reset(cls):
        """Reset client instance (for testing)"""
        cls._instance = None


def get_supabase() -> Client:
    """Get the service-role Supabase client"""
    return SupabaseClient.get_client()


def get_user_client(access_token: str) -> Client:
    """
    Build a client that acts as the signed-in user.

    Database calls made through it carry the user's JWT, so Supabase
    row-level security limits them to rows the user owns.
    """
    settings = get_settings()
    if not settings.supabase_url or not settings.supabase_anon_key:
        raise ValueError("SUPABASE_URL and SUPABASE_ANON_KEY must be set in environment variables")

    client = create_client(settings.supabase_url, settings.supabase_anon_key)
    client.postgrest.auth(access_token)
    return client

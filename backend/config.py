"""
Configuration management for Shorebreak Analytics backend
"""
from pathlib import Path
from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache


# n8n workflow endpoints, one per analysis type
N8N_WEBHOOKS = {
    "reviews": "https://shorebreak-ai.app.n8n.cloud/webhook/review-analysis",
    "seo": "https://shorebreak-ai.app.n8n.cloud/webhook/seo-audit",
}

# Timeout for the webhook call itself (seconds) - only needs to start the job
WEBHOOK_TIMEOUT = 30.0

# Job polling
POLL_INTERVAL = 3.0  # seconds
MAX_POLL_TIME = 10 * 60.0  # 10 minutes max

TIMEOUT_MESSAGE = "Analysis timed out. Please check back later."


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    # Supabase
    supabase_url: str = ""
    supabase_anon_key: str = ""
    supabase_service_role_key: str = ""
    supabase_jwt_secret: str = ""

    # Local database fallback (used when Supabase is not configured)
    database_url: str = ""

    # Server
    backend_host: str = "0.0.0.0"
    backend_port: int = 8000

    # Reports
    reports_dir: str = "./reports"

    # Google metrics scraping - pause between users to avoid being blocked
    metrics_scrape_delay: float = 2.0

    model_config = SettingsConfigDict(
        extra="ignore",  # Ignore extra fields like VITE_* from .env
        env_file="../.env",
        env_file_encoding="utf-8"
    )

    # Environment
    python_env: str = "development"

    # CORS
    cors_origins: list = [
        "http://localhost:5173",
        "http://localhost:3000",
        "http://127.0.0.1:5173",
    ]

    @property
    def use_supabase(self) -> bool:
        return bool(self.supabase_url and (self.supabase_anon_key or self.supabase_service_role_key))


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()


def ensure_reports_dir() -> Path:
    """Ensure reports directory exists"""
    settings = get_settings()
    reports_path = Path(settings.reports_dir)
    reports_path.mkdir(parents=True, exist_ok=True)
    return reports_path

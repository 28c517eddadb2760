"""
Local database connection and session management

Supabase is the primary store. When it is not configured the job and
analysis tables live in a SQLAlchemy database instead (SQLite by default).
"""
from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker
from config import get_settings
import logging

logger = logging.getLogger(__name__)
settings = get_settings()

# Base class for models
Base = declarative_base()

database_url = settings.database_url
if not database_url:
    database_url = "sqlite:///./app.db"
    if not settings.use_supabase:
        logger.warning("No Supabase or DATABASE_URL configured, using local SQLite database")


def make_engine(url: str):
    """Create an engine with pool settings suited to the backend"""
    if url.startswith("sqlite"):
        return create_engine(url, connect_args={"check_same_thread": False})
    return create_engine(
        url,
        pool_pre_ping=True,
        pool_size=5,
        max_overflow=10
    )


engine = make_engine(database_url)

# Create session factory
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db():
    """Dependency to get database session"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()

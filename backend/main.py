"""
Shorebreak Analytics - FastAPI Backend
Main application entry point
"""
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
import uvicorn
import logging

from config import get_settings, ensure_reports_dir
from database import engine, Base
import models  # noqa: F401  (registers tables on Base)
from routes import admin, analyses, auth, users

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events"""
    logger.info("Starting Shorebreak Analytics API...")
    ensure_reports_dir()

    if settings.use_supabase:
        logger.info("Using Supabase for jobs and analyses")
    else:
        Base.metadata.create_all(bind=engine)
        logger.info("Local database tables created/verified")

    yield

    logger.info("Shutting down Shorebreak Analytics API...")


# Initialize FastAPI app
app = FastAPI(
    title="Shorebreak Analytics API",
    description="Review sentiment and SEO analysis for local businesses",
    version="1.0.0",
    lifespan=lifespan
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Health check
@app.get("/")
async def root():
    """API health check"""
    return {
        "status": "healthy",
        "service": "Shorebreak Analytics API",
        "version": "1.0.0"
    }


@app.get("/api/health")
async def health_check():
    """Detailed health check"""
    return {
        "status": "healthy",
        "backend": "supabase" if settings.use_supabase else "local",
        "reports_dir": str(ensure_reports_dir()),
    }


app.include_router(auth.router)
app.include_router(analyses.router)
app.include_router(users.router)
app.include_router(admin.router)


if __name__ == "__main__":
    uvicorn.run(
        "main:app",
        host=settings.backend_host,
        port=settings.backend_port,
        reload=settings.python_env == "development",
        timeout_keep_alive=65,
        log_level="info"
    )

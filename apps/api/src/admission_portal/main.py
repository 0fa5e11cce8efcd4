"""
Admission Portal API - Main Application Entry Point

This module initializes and configures the FastAPI application including:
- Database and Redis connections
- The admissions backend client
- Background job scheduler
- CORS middleware
- API routing (plus the two root-level Razorpay endpoints)
- Health check endpoints
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware

from admission_portal.api import api_router
from admission_portal.core import redis as redis_module
from admission_portal.core.config import settings
from admission_portal.core.database import close_db, init_db
from admission_portal.core.redis import close_redis, init_redis
from admission_portal.core.scheduler import (
    list_registered_jobs,
    start_scheduler,
    stop_scheduler,
    trigger_job_manually,
)
from admission_portal.modules.autosave import autosave_registry, register_autosave_jobs
from admission_portal.modules.backend.client import close_backend_client, init_backend_client
from admission_portal.modules.payments.router import gateway_router
from admission_portal.modules.persistence import register_persistence_jobs


@asynccontextmanager
async def lifespan(_app: FastAPI):
    """
    Application lifespan manager.

    Handles startup and shutdown events including:
    - Redis connection (the in-memory primary store is used without it)
    - Database connection (durable store)
    - Admissions backend client
    - Background job scheduler
    """
    # Startup
    print(f"Starting {settings.app_name} API in {settings.python_env} mode...")

    try:
        await init_redis()
        print("[OK] Redis connected")
    except Exception as e:
        print(f"[FAIL] Redis connection failed: {e}")
        if settings.is_production:
            raise

    try:
        await init_db()
        print("[OK] Database connected")
    except Exception as e:
        print(f"[FAIL] Database connection failed: {e}")
        if settings.is_production:
            raise

    init_backend_client()
    print(f"[OK] Admissions backend client ready ({settings.backend_base_url})")

    if not settings.razorpay_configured:
        print("[FAIL] Razorpay keys missing, payment endpoints will return configuration errors")

    try:
        register_persistence_jobs()
        register_autosave_jobs()
        await start_scheduler()
        print("[OK] Background scheduler started")
    except Exception as e:
        print(f"[FAIL] Background scheduler failed to start: {e}")
        if settings.is_production:
            raise

    yield  # Application runs here

    # Shutdown
    print(f"Shutting down {settings.app_name} API...")

    await stop_scheduler()
    print("[OK] Background scheduler stopped")

    # Pending drafts are written before the stores go away
    await autosave_registry.close_all()

    await close_backend_client()
    await close_redis()
    await close_db()
    print("[OK] Cleanup complete")


app = FastAPI(
    title=f"{settings.app_name} API",
    description="Admission wizard, document uploads and fee payments",
    version="0.1.0",
    docs_url="/docs" if settings.is_development else None,
    redoc_url="/redoc" if settings.is_development else None,
    lifespan=lifespan,
)

app.include_router(api_router, prefix="/api/v1")

# Razorpay order/verify keep their root-level paths
app.include_router(gateway_router, tags=["Razorpay"])

# CORS configuration (credentials allowed for the session cookie)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/", tags=["Root"])
async def root() -> dict[str, str]:
    """Root endpoint - API welcome message."""
    return {
        "message": f"Welcome to {settings.app_name} API",
        "status": "running",
        "environment": settings.python_env,
    }


@app.get("/health", tags=["Health"])
async def health_check() -> dict[str, str]:
    """Health check endpoint for container orchestration."""
    return {"status": "healthy"}


@app.get("/ready", tags=["Health"])
async def readiness_check() -> dict[str, str]:
    """Readiness check endpoint."""
    return {
        "status": "ready",
        "primary_store": "redis" if redis_module.is_redis_available() else "memory",
    }


# ============================================
# Background Job Debug Endpoints
# ============================================
# Only mounted in development. In production, jobs run on schedule.

if settings.is_development:

    @app.get("/debug/jobs", tags=["Debug"])
    async def list_jobs():
        """
        List all registered background jobs and their status.

        Returns:
            List of job information including next run time and pause status.
        """
        return {"jobs": list_registered_jobs()}

    @app.post("/debug/jobs/{job_id}/trigger", tags=["Debug"])
    async def trigger_job(job_id: str):
        """
        Manually trigger a background job for testing.

        Args:
            job_id: The ID of the job to trigger. Available jobs:
                - persistence_sweep_expired_progress
                - autosave_prune_idle_savers

        Raises:
            HTTPException 400: If job_id is not found.
        """
        try:
            return await trigger_job_manually(job_id)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e)) from e

"""Health Check Router - System status endpoints."""

from datetime import datetime, timezone

from fastapi import APIRouter, Depends

from api.dependencies import ServiceContainer, get_services
from database.core import async_db_engine
from api.models import HealthResponse
from utils.errors import get_error_handler
from utils.monitoring import get_metrics_summary

router = APIRouter(prefix="", tags=["Health"])

API_VERSION = "1.0.0"


@router.get("/", include_in_schema=True)
async def root():
    """API root endpoint."""
    return {
        "message": "Essay Grading Service API",
        "version": API_VERSION,
        "docs": "/docs",
        "health": "/health",
    }


@router.get("/health", response_model=HealthResponse)
async def health_check(services: ServiceContainer = Depends(get_services)):
    """
    Health check endpoint.

    Reports database reachability, analysis registry state and in-process
    metrics.
    """
    database_ok = await async_db_engine.health_check()
    metrics = get_metrics_summary()
    metrics["errors_handled"] = get_error_handler().get_stats()

    return HealthResponse(
        status="healthy" if database_ok else "degraded",
        version=API_VERSION,
        database=database_ok,
        analysis=services.orchestrator.stats(),
        metrics=metrics,
        timestamp=datetime.now(timezone.utc),
    )

"""
Application lifespan management.

Handles startup and shutdown of the FastAPI application: logging, database
tables, configuration checks, and cancelling outstanding analysis jobs.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI

from config import settings
from utils.monitoring import get_logger, setup_logging

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    setup_logging()
    logger.info("Starting Essay Grading Service")

    # =========================================================================
    # Configuration Checks
    # =========================================================================
    for issue in settings.validate_production_config():
        logger.warning(f"Configuration issue: {issue}")

    # =========================================================================
    # Database Initialization
    # =========================================================================
    try:
        from database import async_db_engine, create_tables
        await create_tables(async_db_engine.engine)
        if await async_db_engine.health_check():
            logger.info("Database connection established")
        else:
            logger.warning("Database connection check failed")
    except Exception as e:
        logger.warning(f"Database initialization failed: {e}")

    # =========================================================================
    # Services
    # =========================================================================
    from api.dependencies import get_services
    services = get_services()
    logger.info(
        "Analysis orchestrator ready",
        cache_ttl=services.orchestrator.cache_ttl,
        timeout=services.orchestrator.timeout,
    )

    yield

    # =========================================================================
    # Cleanup
    # =========================================================================
    logger.info("Shutting down Essay Grading Service")

    try:
        await services.shutdown()
        logger.info("Analysis jobs cancelled")
    except Exception as e:
        logger.warning(f"Analysis shutdown warning: {e}")

    try:
        from database import async_db_engine
        await async_db_engine.close()
    except Exception as e:
        logger.warning(f"Database cleanup warning: {e}")

    logger.info("Shutdown complete")

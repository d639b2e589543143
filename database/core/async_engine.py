"""
Async database engine with connection pooling.

Features:
- Async SQLAlchemy with asyncpg driver (aiosqlite for local/test runs)
- Connection pooling with configurable size
- Connection retry with exponential backoff and jitter
- Health checks
"""

from typing import AsyncGenerator, Optional
from contextlib import asynccontextmanager
import asyncio
import random

from sqlalchemy.ext.asyncio import (
    create_async_engine,
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
)
from sqlalchemy.exc import DBAPIError, OperationalError, SQLAlchemyError
from sqlalchemy.pool import NullPool, AsyncAdaptedQueuePool
from sqlalchemy import text

from config import settings
from utils.monitoring import get_logger

logger = get_logger(__name__)


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker:
    """Build the session factory used by every gateway."""
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


class AsyncDatabaseEngine:
    """Async database engine manager with connection pooling."""

    def __init__(self):
        self._engine: Optional[AsyncEngine] = None
        self._session_factory: Optional[async_sessionmaker] = None

    def create_engine(self) -> AsyncEngine:
        """Create async database engine with settings-driven pooling."""
        if settings.is_sqlite:
            sqlite_kwargs = {"poolclass": NullPool} if settings.testing else {}
            return create_async_engine(
                settings.async_database_url,
                echo=settings.db_echo,
                **sqlite_kwargs,
            )

        pool_class = AsyncAdaptedQueuePool if not settings.testing else NullPool
        pool_kwargs = {}
        if pool_class is AsyncAdaptedQueuePool:
            pool_kwargs = {
                "pool_size": settings.db_pool_size,
                "max_overflow": settings.db_max_overflow,
                "pool_recycle": settings.db_pool_recycle,
                "pool_timeout": settings.db_pool_timeout,
                "pool_use_lifo": True,
            }

        return create_async_engine(
            settings.async_database_url,
            poolclass=pool_class,
            pool_pre_ping=settings.db_pool_pre_ping,
            echo=settings.db_echo,
            **pool_kwargs,
        )

    @property
    def engine(self) -> AsyncEngine:
        """Get or create async engine."""
        if self._engine is None:
            self._engine = self.create_engine()
        return self._engine

    @property
    def session_factory(self) -> async_sessionmaker:
        """Get or create session factory."""
        if self._session_factory is None:
            self._session_factory = create_session_factory(self.engine)
        return self._session_factory

    @asynccontextmanager
    async def get_session(self) -> AsyncGenerator[AsyncSession, None]:
        """
        Get async database session with automatic commit/rollback.

        Connecting is retried with exponential backoff; once the session is
        handed out, errors propagate to the caller.

        Usage:
            async with db_engine.get_session() as session:
                result = await session.execute(query)
        """
        max_retries = settings.db_connection_retries
        retry_backoff = settings.db_retry_backoff

        async with self.session_factory() as session:
            for attempt in range(max_retries + 1):
                try:
                    await session.connection()
                    break
                except (DBAPIError, OperationalError) as e:
                    if attempt >= max_retries:
                        logger.error(f"Database connection failed after {max_retries} retries: {e}")
                        raise
                    backoff = retry_backoff * (2 ** attempt) * (0.5 + 0.5 * random.random())
                    logger.warning(f"Database connection error, retrying in {backoff:.2f}s: {e}")
                    await asyncio.sleep(backoff)

            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    async def health_check(self) -> bool:
        """Check database connection health."""
        try:
            async with self.get_session() as session:
                await session.execute(text("SELECT 1"))
            return True
        except SQLAlchemyError as e:
            logger.warning(f"Database health check failed: {e}")
            return False

    async def close(self):
        """Close database engine and cleanup connections."""
        if self._engine:
            await self._engine.dispose()
            self._engine = None
            self._session_factory = None
            logger.info("Database engine closed and connections cleaned up")


# Global async database engine
async_db_engine = AsyncDatabaseEngine()

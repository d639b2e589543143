"""
Async database operations base.

Every gateway operation runs in its own short-lived session so that
background jobs never share a request's session or transaction.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from utils.errors import PersistenceError
from utils.monitoring import get_logger

logger = get_logger(__name__)


class AsyncGateway:
    """
    Base class for async persistence gateways.

    Features:
    - One session per operation, committed on success
    - Rollback on failure
    - SQLAlchemy errors translated to ``PersistenceError``
    """

    def __init__(self, session_factory: Optional[async_sessionmaker] = None):
        """
        Initialize gateway.

        Args:
            session_factory: Session factory; defaults to the global engine's
        """
        if session_factory is None:
            from database.core.async_engine import async_db_engine
            session_factory = async_db_engine.session_factory
        self._session_factory = session_factory
        self.operation_count = 0

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """Open a session, commit on success, roll back on error."""
        async with self._session_factory() as session:
            try:
                yield session
                await session.commit()
            except IntegrityError:
                await session.rollback()
                raise
            except SQLAlchemyError as e:
                await session.rollback()
                logger.error(f"Database operation failed: {e}")
                raise PersistenceError(f"Database operation failed: {e}") from e
            except BaseException:
                await session.rollback()
                raise
            finally:
                self.operation_count += 1

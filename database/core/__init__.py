"""
Core Database Package

Async engine and session management.
"""

from .async_engine import (
    AsyncDatabaseEngine,
    async_db_engine,
    create_session_factory,
)

__all__ = [
    'AsyncDatabaseEngine',
    'async_db_engine',
    'create_session_factory',
]

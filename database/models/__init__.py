"""
Database Models Package

Organized by purpose:
- base: Shared SQLAlchemy base and imports
- user: Users and roles
- classroom: Classrooms and enrollments
- essay: Essays and per-competency evaluations
"""

from .base import Base

from .user import User, UserRole
from .classroom import Classroom, Enrollment
from .essay import Essay, Evaluation


async def create_tables(engine):
    """
    Create all database tables.

    Args:
        engine: Async SQLAlchemy engine
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def drop_tables(engine):
    """
    Drop all database tables.

    WARNING: This will delete all data!

    Args:
        engine: Async SQLAlchemy engine
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


__all__ = [
    'Base',
    'User',
    'UserRole',
    'Classroom',
    'Enrollment',
    'Essay',
    'Evaluation',
    'create_tables',
    'drop_tables',
]

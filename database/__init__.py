"""
Database Package

Organized by purpose:
- core: Async engine and session management
- models: SQLAlchemy models (users, classrooms, essays, evaluations)
- operations: Persistence gateways
"""

from .core import (
    AsyncDatabaseEngine,
    async_db_engine,
    create_session_factory,
)

from .models import (
    Base,
    User,
    UserRole,
    Classroom,
    Enrollment,
    Essay,
    Evaluation,
    create_tables,
    drop_tables,
)

from .operations import (
    AsyncGateway,
    EssayGateway,
    ClassroomGateway,
    UserGateway,
)

__all__ = [
    # Core
    'AsyncDatabaseEngine',
    'async_db_engine',
    'create_session_factory',

    # Models
    'Base',
    'User',
    'UserRole',
    'Classroom',
    'Enrollment',
    'Essay',
    'Evaluation',
    'create_tables',
    'drop_tables',

    # Operations
    'AsyncGateway',
    'EssayGateway',
    'ClassroomGateway',
    'UserGateway',
]

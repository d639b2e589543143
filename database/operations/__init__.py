"""
Database Operations Package

Persistence gateways organized by purpose:
- async_ops: Shared session handling
- essay_ops: Essays and evaluations
- classroom_ops: Classrooms, enrollments and statistics
- user_ops: Users
"""

from .async_ops import AsyncGateway
from .essay_ops import EssayGateway
from .classroom_ops import ClassroomGateway
from .user_ops import UserGateway

__all__ = [
    'AsyncGateway',
    'EssayGateway',
    'ClassroomGateway',
    'UserGateway',
]

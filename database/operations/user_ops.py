"""
User Database Operations

Users are provisioned by the authentication service. This gateway only
reads them, plus a create used for seeding and local setups.
"""

from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from database.models import User, UserRole
from utils.errors import ValidationError
from utils.monitoring import get_logger

from .async_ops import AsyncGateway

logger = get_logger(__name__)


class UserGateway(AsyncGateway):
    """Reads and provisions users."""

    async def get_user(self, user_id: str) -> Optional[User]:
        async with self.session() as session:
            return await session.get(User, user_id)

    async def get_user_by_email(self, email: str) -> Optional[User]:
        async with self.session() as session:
            return await session.scalar(select(User).where(User.email == email))

    async def create_user(
        self,
        email: str,
        role: UserRole = UserRole.STUDENT,
        name: Optional[str] = None,
        user_id: Optional[str] = None,
    ) -> User:
        """
        Create a user.

        Raises:
            ValidationError: If the email is already registered
        """
        user = User(email=email, role=role, name=name)
        if user_id is not None:
            user.id = user_id

        try:
            async with self.session() as session:
                session.add(user)
                await session.flush()
        except IntegrityError as e:
            logger.warning("User creation failed (duplicate)", email=email)
            raise ValidationError(f"User {email} already exists", field="email") from e

        logger.info("User created", user_id=user.id, role=user.role.value)
        return user

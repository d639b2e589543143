"""User models."""

import enum

from .base import Base, Column, String, DateTime, Enum, datetime, new_id


class UserRole(str, enum.Enum):
    """User role enum."""
    STUDENT = "student"
    TEACHER = "teacher"
    ADMIN = "admin"


class User(Base):
    """
    Application user.

    Accounts are provisioned by the authentication service; this service only
    reads them to resolve roles and enrollment.
    """

    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=new_id)
    email = Column(String(255), unique=True, index=True, nullable=False)
    name = Column(String(255), nullable=True)
    role = Column(
        Enum(UserRole, values_callable=lambda x: [e.value for e in x], name="user_role"),
        nullable=False,
        default=UserRole.STUDENT,
    )
    created_at = Column(DateTime, default=datetime.utcnow)

    def __repr__(self):
        return f"<User(email={self.email}, role={self.role})>"

"""Error handling framework."""

from .exceptions import (
    BaseApplicationError,
    ValidationError,
    AuthenticationError,
    PermissionDeniedError,
    NotFoundError,
    ProviderError,
    PersistenceError,
)
from .handlers import (
    ErrorHandler,
    get_error_handler,
)

__all__ = [
    # Exceptions
    "BaseApplicationError",
    "ValidationError",
    "AuthenticationError",
    "PermissionDeniedError",
    "NotFoundError",
    "ProviderError",
    "PersistenceError",
    # Handlers
    "ErrorHandler",
    "get_error_handler",
]

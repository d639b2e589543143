"""Custom exception classes with detailed error information."""

from typing import Optional, Dict, Any
from datetime import datetime


class BaseApplicationError(Exception):
    """Base exception for all application errors."""

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        status_code: int = 500,
        details: Optional[Dict[str, Any]] = None
    ):
        """
        Initialize base error.

        Args:
            message: Error message
            error_code: Machine-readable error code
            status_code: HTTP status code
            details: Additional error details
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.status_code = status_code
        self.details = details or {}
        self.timestamp = datetime.utcnow()

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary."""
        return {
            "error": self.error_code,
            "message": self.message,
            "status_code": self.status_code,
            "details": self.details,
            "timestamp": self.timestamp.isoformat(),
        }


class ValidationError(BaseApplicationError):
    """Request validation error (bad competency, score out of range, duplicates)."""

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        **kwargs
    ):
        super().__init__(
            message,
            error_code="VALIDATION_ERROR",
            status_code=400,
            **kwargs
        )
        self.details["field"] = field


class AuthenticationError(BaseApplicationError):
    """Missing or invalid credentials."""

    def __init__(
        self,
        message: str = "Could not validate credentials",
        **kwargs
    ):
        super().__init__(
            message,
            error_code="AUTHENTICATION_ERROR",
            status_code=401,
            **kwargs
        )


class PermissionDeniedError(BaseApplicationError):
    """The access policy refused the requested action."""

    def __init__(
        self,
        message: str = "You do not have permission to perform this action",
        action: Optional[str] = None,
        resource_id: Optional[str] = None,
        **kwargs
    ):
        super().__init__(
            message,
            error_code="PERMISSION_DENIED",
            status_code=403,
            **kwargs
        )
        self.details["action"] = action
        self.details["resource_id"] = resource_id


class NotFoundError(BaseApplicationError):
    """Requested entity does not exist."""

    def __init__(
        self,
        message: str,
        resource: Optional[str] = None,
        resource_id: Optional[str] = None,
        **kwargs
    ):
        super().__init__(
            message,
            error_code="NOT_FOUND",
            status_code=404,
            **kwargs
        )
        self.details["resource"] = resource
        self.details["resource_id"] = resource_id


class ProviderError(BaseApplicationError):
    """Analysis provider failed, timed out or returned malformed data."""

    def __init__(
        self,
        message: str,
        provider: Optional[str] = None,
        model: Optional[str] = None,
        **kwargs
    ):
        super().__init__(
            message,
            error_code="PROVIDER_ERROR",
            status_code=502,
            **kwargs
        )
        self.details["provider"] = provider
        self.details["model"] = model


class PersistenceError(BaseApplicationError):
    """Storage operation failed.

    ``essay_missing`` marks the expected race where the essay was deleted
    while a write against it was pending.
    """

    def __init__(
        self,
        message: str,
        essay_id: Optional[str] = None,
        essay_missing: bool = False,
        **kwargs
    ):
        super().__init__(
            message,
            error_code="PERSISTENCE_ERROR",
            status_code=500,
            **kwargs
        )
        self.essay_missing = essay_missing
        self.details["essay_id"] = essay_id
        self.details["essay_missing"] = essay_missing

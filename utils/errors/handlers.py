"""Error handling utilities."""

import traceback
from typing import Optional, Any, Dict

from .exceptions import BaseApplicationError, PersistenceError
from utils.monitoring import get_logger, track_error

logger = get_logger(__name__)


class ErrorHandler:
    """
    Centralized error handling.

    Features:
    - Error logging
    - Error tracking
    - Bounded error history for diagnostics
    """

    def __init__(self, max_history: int = 100):
        self.error_count = 0
        self.error_history: list = []
        self.max_history = max_history

    def log_error(
        self,
        error: BaseException,
        context: Optional[Dict[str, Any]] = None
    ):
        """
        Log error with context.

        Args:
            error: Exception to log
            context: Additional context
        """
        self.error_count += 1

        error_info = {
            "type": type(error).__name__,
            "message": str(error),
            "context": context or {},
            "traceback": "".join(
                traceback.format_exception(type(error), error, error.__traceback__)
            ),
        }

        self.error_history.append(error_info)
        if len(self.error_history) > self.max_history:
            self.error_history.pop(0)

        if isinstance(error, PersistenceError) and error.essay_missing:
            # Deleted-essay races are expected, not alert-worthy
            logger.info(
                f"{error.error_code}: {error.message}",
                details=error.details,
                context=context,
            )
        elif isinstance(error, BaseApplicationError):
            log = logger.warning if error.status_code < 500 else logger.error
            log(
                f"{error.error_code}: {error.message}",
                status_code=error.status_code,
                details=error.details,
                context=context,
            )
        else:
            logger.error(
                f"{type(error).__name__}: {str(error)}",
                error=error,
                context=context,
            )

        track_error(type(error).__name__)

    def get_stats(self) -> Dict[str, Any]:
        """Get error statistics."""
        error_types = {}
        for error in self.error_history:
            error_type = error["type"]
            error_types[error_type] = error_types.get(error_type, 0) + 1

        return {
            "total_errors": self.error_count,
            "recent_errors": len(self.error_history),
            "error_types": error_types,
        }


# Global error handler
_global_handler: Optional[ErrorHandler] = None


def get_error_handler() -> ErrorHandler:
    """Get or create global error handler."""
    global _global_handler
    if _global_handler is None:
        _global_handler = ErrorHandler()
    return _global_handler

"""Structured logging system with correlation IDs."""

import json
import logging
import sys
import uuid
from typing import Optional
from datetime import datetime
from pathlib import Path
from contextvars import ContextVar

from config import settings

# Context variable for correlation ID (task-local under asyncio)
correlation_id_var: ContextVar[Optional[str]] = ContextVar('correlation_id', default=None)


def get_correlation_id() -> str:
    """Get or generate correlation ID for request tracking."""
    correlation_id = correlation_id_var.get()
    if correlation_id is None:
        correlation_id = str(uuid.uuid4())
        correlation_id_var.set(correlation_id)
    return correlation_id


def set_correlation_id(correlation_id: str):
    """Set correlation ID for current context."""
    correlation_id_var.set(correlation_id)


def clear_correlation_id():
    """Clear correlation ID from context."""
    correlation_id_var.set(None)


class StructuredFormatter(logging.Formatter):
    """Custom formatter with structured output and correlation IDs."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record with structured data."""
        timestamp = datetime.utcnow().isoformat()

        log_data = {
            "timestamp": timestamp,
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "correlation_id": get_correlation_id(),
        }

        if hasattr(record, "context"):
            log_data["context"] = record.context

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        # JSON in production, readable lines in development
        if settings.is_development:
            parts = [f"{timestamp} [{record.levelname}] {record.name} [{get_correlation_id()[:8]}]"]
            parts.append(f"  Message: {record.getMessage()}")
            if hasattr(record, "context"):
                parts.append(f"  Context: {record.context}")
            if record.exc_info:
                parts.append(f"  Error: {self.formatException(record.exc_info)}")
            return "\n".join(parts)
        return json.dumps(log_data, default=str)


def setup_logging():
    """Setup logging configuration."""
    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(getattr(logging, settings.log_level))
    console_handler.setFormatter(StructuredFormatter())
    root_logger.addHandler(console_handler)

    if not settings.testing:
        try:
            log_dir = Path("logs")
            log_dir.mkdir(exist_ok=True)
            file_handler = logging.FileHandler(
                log_dir / "app.log",
                mode='a',
                encoding='utf-8',
                delay=True
            )
            file_handler.setFormatter(StructuredFormatter())
            file_handler.setLevel(logging.INFO)
            root_logger.addHandler(file_handler)
        except OSError as e:
            print(f"Warning: Could not setup file logging: {e}", file=sys.stderr)

    root_logger.setLevel(getattr(logging, settings.log_level))

    # Reduce noise from third-party libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)


class ServiceLogger:
    """Logger wrapper with structured logging support."""

    def __init__(self, name: str):
        self.logger = logging.getLogger(name)

    def info(self, message: str, **context):
        """Log info message with context."""
        extra = {"context": context} if context else {}
        self.logger.info(message, extra=extra)

    def error(self, message: str, error: Optional[Exception] = None, **context):
        """Log error with context and exception."""
        extra = {"context": context} if context else {}
        self.logger.error(message, exc_info=error, extra=extra)

    def warning(self, message: str, **context):
        """Log warning with context."""
        extra = {"context": context} if context else {}
        self.logger.warning(message, extra=extra)

    def debug(self, message: str, **context):
        """Log debug message with context."""
        extra = {"context": context} if context else {}
        self.logger.debug(message, extra=extra)

    def job_started(self, essay_id: str, **context):
        """Log the start of a background analysis job."""
        self.info(f"Analysis job started: {essay_id}", essay_id=essay_id, **context)

    def job_finished(
        self,
        essay_id: str,
        success: bool,
        latency_ms: int,
        outcome: Optional[str] = None,
        **context
    ):
        """Log completion of a background analysis job."""
        outcome = outcome or ("completed" if success else "failed")
        level = "warning" if outcome == "failed" else "info"
        getattr(self, level)(
            f"Analysis job {outcome}: {essay_id}",
            essay_id=essay_id,
            success=success,
            latency_ms=latency_ms,
            outcome=outcome,
            **context
        )


def get_logger(name: str) -> ServiceLogger:
    """Get logger instance for a module."""
    if not logging.getLogger().handlers:
        setup_logging()
    return ServiceLogger(name)

"""Monitoring and observability package."""

from .logging import (
    get_logger,
    setup_logging,
    get_correlation_id,
    set_correlation_id,
    clear_correlation_id,
)
from .metrics import (
    track_job,
    track_cache,
    track_error,
    get_metrics_summary,
    reset_metrics,
)

__all__ = [
    # Logging
    "get_logger",
    "setup_logging",
    "get_correlation_id",
    "set_correlation_id",
    "clear_correlation_id",
    # Metrics
    "track_job",
    "track_cache",
    "track_error",
    "get_metrics_summary",
    "reset_metrics",
]

"""Metrics collection and tracking."""

from typing import Dict, Any
from collections import defaultdict

from config import settings


class MetricsCollector:
    """Lightweight metrics collector for analysis jobs and the result cache."""

    def __init__(self):
        self.jobs_started = 0
        self.jobs_completed = 0
        self.jobs_failed = 0
        self.jobs_superseded = 0
        self.total_job_latency_ms = 0
        self.cache_hits = 0
        self.cache_misses = 0
        self.cache_expirations = 0
        self.error_types = defaultdict(int)

    def track_job(self, outcome: str, latency_ms: int = 0):
        """Track an analysis job transition (started, completed, failed, superseded)."""
        if outcome == "started":
            self.jobs_started += 1
            return

        self.total_job_latency_ms += latency_ms
        if outcome == "completed":
            self.jobs_completed += 1
        elif outcome == "failed":
            self.jobs_failed += 1
        elif outcome == "superseded":
            self.jobs_superseded += 1

    def track_cache(self, hit: bool, expired: bool = False):
        """Track a cache lookup."""
        if hit:
            self.cache_hits += 1
        else:
            self.cache_misses += 1
        if expired:
            self.cache_expirations += 1

    def track_error(self, error_type: str):
        """Track error occurrence."""
        self.error_types[error_type] += 1

    def get_summary(self) -> Dict[str, Any]:
        """Get metrics summary."""
        finished = self.jobs_completed + self.jobs_failed + self.jobs_superseded
        avg_latency = (
            self.total_job_latency_ms / finished
            if finished > 0 else 0
        )

        cache_total = self.cache_hits + self.cache_misses
        cache_hit_rate = (
            (self.cache_hits / cache_total * 100)
            if cache_total > 0 else 0
        )

        return {
            "jobs_started": self.jobs_started,
            "jobs_completed": self.jobs_completed,
            "jobs_failed": self.jobs_failed,
            "jobs_superseded": self.jobs_superseded,
            "avg_job_latency_ms": round(avg_latency, 2),
            "cache_hit_rate_percent": round(cache_hit_rate, 2),
            "cache_expirations": self.cache_expirations,
            "error_types": dict(self.error_types),
        }

    def reset(self):
        """Reset all metrics."""
        self.__init__()


# Global metrics collector
_metrics = MetricsCollector()


def track_job(outcome: str, latency_ms: int = 0):
    """Track analysis job metrics."""
    if settings.enable_metrics:
        _metrics.track_job(outcome, latency_ms)


def track_cache(hit: bool, expired: bool = False):
    """Track cache lookup metrics."""
    if settings.enable_metrics:
        _metrics.track_cache(hit, expired)


def track_error(error_type: str):
    """Track error occurrence."""
    if settings.enable_metrics:
        _metrics.track_error(error_type)


def get_metrics_summary() -> Dict[str, Any]:
    """Get current metrics summary."""
    return _metrics.get_summary()


def reset_metrics():
    """Reset all metrics."""
    _metrics.reset()

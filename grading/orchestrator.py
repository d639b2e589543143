"""
Essay Analysis Orchestrator

Owns the per-essay job and cache registry for automated analysis:
- At most one in-flight provider call per essay
- Completed results cached for a time budget
- Edits invalidate cache and job state, even mid-flight
- Background jobs clean up after themselves on every exit path

Registry critical sections never await, so a check-and-create under the
lock is atomic with respect to every other request handler.
"""

import asyncio
import time
import uuid
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Optional, Set

from config import settings
from utils.errors import PersistenceError, ProviderError, ValidationError, get_error_handler
from utils.monitoring import get_logger, track_cache, track_job

from .provider import AnalysisProvider
from .results import AnalysisResult

logger = get_logger(__name__)

CompletionHook = Callable[[str], Awaitable[Any]]


class AnalysisStatus(Enum):
    """Analysis state of an essay as seen by callers."""
    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"


@dataclass
class CacheEntry:
    """Last completed analysis of an essay."""
    result: AnalysisResult
    text: str
    cached_at: float

    def is_expired(self, ttl: float, now: float) -> bool:
        """A TTL of 0 disables expiry."""
        return ttl > 0 and now - self.cached_at >= ttl


@dataclass
class AnalysisOutcome:
    """Answer to an analysis request."""
    status: AnalysisStatus
    result: Optional[AnalysisResult] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"status": self.status.value}
        if self.result is not None:
            data["result"] = self.result.model_dump()
        return data


class AnalysisJob:
    """
    An in-flight analysis of one essay.

    Exists only while the provider call and its bookkeeping are running.
    """

    def __init__(self, essay_id: str, text: str):
        self.job_id = str(uuid.uuid4())
        self.essay_id = essay_id
        self.text = text
        self.started_at = time.monotonic()
        self.task: Optional[asyncio.Task] = None

    def get_elapsed_time(self) -> float:
        return time.monotonic() - self.started_at

    def to_dict(self) -> Dict[str, Any]:
        return {
            "job_id": self.job_id,
            "essay_id": self.essay_id,
            "elapsed_seconds": self.get_elapsed_time(),
            "done": self.task.done() if self.task else False,
        }


class AnalysisOrchestrator:
    """
    Deduplicates, caches and invalidates essay analyses.

    Args:
        provider: Analysis provider called by background jobs
        gateway: Persistence gateway used to store automatic scores
        cache_ttl: Seconds a completed result stays cached (0 disables expiry)
        timeout: Seconds a provider call may take
        on_scored: Awaited with the essay ID after a score is stored
        clock: Monotonic clock, injectable for tests
    """

    def __init__(
        self,
        provider: AnalysisProvider,
        gateway,
        cache_ttl: Optional[float] = None,
        timeout: Optional[float] = None,
        on_scored: Optional[CompletionHook] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.provider = provider
        self.gateway = gateway
        self.cache_ttl = settings.analysis_cache_ttl if cache_ttl is None else cache_ttl
        self.timeout = settings.analysis_timeout_seconds if timeout is None else timeout
        self.on_scored = on_scored
        self._clock = clock

        self._lock = asyncio.Lock()
        self._cache: Dict[str, CacheEntry] = {}
        self._jobs: Dict[str, AnalysisJob] = {}

        # Strong references to background tasks until they finish
        self._tasks: Set[asyncio.Task] = set()

        self.error_handler = get_error_handler()
        self.provider_calls = 0

    # ========================================================================
    # PUBLIC OPERATIONS
    # ========================================================================

    async def request_analysis(self, essay_id: str, current_text: str) -> AnalysisOutcome:
        """
        Return the cached analysis, or make sure one is running.

        Args:
            essay_id: Essay ID
            current_text: Text to analyze if no job or cache entry exists

        Returns:
            ``COMPLETED`` with the result when cached for ``current_text``,
            otherwise ``RUNNING``
        """
        if not current_text:
            raise ValidationError("Essay has no text to analyze", field="text")

        async with self._lock:
            entry = self._live_cache_entry(essay_id, current_text)
            if entry is not None:
                return AnalysisOutcome(AnalysisStatus.COMPLETED, entry.result)

            if essay_id not in self._jobs:
                self._start_job(essay_id, current_text)

        return AnalysisOutcome(AnalysisStatus.RUNNING)

    async def invalidate_and_restart(self, essay_id: str, new_text: str) -> AnalysisOutcome:
        """
        Drop cached and in-flight analysis, then start exactly one new job.

        A superseded job keeps running but its result is discarded.
        """
        if not new_text:
            raise ValidationError("Essay has no text to analyze", field="text")

        async with self._lock:
            self._cache.pop(essay_id, None)
            superseded = self._jobs.pop(essay_id, None)
            self._start_job(essay_id, new_text)

        if superseded is not None:
            logger.info(
                "Analysis job superseded",
                essay_id=essay_id,
                job_id=superseded.job_id,
            )
        return AnalysisOutcome(AnalysisStatus.RUNNING)

    async def forget(self, essay_id: str):
        """Drop cached and in-flight analysis without restarting."""
        async with self._lock:
            self._cache.pop(essay_id, None)
            self._jobs.pop(essay_id, None)

    async def analyze_text(self, text: str) -> AnalysisResult:
        """
        Analyze arbitrary text right away, bypassing the registry.

        Raises:
            ValidationError: If the text is empty
            ProviderError: If the provider fails or times out
        """
        if not text or not text.strip():
            raise ValidationError("Text is required", field="text")
        return await self._call_provider(text)

    def status(self, essay_id: str) -> AnalysisOutcome:
        """Current state of an essay without starting anything."""
        entry = self._cache.get(essay_id)
        if entry is not None and not entry.is_expired(self.cache_ttl, self._clock()):
            return AnalysisOutcome(AnalysisStatus.COMPLETED, entry.result)
        if essay_id in self._jobs:
            return AnalysisOutcome(AnalysisStatus.RUNNING)
        return AnalysisOutcome(AnalysisStatus.IDLE)

    async def wait_for(self, essay_id: str, timeout: Optional[float] = None) -> AnalysisOutcome:
        """Wait until no job is running for the essay, then report its status."""
        while True:
            job = self._jobs.get(essay_id)
            if job is None or job.task is None:
                break
            done, _ = await asyncio.wait({job.task}, timeout=timeout)
            if not done:
                break
        return self.status(essay_id)

    async def drain(self):
        """Wait for every background task, superseded ones included."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def shutdown(self):
        """Cancel outstanding background tasks and clear the registry."""
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

        async with self._lock:
            self._jobs.clear()
            self._cache.clear()

        if tasks:
            logger.info(f"Analysis orchestrator stopped, cancelled {len(tasks)} job(s)")

    def stats(self) -> Dict[str, Any]:
        return {
            "cached": len(self._cache),
            "running": len(self._jobs),
            "background_tasks": len(self._tasks),
            "provider_calls": self.provider_calls,
            "cache_ttl_seconds": self.cache_ttl,
            "timeout_seconds": self.timeout,
        }

    # ========================================================================
    # REGISTRY (call with the lock held; must not await)
    # ========================================================================

    def _live_cache_entry(self, essay_id: str, text: str) -> Optional[CacheEntry]:
        entry = self._cache.get(essay_id)
        if entry is None:
            track_cache(hit=False)
            return None

        if entry.is_expired(self.cache_ttl, self._clock()):
            del self._cache[essay_id]
            track_cache(hit=False, expired=True)
            logger.debug("Analysis cache entry expired", essay_id=essay_id)
            return None

        # Result was computed for other text
        if entry.text != text:
            del self._cache[essay_id]
            track_cache(hit=False)
            logger.debug("Analysis cache entry stale", essay_id=essay_id)
            return None

        track_cache(hit=True)
        return entry

    def _evict_expired(self):
        if self.cache_ttl <= 0:
            return
        now = self._clock()
        expired = [
            essay_id for essay_id, entry in self._cache.items()
            if entry.is_expired(self.cache_ttl, now)
        ]
        for essay_id in expired:
            del self._cache[essay_id]
        if expired:
            logger.debug(f"Evicted {len(expired)} expired analysis cache entries")

    def _start_job(self, essay_id: str, text: str) -> AnalysisJob:
        self._evict_expired()

        job = AnalysisJob(essay_id, text)
        self._jobs[essay_id] = job

        job.task = asyncio.create_task(self._run_job(job), name=f"analysis-{essay_id}")
        self._tasks.add(job.task)
        job.task.add_done_callback(self._tasks.discard)

        track_job("started")
        logger.job_started(essay_id, job_id=job.job_id)
        return job

    def _is_current(self, job: AnalysisJob) -> bool:
        return self._jobs.get(job.essay_id) is job

    def _discard_job(self, job: AnalysisJob):
        # No await between the check and the delete
        if self._jobs.get(job.essay_id) is job:
            del self._jobs[job.essay_id]

    # ========================================================================
    # BACKGROUND JOB
    # ========================================================================

    async def _call_provider(self, text: str) -> AnalysisResult:
        self.provider_calls += 1
        try:
            return await asyncio.wait_for(self.provider.analyze(text), timeout=self.timeout)
        except asyncio.TimeoutError as e:
            raise ProviderError(
                f"Analysis timed out after {self.timeout}s",
                provider=getattr(self.provider, "name", None),
            ) from e

    async def _run_job(self, job: AnalysisJob):
        """Run one analysis; the registry entry is removed on every exit path."""
        start_time = time.perf_counter()
        outcome = "failed"

        try:
            result = await self._call_provider(job.text)

            if not self._is_current(job):
                outcome = "superseded"
                return

            if not await self._store_score(job, result):
                outcome = "superseded"
                return

            async with self._lock:
                if not self._is_current(job):
                    outcome = "superseded"
                    return
                self._cache[job.essay_id] = CacheEntry(result, job.text, self._clock())
                del self._jobs[job.essay_id]

            outcome = "completed"
            await self._run_completion_hook(job)

        except asyncio.CancelledError:
            outcome = "cancelled"
            logger.info("Analysis job cancelled", essay_id=job.essay_id, job_id=job.job_id)
            raise

        except Exception as e:
            self.error_handler.log_error(e, {"essay_id": job.essay_id, "job_id": job.job_id})

        finally:
            self._discard_job(job)
            latency_ms = int((time.perf_counter() - start_time) * 1000)
            if outcome != "cancelled":
                track_job(outcome, latency_ms)
            logger.job_finished(
                job.essay_id,
                success=outcome == "completed",
                latency_ms=latency_ms,
                job_id=job.job_id,
                outcome=outcome,
            )

    async def _store_score(self, job: AnalysisJob, result: AnalysisResult) -> bool:
        """
        Write the automatic score.

        Returns:
            False if the essay is gone or its text changed (nothing may be
            cached); True otherwise, including after a logged write failure
        """
        try:
            written = await self.gateway.update_essay_auto_score(
                job.essay_id,
                result.final_score,
                analysis=result.model_dump(),
                expected_text=job.text,
            )
        except PersistenceError as e:
            self.error_handler.log_error(e, {"essay_id": job.essay_id, "job_id": job.job_id})
            return not e.essay_missing

        if not written:
            logger.info("Essay text changed during analysis", essay_id=job.essay_id)
        return written

    async def _run_completion_hook(self, job: AnalysisJob):
        if self.on_scored is None:
            return
        try:
            await self.on_scored(job.essay_id)
        except Exception as e:
            self.error_handler.log_error(e, {"essay_id": job.essay_id, "hook": "on_scored"})


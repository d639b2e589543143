"""
Tests for the analysis orchestrator.

Covers:
- Single-flight analysis per essay
- Cached reads and TTL expiry
- Invalidation while a job is in flight
- Failure, timeout and cleanup of job state
- Essays deleted or edited under a running job
"""

import asyncio

import pytest

from grading import AnalysisOrchestrator, AnalysisStatus
from utils.errors import ProviderError, ValidationError
from utils.monitoring import get_metrics_summary

from conftest import FakeProvider, make_result


class FakeClock:
    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


def build(provider, gateway, **kwargs) -> AnalysisOrchestrator:
    kwargs.setdefault("cache_ttl", 3600)
    kwargs.setdefault("timeout", 5)
    return AnalysisOrchestrator(provider=provider, gateway=gateway, **kwargs)


# ============================================================================
# Single Flight and Caching
# ============================================================================

class TestSingleFlight:
    """Concurrent requests share one provider call."""

    async def test_concurrent_requests_start_one_job(self, gated_provider, memory_gateway):
        memory_gateway.add_essay("e1", "A")
        orchestrator = build(gated_provider, memory_gateway)

        outcomes = await asyncio.gather(
            *[orchestrator.request_analysis("e1", "A") for _ in range(10)]
        )

        assert all(o.status == AnalysisStatus.RUNNING for o in outcomes)
        await gated_provider.started.wait()
        assert gated_provider.calls == ["A"]
        assert orchestrator.stats()["running"] == 1

        gated_provider.release()
        await orchestrator.drain()

        outcome = await orchestrator.request_analysis("e1", "A")
        assert outcome.status == AnalysisStatus.COMPLETED
        assert outcome.result.final_score == 720
        assert gated_provider.calls == ["A"]
        assert orchestrator.provider_calls == 1

    async def test_completed_result_is_served_from_cache(self, provider, memory_gateway):
        memory_gateway.add_essay("e1", "A")
        orchestrator = build(provider, memory_gateway)

        await orchestrator.request_analysis("e1", "A")
        await orchestrator.drain()

        for _ in range(5):
            outcome = await orchestrator.request_analysis("e1", "A")
            assert outcome.status == AnalysisStatus.COMPLETED

        assert len(provider.calls) == 1
        assert memory_gateway.essays["e1"].auto_score == 720
        assert memory_gateway.essays["e1"].analysis["final_score"] == 720
        assert get_metrics_summary()["jobs_completed"] == 1

    async def test_jobs_for_different_essays_run_independently(self, gated_provider, memory_gateway):
        memory_gateway.add_essay("e1", "A")
        memory_gateway.add_essay("e2", "B")
        orchestrator = build(gated_provider, memory_gateway)

        await orchestrator.request_analysis("e1", "A")
        await orchestrator.request_analysis("e2", "B")
        assert orchestrator.stats()["running"] == 2

        gated_provider.release()
        await orchestrator.drain()

        assert sorted(gated_provider.calls) == ["A", "B"]
        assert orchestrator.status("e1").status == AnalysisStatus.COMPLETED
        assert orchestrator.status("e2").status == AnalysisStatus.COMPLETED

    async def test_empty_text_is_rejected(self, provider, memory_gateway):
        orchestrator = build(provider, memory_gateway)

        with pytest.raises(ValidationError):
            await orchestrator.request_analysis("e1", "")
        with pytest.raises(ValidationError):
            await orchestrator.invalidate_and_restart("e1", "")

        assert provider.calls == []


class TestCacheExpiry:
    async def test_entry_expires_after_ttl(self, provider, memory_gateway):
        memory_gateway.add_essay("e1", "A")
        clock = FakeClock()
        orchestrator = build(provider, memory_gateway, cache_ttl=60, clock=clock)

        await orchestrator.request_analysis("e1", "A")
        await orchestrator.drain()

        clock.advance(59)
        assert (await orchestrator.request_analysis("e1", "A")).status == AnalysisStatus.COMPLETED

        clock.advance(1)
        outcome = await orchestrator.request_analysis("e1", "A")
        assert outcome.status == AnalysisStatus.RUNNING

        await orchestrator.drain()
        assert len(provider.calls) == 2
        assert get_metrics_summary()["cache_expirations"] == 1

    async def test_zero_ttl_never_expires(self, provider, memory_gateway):
        memory_gateway.add_essay("e1", "A")
        clock = FakeClock()
        orchestrator = build(provider, memory_gateway, cache_ttl=0, clock=clock)

        await orchestrator.request_analysis("e1", "A")
        await orchestrator.drain()

        clock.advance(10 ** 9)
        assert (await orchestrator.request_analysis("e1", "A")).status == AnalysisStatus.COMPLETED
        assert len(provider.calls) == 1

    async def test_expired_entries_are_swept_when_a_job_starts(self, provider, memory_gateway):
        for essay_id in ("e1", "e2", "e3"):
            memory_gateway.add_essay(essay_id, "A")
        clock = FakeClock()
        orchestrator = build(provider, memory_gateway, cache_ttl=60, clock=clock)

        await orchestrator.request_analysis("e1", "A")
        await orchestrator.request_analysis("e2", "A")
        await orchestrator.drain()
        assert orchestrator.stats()["cached"] == 2

        clock.advance(60)
        await orchestrator.request_analysis("e3", "A")
        await orchestrator.drain()

        assert orchestrator.stats()["cached"] == 1
        assert orchestrator.status("e1").status == AnalysisStatus.IDLE
        assert orchestrator.status("e3").status == AnalysisStatus.COMPLETED


class TestCachedText:
    async def test_entry_for_other_text_is_a_miss(self, memory_gateway):
        provider = FakeProvider(results={"A": make_result(500), "B": make_result(712)})
        memory_gateway.add_essay("e1", "A")
        orchestrator = build(provider, memory_gateway)

        await orchestrator.request_analysis("e1", "A")
        await orchestrator.drain()

        # Text changed without an invalidation
        memory_gateway.essays["e1"].text = "B"
        outcome = await orchestrator.request_analysis("e1", "B")
        assert outcome.status == AnalysisStatus.RUNNING

        await orchestrator.drain()
        outcome = await orchestrator.request_analysis("e1", "B")
        assert outcome.status == AnalysisStatus.COMPLETED
        assert outcome.result.final_score == 712
        assert provider.calls == ["A", "B"]


# ============================================================================
# Invalidation
# ============================================================================

class TestInvalidation:
    """Edits discard stale results, even mid-flight."""

    async def test_edit_during_analysis_discards_old_result(self, memory_gateway):
        provider = FakeProvider(
            gated=True,
            results={"A": make_result(500), "B": make_result(712)},
        )
        memory_gateway.add_essay("e2", "A")
        orchestrator = build(provider, memory_gateway)

        await orchestrator.request_analysis("e2", "A")
        await provider.started.wait()

        # Edit persisted, then analysis invalidated
        memory_gateway.essays["e2"].text = "B"
        outcome = await orchestrator.invalidate_and_restart("e2", "B")
        assert outcome.status == AnalysisStatus.RUNNING

        provider.release()
        await orchestrator.drain()

        assert provider.calls == ["A", "B"]
        assert memory_gateway.essays["e2"].auto_score == 712
        assert memory_gateway.auto_score_writes == 1

        outcome = await orchestrator.request_analysis("e2", "B")
        assert outcome.status == AnalysisStatus.COMPLETED
        assert outcome.result.final_score == 712

        metrics = get_metrics_summary()
        assert metrics["jobs_superseded"] == 1
        assert metrics["jobs_completed"] == 1

    async def test_invalidate_drops_cached_result(self, memory_gateway):
        provider = FakeProvider(results={"A": make_result(500), "B": make_result(712)})
        memory_gateway.add_essay("e1", "A")
        orchestrator = build(provider, memory_gateway)

        await orchestrator.request_analysis("e1", "A")
        await orchestrator.drain()
        assert orchestrator.status("e1").result.final_score == 500

        memory_gateway.essays["e1"].text = "B"
        await orchestrator.invalidate_and_restart("e1", "B")
        assert orchestrator.status("e1").status == AnalysisStatus.RUNNING

        await orchestrator.drain()
        assert orchestrator.status("e1").result.final_score == 712

    async def test_repeated_invalidation_keeps_one_current_job(self, gated_provider, memory_gateway):
        memory_gateway.add_essay("e1", "C")
        orchestrator = build(gated_provider, memory_gateway)

        for text in ("A", "B", "C"):
            await orchestrator.invalidate_and_restart("e1", text)

        assert orchestrator.stats()["running"] == 1

        gated_provider.release()
        await orchestrator.drain()

        assert orchestrator.stats()["running"] == 0
        assert memory_gateway.auto_score_writes == 1
        assert orchestrator.status("e1").status == AnalysisStatus.COMPLETED

    async def test_stale_text_is_not_written(self, gated_provider, memory_gateway):
        memory_gateway.add_essay("e1", "A")
        orchestrator = build(gated_provider, memory_gateway)

        await orchestrator.request_analysis("e1", "A")
        await gated_provider.started.wait()

        # Text replaced without invalidating
        memory_gateway.essays["e1"].text = "B"
        gated_provider.release()
        await orchestrator.drain()

        assert memory_gateway.essays["e1"].auto_score is None
        assert orchestrator.status("e1").status == AnalysisStatus.IDLE


# ============================================================================
# Failures and Cleanup
# ============================================================================

class TestFailures:
    async def test_failed_job_clears_state_and_allows_retry(self, provider, memory_gateway):
        memory_gateway.add_essay("e1", "A")
        provider.fail_with = ProviderError("Model unavailable", provider="fake")
        orchestrator = build(provider, memory_gateway)

        await orchestrator.request_analysis("e1", "A")
        await orchestrator.drain()

        assert orchestrator.status("e1").status == AnalysisStatus.IDLE
        assert orchestrator.stats()["running"] == 0
        assert memory_gateway.essays["e1"].auto_score is None

        provider.fail_with = None
        outcome = await orchestrator.request_analysis("e1", "A")
        assert outcome.status == AnalysisStatus.RUNNING

        await orchestrator.drain()
        assert orchestrator.status("e1").status == AnalysisStatus.COMPLETED
        assert len(provider.calls) == 2
        assert get_metrics_summary()["jobs_failed"] == 1

    async def test_unexpected_provider_exception_is_contained(self, provider, memory_gateway):
        memory_gateway.add_essay("e1", "A")
        provider.fail_with = RuntimeError("boom")
        orchestrator = build(provider, memory_gateway)

        await orchestrator.request_analysis("e1", "A")
        await orchestrator.drain()

        assert orchestrator.stats()["running"] == 0
        assert orchestrator.stats()["background_tasks"] == 0

    async def test_timeout_counts_as_failure(self, gated_provider, memory_gateway):
        memory_gateway.add_essay("e1", "A")
        orchestrator = build(gated_provider, memory_gateway, timeout=0.05)

        await orchestrator.request_analysis("e1", "A")
        await orchestrator.drain()

        assert orchestrator.status("e1").status == AnalysisStatus.IDLE
        assert get_metrics_summary()["jobs_failed"] == 1

    async def test_write_failure_still_caches_result(self, provider, memory_gateway):
        memory_gateway.add_essay("e1", "A")
        memory_gateway.fail_writes = True
        orchestrator = build(provider, memory_gateway)

        await orchestrator.request_analysis("e1", "A")
        await orchestrator.drain()

        assert memory_gateway.essays["e1"].auto_score is None
        outcome = await orchestrator.request_analysis("e1", "A")
        assert outcome.status == AnalysisStatus.COMPLETED
        assert len(provider.calls) == 1


class TestDeletedEssay:
    async def test_deleted_essay_is_not_cached(self, gated_provider, memory_gateway):
        memory_gateway.add_essay("e1", "A")
        orchestrator = build(gated_provider, memory_gateway)

        await orchestrator.request_analysis("e1", "A")
        await gated_provider.started.wait()

        memory_gateway.remove_essay("e1")
        gated_provider.release()
        await orchestrator.drain()

        assert orchestrator.status("e1").status == AnalysisStatus.IDLE
        assert orchestrator.stats()["cached"] == 0

    async def test_forget_discards_running_job(self, gated_provider, memory_gateway):
        memory_gateway.add_essay("e1", "A")
        orchestrator = build(gated_provider, memory_gateway)

        await orchestrator.request_analysis("e1", "A")
        await gated_provider.started.wait()

        memory_gateway.remove_essay("e1")
        await orchestrator.forget("e1")
        assert orchestrator.status("e1").status == AnalysisStatus.IDLE

        gated_provider.release()
        await orchestrator.drain()

        assert orchestrator.stats()["cached"] == 0
        assert get_metrics_summary()["jobs_superseded"] == 1


# ============================================================================
# Completion Hook, Shutdown and Direct Analysis
# ============================================================================

class TestCompletionHook:
    async def test_hook_runs_after_score_is_stored(self, provider, memory_gateway):
        memory_gateway.add_essay("e1", "A")
        seen = []

        async def on_scored(essay_id):
            seen.append((essay_id, memory_gateway.essays[essay_id].auto_score))

        orchestrator = build(provider, memory_gateway, on_scored=on_scored)
        await orchestrator.request_analysis("e1", "A")
        await orchestrator.drain()

        assert seen == [("e1", 720)]

    async def test_hook_failure_keeps_result(self, provider, memory_gateway):
        memory_gateway.add_essay("e1", "A")

        async def on_scored(essay_id):
            raise RuntimeError("hook failed")

        orchestrator = build(provider, memory_gateway, on_scored=on_scored)
        await orchestrator.request_analysis("e1", "A")
        await orchestrator.drain()

        assert orchestrator.status("e1").status == AnalysisStatus.COMPLETED


class TestShutdown:
    async def test_shutdown_cancels_running_jobs(self, gated_provider, memory_gateway):
        memory_gateway.add_essay("e1", "A")
        orchestrator = build(gated_provider, memory_gateway)

        await orchestrator.request_analysis("e1", "A")
        await gated_provider.started.wait()

        await orchestrator.shutdown()

        assert orchestrator.stats()["running"] == 0
        assert orchestrator.stats()["cached"] == 0
        assert memory_gateway.essays["e1"].auto_score is None


class TestWaitFor:
    async def test_wait_for_returns_completed_outcome(self, provider, memory_gateway):
        memory_gateway.add_essay("e1", "A")
        orchestrator = build(provider, memory_gateway)

        await orchestrator.request_analysis("e1", "A")
        outcome = await orchestrator.wait_for("e1", timeout=5)

        assert outcome.status == AnalysisStatus.COMPLETED
        assert outcome.to_dict()["result"]["final_score"] == 720

    async def test_wait_for_unknown_essay_is_idle(self, provider, memory_gateway):
        orchestrator = build(provider, memory_gateway)

        outcome = await orchestrator.wait_for("missing")

        assert outcome.status == AnalysisStatus.IDLE
        assert outcome.to_dict() == {"status": "idle"}


class TestAnalyzeText:
    async def test_returns_result_without_caching(self, provider, memory_gateway):
        orchestrator = build(provider, memory_gateway)

        result = await orchestrator.analyze_text("Some essay text")

        assert result.final_score == 720
        assert orchestrator.stats()["cached"] == 0
        assert memory_gateway.auto_score_writes == 0

    async def test_blank_text_is_rejected(self, provider, memory_gateway):
        orchestrator = build(provider, memory_gateway)

        with pytest.raises(ValidationError):
            await orchestrator.analyze_text("   ")
        assert provider.calls == []

    async def test_provider_error_propagates(self, provider, memory_gateway):
        provider.fail_with = ProviderError("Model unavailable", provider="fake")
        orchestrator = build(provider, memory_gateway)

        with pytest.raises(ProviderError):
            await orchestrator.analyze_text("Some essay text")

    async def test_timeout_raises_provider_error(self, gated_provider, memory_gateway):
        orchestrator = build(gated_provider, memory_gateway, timeout=0.05)

        with pytest.raises(ProviderError):
            await orchestrator.analyze_text("Some essay text")

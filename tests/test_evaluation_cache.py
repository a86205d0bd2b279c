"""Tests for the evaluation result cache."""

import asyncio
import contextlib
from datetime import datetime, timedelta

import pytest

from backend.srs.evaluation import evaluate, tokens_from_text
from backend.srs.evaluation_cache import EvaluationCache, run_periodic_sweep

NOW = datetime(2024, 5, 1, 12, 0, 0)


def _result():
    return evaluate("Hello", "Hello", tokens_from_text("Hello"), duration=0.5)


class TestEvaluationCache:
    def setup_method(self) -> None:
        self.cache = EvaluationCache(ttl_seconds=60)

    def test_get_live_entry(self) -> None:
        result = _result()
        self.cache.put(result, now=NOW)
        assert self.cache.get(result.evaluation_id, now=NOW + timedelta(seconds=59)) is result

    def test_expired_entry_not_returned(self) -> None:
        result = _result()
        self.cache.put(result, now=NOW)
        assert self.cache.get(result.evaluation_id, now=NOW + timedelta(seconds=60)) is None

    def test_unknown_id(self) -> None:
        assert self.cache.get("eval_missing", now=NOW) is None

    def test_sweep_removes_only_expired(self) -> None:
        old, fresh = _result(), _result()
        self.cache.put(old, now=NOW)
        self.cache.put(fresh, now=NOW + timedelta(seconds=30))

        removed = self.cache.sweep(now=NOW + timedelta(seconds=61))
        assert removed == 1
        assert len(self.cache) == 1
        assert self.cache.get(fresh.evaluation_id, now=NOW + timedelta(seconds=61)) is fresh


@pytest.mark.asyncio
async def test_periodic_sweep_runs_until_cancelled() -> None:
    cache = EvaluationCache(ttl_seconds=0)
    cache.put(_result())

    task = asyncio.create_task(run_periodic_sweep(cache, interval_seconds=0.01))
    await asyncio.sleep(0.05)
    task.cancel()
    with contextlib.suppress(asyncio.CancelledError):
        await task

    assert len(cache) == 0
    assert task.cancelled()

"""Short-lived cache of recent evaluation results.

Lets the presentation layer fetch an evaluation again by id (for example
after a reconnect) without re-scoring. Nothing depends on an entry being
present; expiry is driven by an explicit ``sweep`` or the periodic task.
"""

import asyncio
import logging
import threading
from datetime import datetime, timedelta

from backend.config import utcnow
from backend.srs.evaluation import EvaluationResult

logger = logging.getLogger(__name__)


class EvaluationCache:
    """Thread-safe TTL map from evaluation id to result."""

    def __init__(self, ttl_seconds: float) -> None:
        """Initialize an empty cache whose entries live ``ttl_seconds``."""
        self.ttl = timedelta(seconds=ttl_seconds)
        self._lock = threading.Lock()
        self._entries: dict[str, tuple[EvaluationResult, datetime]] = {}

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def put(self, result: EvaluationResult, now: datetime | None = None) -> None:
        expires_at = (now or utcnow()) + self.ttl
        with self._lock:
            self._entries[result.evaluation_id] = (result, expires_at)

    def get(self, evaluation_id: str, now: datetime | None = None) -> EvaluationResult | None:
        """Return a live entry, or None if unknown or expired."""
        now = now or utcnow()
        with self._lock:
            entry = self._entries.get(evaluation_id)
        if entry is None or entry[1] <= now:
            return None
        return entry[0]

    def sweep(self, now: datetime | None = None) -> int:
        """Drop expired entries and return how many were removed."""
        now = now or utcnow()
        with self._lock:
            expired = [key for key, (_, expires_at) in self._entries.items() if expires_at <= now]
            for key in expired:
                del self._entries[key]
        if expired:
            logger.info("Evaluation cache sweep removed %d entries", len(expired))
        return len(expired)


async def run_periodic_sweep(cache: EvaluationCache, interval_seconds: float) -> None:
    """Sweep ``cache`` every ``interval_seconds`` until cancelled."""
    while True:
        await asyncio.sleep(interval_seconds)
        cache.sweep()

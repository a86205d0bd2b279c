"""Review item stores."""

from backend.store.base import ReviewItemStore
from backend.store.memory import InMemoryReviewItemStore
from backend.store.records import HistoryRecord, ItemKind, ItemLocation, ItemRecord, PriorityCounts
from backend.store.sql import SQLReviewItemStore

__all__ = [
    "HistoryRecord",
    "InMemoryReviewItemStore",
    "ItemKind",
    "ItemLocation",
    "ItemRecord",
    "PriorityCounts",
    "ReviewItemStore",
    "SQLReviewItemStore",
    "build_store",
]


def build_store(backend: str, timeout: float | None = None) -> ReviewItemStore:
    """Create the store named by ``backend`` ("sql" or "memory")."""
    if backend == "memory":
        return InMemoryReviewItemStore(timeout=timeout)
    if backend == "sql":
        from backend.database import async_session

        return SQLReviewItemStore(async_session, timeout=timeout)
    raise ValueError(f"Unknown store backend: {backend!r}")

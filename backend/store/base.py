"""Review item store contract.

A store owns the authoritative review items and their append-only history.
Implementations must:

- make every write all-or-nothing, so a cancelled or failed call leaves an
  item in its pre-call or post-call state;
- accept ``update`` only when the caller's record carries the stored
  ``version`` (compare-and-swap), so concurrent read-modify-write cycles on
  the same item cannot lose updates while different items never contend;
- hide soft-deleted items from every query.

Public methods validate input, apply the deadline and translate backend
failures; subclasses implement the ``_``-prefixed primitives.
"""

import asyncio
from abc import ABC, abstractmethod
from collections.abc import Awaitable
from datetime import date, datetime
from typing import TypeVar

from backend.errors import InvalidInputError, StoreUnavailableError
from backend.srs.constants import MIN_EASE_FACTOR
from backend.srs.sm2 import Priority
from backend.store.records import HistoryRecord, ItemLocation, ItemRecord, PriorityCounts

T = TypeVar("T")


def _require(value: str, what: str) -> None:
    if not value or not value.strip():
        raise InvalidInputError(f"{what} is empty")


def validate_item(item: ItemRecord) -> None:
    """Reject records that break review item invariants."""
    _require(item.id, "item id")
    _require(item.owner_id, "owner id")
    _require(item.text, "item text")
    if item.ease_factor < MIN_EASE_FACTOR:
        raise InvalidInputError(f"ease factor {item.ease_factor} is below {MIN_EASE_FACTOR}")
    if item.interval_days < 0:
        raise InvalidInputError(f"interval {item.interval_days} is negative")
    if item.review_count < 0:
        raise InvalidInputError(f"review count {item.review_count} is negative")
    if not 0 <= item.mastery <= 100:
        raise InvalidInputError(f"mastery {item.mastery} is outside 0-100")
    if (
        item.next_review_at is not None
        and item.last_reviewed_at is not None
        and item.next_review_at < item.last_reviewed_at
    ):
        raise InvalidInputError("next review is earlier than last review")


class ReviewItemStore(ABC):
    """Concurrent key-value store for review items and their history."""

    # Backend exceptions that mean "storage unreachable"
    unavailable_errors: tuple[type[BaseException], ...] = (ConnectionError,)

    def __init__(self, timeout: float | None = None) -> None:
        """Initialize the store with a default per-call deadline in seconds (None = no deadline)."""
        self.timeout = timeout

    async def _bounded(self, call: Awaitable[T], timeout: float | None) -> T:
        limit = self.timeout if timeout is None else timeout
        try:
            if limit is None:
                return await call
            async with asyncio.timeout(limit):
                return await call
        except TimeoutError as exc:
            raise StoreUnavailableError(f"store call exceeded {limit}s deadline") from exc
        except self.unavailable_errors as exc:
            raise StoreUnavailableError(f"store unreachable: {exc}") from exc

    # --- Items ---

    async def create(self, item: ItemRecord, timeout: float | None = None) -> ItemRecord:
        """Insert a new item. Duplicate ids are rejected as invalid input."""
        validate_item(item)
        return await self._bounded(self._create(item), timeout)

    async def get_by_id(self, item_id: str, timeout: float | None = None) -> ItemRecord:
        """Return an item or raise NotFoundError."""
        _require(item_id, "item id")
        return await self._bounded(self._get_by_id(item_id), timeout)

    async def get_by_owner(self, owner_id: str, timeout: float | None = None) -> list[ItemRecord]:
        """Return every live item of an owner, oldest first."""
        _require(owner_id, "owner id")
        return await self._bounded(self._get_by_owner(owner_id), timeout)

    async def get_by_location(
        self, location: ItemLocation, timeout: float | None = None
    ) -> list[ItemRecord]:
        """Return the items extracted from one page of one document."""
        _require(location.owner_id, "owner id")
        return await self._bounded(self._get_by_location(location), timeout)

    async def get_due(
        self, owner_id: str, as_of: datetime, timeout: float | None = None
    ) -> list[ItemRecord]:
        """Return items whose next review is at or before ``as_of``, most overdue first."""
        _require(owner_id, "owner id")
        return await self._bounded(self._get_due(owner_id, as_of), timeout)

    async def update(self, item: ItemRecord, timeout: float | None = None) -> ItemRecord:
        """Replace an item if ``item.version`` matches the stored version.

        Returns the stored record with its version bumped. The record's
        ``deleted_at`` is ignored; only ``soft_delete`` tombstones an item.

        Raises:
            NotFoundError: Unknown or deleted id.
            ConflictError: The stored version moved on since ``item`` was read.
            InvalidInputError: The record breaks an item invariant.
        """
        validate_item(item)
        return await self._bounded(self._update(item), timeout)

    async def soft_delete(self, item_id: str, timeout: float | None = None) -> None:
        """Tombstone an item; its history is kept."""
        _require(item_id, "item id")
        await self._bounded(self._soft_delete(item_id), timeout)

    # --- History ---

    async def append_history(
        self, record: HistoryRecord, timeout: float | None = None
    ) -> HistoryRecord:
        """Append one review attempt to an item's history."""
        _require(record.item_id, "item id")
        _require(record.owner_id, "owner id")
        if not 0 <= record.score <= 100:
            raise InvalidInputError(f"score {record.score} is outside 0-100")
        if record.time_spent_seconds < 0:
            raise InvalidInputError("time spent is negative")
        return await self._bounded(self._append_history(record), timeout)

    async def get_history(self, item_id: str, timeout: float | None = None) -> list[HistoryRecord]:
        """Return an item's attempts in the order they were recorded."""
        _require(item_id, "item id")
        return await self._bounded(self._get_history(item_id), timeout)

    async def count_history_since(
        self, owner_id: str, since: datetime, timeout: float | None = None
    ) -> int:
        """Count an owner's attempts strictly after ``since``."""
        _require(owner_id, "owner id")
        return await self._bounded(self._count_history_since(owner_id, since), timeout)

    async def review_days(self, owner_id: str, timeout: float | None = None) -> list[date]:
        """Distinct days with at least one attempt, most recent first."""
        _require(owner_id, "owner id")
        return await self._bounded(self._review_days(owner_id), timeout)

    # --- Aggregates ---

    async def stats(
        self, owner_id: str, as_of: datetime, timeout: float | None = None
    ) -> PriorityCounts:
        """Count an owner's items per urgency tier as of ``as_of``."""
        items = await self.get_by_owner(owner_id, timeout=timeout)
        counts = {priority: 0 for priority in Priority}
        for item in items:
            priority = item.priority(as_of)
            if priority is not None:
                counts[priority] += 1
        return PriorityCounts(
            total=len(items),
            urgent=counts[Priority.URGENT],
            recommended=counts[Priority.RECOMMENDED],
            relaxed=counts[Priority.RELAXED],
        )

    async def ping(self, timeout: float | None = None) -> None:
        """Raise StoreUnavailableError if the backing storage is unreachable."""
        await self._bounded(self._ping(), timeout)

    # --- Primitives ---

    @abstractmethod
    async def _create(self, item: ItemRecord) -> ItemRecord: ...

    @abstractmethod
    async def _get_by_id(self, item_id: str) -> ItemRecord: ...

    @abstractmethod
    async def _get_by_owner(self, owner_id: str) -> list[ItemRecord]: ...

    @abstractmethod
    async def _get_by_location(self, location: ItemLocation) -> list[ItemRecord]: ...

    @abstractmethod
    async def _get_due(self, owner_id: str, as_of: datetime) -> list[ItemRecord]: ...

    @abstractmethod
    async def _update(self, item: ItemRecord) -> ItemRecord: ...

    @abstractmethod
    async def _soft_delete(self, item_id: str) -> None: ...

    @abstractmethod
    async def _append_history(self, record: HistoryRecord) -> HistoryRecord: ...

    @abstractmethod
    async def _get_history(self, item_id: str) -> list[HistoryRecord]: ...

    @abstractmethod
    async def _count_history_since(self, owner_id: str, since: datetime) -> int: ...

    @abstractmethod
    async def _review_days(self, owner_id: str) -> list[date]: ...

    @abstractmethod
    async def _ping(self) -> None: ...

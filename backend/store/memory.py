"""In-memory review item store.

Records are immutable snapshots, so readers never see a half-written item:
a write builds a complete new record and swaps it into the map under a short
lock that is never held across a suspension point.
"""

import dataclasses
import logging
import threading
from collections import defaultdict
from datetime import date, datetime

from backend.config import utcnow
from backend.errors import ConflictError, InvalidInputError, NotFoundError
from backend.store.base import ReviewItemStore
from backend.store.records import HistoryRecord, ItemLocation, ItemRecord

logger = logging.getLogger(__name__)


class InMemoryReviewItemStore(ReviewItemStore):
    """Dict-backed store for tests, demos and single-process deployments."""

    def __init__(self, timeout: float | None = None) -> None:
        """Initialize empty item, index and history maps."""
        super().__init__(timeout)
        self._lock = threading.Lock()
        self._items: dict[str, ItemRecord] = {}
        self._by_owner: dict[str, list[str]] = defaultdict(list)
        self._by_location: dict[ItemLocation, list[str]] = defaultdict(list)
        self._history: dict[str, list[HistoryRecord]] = defaultdict(list)

    def _live(self, item_id: str) -> ItemRecord:
        item = self._items.get(item_id)
        if item is None or item.deleted_at is not None:
            raise NotFoundError(f"review item {item_id} not found")
        return item

    async def _create(self, item: ItemRecord) -> ItemRecord:
        with self._lock:
            if item.id in self._items:
                raise InvalidInputError(f"review item {item.id} already exists")
            self._items[item.id] = item
            self._by_owner[item.owner_id].append(item.id)
            self._by_location[item.location].append(item.id)
        return item

    async def _get_by_id(self, item_id: str) -> ItemRecord:
        return self._live(item_id)

    def _collect(self, ids: list[str]) -> list[ItemRecord]:
        with self._lock:
            items = [self._items[item_id] for item_id in ids]
        return [item for item in items if item.deleted_at is None]

    async def _get_by_owner(self, owner_id: str) -> list[ItemRecord]:
        return self._collect(self._by_owner.get(owner_id, []))

    async def _get_by_location(self, location: ItemLocation) -> list[ItemRecord]:
        return self._collect(self._by_location.get(location, []))

    async def _get_due(self, owner_id: str, as_of: datetime) -> list[ItemRecord]:
        items = await self._get_by_owner(owner_id)
        due = [item for item in items if item.is_due(as_of)]
        due.sort(key=lambda item: item.next_review_at)  # type: ignore[arg-type, return-value]
        return due

    async def _update(self, item: ItemRecord) -> ItemRecord:
        with self._lock:
            current = self._live(item.id)
            if current.version != item.version:
                raise ConflictError(
                    f"review item {item.id} is at version {current.version}, "
                    f"update was based on {item.version}"
                )
            if item.review_count < current.review_count:
                raise InvalidInputError("review count cannot decrease")
            if item.location != current.location:
                raise InvalidInputError("owner and location cannot change")
            stored = dataclasses.replace(
                item,
                created_at=current.created_at,
                updated_at=utcnow(),
                deleted_at=current.deleted_at,  # Only soft_delete tombstones
                version=current.version + 1,
            )
            self._items[item.id] = stored
        return stored

    async def _soft_delete(self, item_id: str) -> None:
        with self._lock:
            current = self._live(item_id)
            now = utcnow()
            self._items[item_id] = dataclasses.replace(
                current, deleted_at=now, updated_at=now, version=current.version + 1
            )
        logger.info("Soft-deleted review item %s", item_id)

    async def _append_history(self, record: HistoryRecord) -> HistoryRecord:
        with self._lock:
            if record.item_id not in self._items:
                raise NotFoundError(f"review item {record.item_id} not found")
            self._history[record.item_id].append(record)
        return record

    async def _get_history(self, item_id: str) -> list[HistoryRecord]:
        with self._lock:
            return list(self._history.get(item_id, []))

    def _owner_history(self, owner_id: str) -> list[HistoryRecord]:
        with self._lock:
            return [r for records in self._history.values() for r in records if r.owner_id == owner_id]

    async def _count_history_since(self, owner_id: str, since: datetime) -> int:
        return sum(1 for r in self._owner_history(owner_id) if r.reviewed_at > since)

    async def _review_days(self, owner_id: str) -> list[date]:
        days = {r.reviewed_at.date() for r in self._owner_history(owner_id)}
        return sorted(days, reverse=True)

    async def _ping(self) -> None:
        return None

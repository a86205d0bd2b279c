"""SQLAlchemy-backed review item store.

Each write runs in a single transaction, so cancellation or a driver error
rolls the item back to its pre-call state. The version check is repeated
in the UPDATE's WHERE clause, which keeps compare-and-swap correct even
when two connections race between the read and the write.
"""

import logging
from datetime import date, datetime

from sqlalchemy import and_, func, select, update
from sqlalchemy.exc import DisconnectionError, InterfaceError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from backend.config import utcnow
from backend.errors import ConflictError, InvalidInputError, NotFoundError
from backend.models.review_history import ReviewHistory
from backend.models.review_item import ReviewItem
from backend.store.base import ReviewItemStore
from backend.store.records import HistoryRecord, ItemKind, ItemLocation, ItemRecord

logger = logging.getLogger(__name__)


def _to_record(row: ReviewItem) -> ItemRecord:
    return ItemRecord(
        id=row.id,
        owner_id=row.owner_id,
        document_id=row.document_id,
        page=row.page,
        kind=ItemKind(row.kind),
        text=row.text,
        translation=row.translation,
        language=row.language,
        mastery=row.mastery,
        ease_factor=row.ease_factor,
        interval_days=row.interval_days,
        last_reviewed_at=row.last_reviewed_at,
        next_review_at=row.next_review_at,
        review_count=row.review_count,
        last_score=row.last_score,
        version=row.version,
        created_at=row.created_at,
        updated_at=row.updated_at,
        deleted_at=row.deleted_at,
    )


def _to_history(row: ReviewHistory) -> HistoryRecord:
    return HistoryRecord(
        id=row.id,
        item_id=row.item_id,
        owner_id=row.owner_id,
        score=row.score,
        time_spent_seconds=row.time_spent_seconds,
        reviewed_at=row.reviewed_at,
    )


def _mutable_columns(item: ItemRecord) -> dict:
    """Columns an update may change."""
    return {
        "kind": item.kind.value,
        "text": item.text,
        "translation": item.translation,
        "language": item.language,
        "mastery": item.mastery,
        "ease_factor": item.ease_factor,
        "interval_days": item.interval_days,
        "last_reviewed_at": item.last_reviewed_at,
        "next_review_at": item.next_review_at,
        "review_count": item.review_count,
        "last_score": item.last_score,
    }


class SQLReviewItemStore(ReviewItemStore):
    """Store backed by the ``review_items`` and ``review_history`` tables."""

    unavailable_errors = (OperationalError, InterfaceError, DisconnectionError, ConnectionError)

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        timeout: float | None = None,
    ) -> None:
        """Initialize the store with a session factory."""
        super().__init__(timeout)
        self.session_factory = session_factory

    async def _live_row(self, session: AsyncSession, item_id: str) -> ReviewItem:
        row = await session.get(ReviewItem, item_id)
        if row is None or row.deleted_at is not None:
            raise NotFoundError(f"review item {item_id} not found")
        return row

    async def _create(self, item: ItemRecord) -> ItemRecord:
        async with self.session_factory() as session, session.begin():
            if await session.get(ReviewItem, item.id) is not None:
                raise InvalidInputError(f"review item {item.id} already exists")
            session.add(
                ReviewItem(
                    id=item.id,
                    owner_id=item.owner_id,
                    document_id=item.document_id,
                    page=item.page,
                    version=item.version,
                    created_at=item.created_at,
                    updated_at=item.updated_at,
                    **_mutable_columns(item),
                )
            )
        return item

    async def _get_by_id(self, item_id: str) -> ItemRecord:
        async with self.session_factory() as session:
            return _to_record(await self._live_row(session, item_id))

    async def _select_items(self, *conditions, order_by=None) -> list[ItemRecord]:
        stmt = select(ReviewItem).where(and_(ReviewItem.deleted_at.is_(None), *conditions))
        stmt = stmt.order_by(order_by if order_by is not None else ReviewItem.created_at.asc())
        async with self.session_factory() as session:
            result = await session.execute(stmt)
            return [_to_record(row) for row in result.scalars().all()]

    async def _get_by_owner(self, owner_id: str) -> list[ItemRecord]:
        return await self._select_items(ReviewItem.owner_id == owner_id)

    async def _get_by_location(self, location: ItemLocation) -> list[ItemRecord]:
        return await self._select_items(
            ReviewItem.owner_id == location.owner_id,
            ReviewItem.document_id == location.document_id,
            ReviewItem.page == location.page,
        )

    async def _get_due(self, owner_id: str, as_of: datetime) -> list[ItemRecord]:
        return await self._select_items(
            ReviewItem.owner_id == owner_id,
            ReviewItem.next_review_at.is_not(None),
            ReviewItem.next_review_at <= as_of,
            order_by=ReviewItem.next_review_at.asc(),  # Most overdue first
        )

    async def _update(self, item: ItemRecord) -> ItemRecord:
        async with self.session_factory() as session, session.begin():
            current = await self._live_row(session, item.id)
            if current.version != item.version:
                raise ConflictError(
                    f"review item {item.id} is at version {current.version}, "
                    f"update was based on {item.version}"
                )
            if item.review_count < current.review_count:
                raise InvalidInputError("review count cannot decrease")
            if (item.owner_id, item.document_id, item.page) != (
                current.owner_id,
                current.document_id,
                current.page,
            ):
                raise InvalidInputError("owner and location cannot change")

            stmt = (
                update(ReviewItem)
                .where(ReviewItem.id == item.id, ReviewItem.version == item.version)
                .values(**_mutable_columns(item), version=item.version + 1, updated_at=utcnow())
                .execution_options(synchronize_session=False)
            )
            result = await session.execute(stmt)
            if result.rowcount != 1:
                raise ConflictError(f"review item {item.id} changed during update")

        async with self.session_factory() as session:
            return _to_record(await self._live_row(session, item.id))

    async def _soft_delete(self, item_id: str) -> None:
        async with self.session_factory() as session, session.begin():
            row = await self._live_row(session, item_id)
            now = utcnow()
            row.deleted_at = now
            row.updated_at = now
            row.version += 1
        logger.info("Soft-deleted review item %s", item_id)

    async def _append_history(self, record: HistoryRecord) -> HistoryRecord:
        async with self.session_factory() as session, session.begin():
            if await session.get(ReviewItem, record.item_id) is None:
                raise NotFoundError(f"review item {record.item_id} not found")
            session.add(
                ReviewHistory(
                    id=record.id,
                    item_id=record.item_id,
                    owner_id=record.owner_id,
                    score=record.score,
                    time_spent_seconds=record.time_spent_seconds,
                    reviewed_at=record.reviewed_at,
                )
            )
        return record

    async def _get_history(self, item_id: str) -> list[HistoryRecord]:
        stmt = (
            select(ReviewHistory)
            .where(ReviewHistory.item_id == item_id)
            .order_by(ReviewHistory.reviewed_at.asc())
        )
        async with self.session_factory() as session:
            result = await session.execute(stmt)
            return [_to_history(row) for row in result.scalars().all()]

    async def _count_history_since(self, owner_id: str, since: datetime) -> int:
        stmt = select(func.count(ReviewHistory.id)).where(
            and_(ReviewHistory.owner_id == owner_id, ReviewHistory.reviewed_at > since)
        )
        async with self.session_factory() as session:
            return (await session.execute(stmt)).scalar() or 0

    async def _review_days(self, owner_id: str) -> list[date]:
        stmt = (
            select(func.date(ReviewHistory.reviewed_at))
            .distinct()
            .where(ReviewHistory.owner_id == owner_id)
            .order_by(func.date(ReviewHistory.reviewed_at).desc())
        )
        async with self.session_factory() as session:
            result = await session.execute(stmt)
            return [date.fromisoformat(str(row[0])) for row in result.all()]

    async def _ping(self) -> None:
        async with self.session_factory() as session:
            await session.execute(select(1))

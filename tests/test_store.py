"""Tests for the review item stores (in-memory and SQLite)."""

import asyncio
import dataclasses
from collections.abc import AsyncIterator
from datetime import datetime, timedelta

import pytest
import pytest_asyncio
from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from backend.errors import (
    ConflictError,
    InvalidInputError,
    NotFoundError,
    StoreUnavailableError,
)
from backend.models import Base, ReviewItem
from backend.store import (
    HistoryRecord,
    InMemoryReviewItemStore,
    ItemLocation,
    ItemRecord,
    ReviewItemStore,
    SQLReviewItemStore,
    build_store,
)

NOW = datetime(2024, 5, 1, 12, 0, 0)


@pytest_asyncio.fixture(params=["memory", "sql"])
async def store(request: pytest.FixtureRequest, tmp_path) -> AsyncIterator[ReviewItemStore]:
    if request.param == "memory":
        yield InMemoryReviewItemStore()
        return
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'store.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield SQLReviewItemStore(async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False))
    await engine.dispose()


def _item(owner_id: str = "alice", **overrides) -> ItemRecord:
    fields = {"owner_id": owner_id, "text": "hello", "document_id": "book-1", "page": 3}
    fields.update(overrides)
    return ItemRecord(**fields)


def _scheduled(item: ItemRecord, next_review_at: datetime) -> ItemRecord:
    return dataclasses.replace(
        item,
        interval_days=1,
        last_reviewed_at=next_review_at - timedelta(days=1),
        next_review_at=next_review_at,
        review_count=item.review_count + 1,
    )


class TestItems:
    @pytest.mark.asyncio
    async def test_create_and_get(self, store: ReviewItemStore) -> None:
        item = await store.create(_item(translation="hola"))
        fetched = await store.get_by_id(item.id)
        assert fetched.id == item.id
        assert fetched.text == "hello"
        assert fetched.translation == "hola"
        assert fetched.location == ItemLocation("alice", "book-1", 3)
        assert fetched.version == 1
        assert fetched.next_review_at is None

    @pytest.mark.asyncio
    async def test_get_unknown_raises_not_found(self, store: ReviewItemStore) -> None:
        with pytest.raises(NotFoundError):
            await store.get_by_id("missing")

    @pytest.mark.asyncio
    async def test_duplicate_id_rejected(self, store: ReviewItemStore) -> None:
        item = await store.create(_item())
        with pytest.raises(InvalidInputError):
            await store.create(item)

    @pytest.mark.asyncio
    async def test_invalid_item_rejected(self, store: ReviewItemStore) -> None:
        with pytest.raises(InvalidInputError):
            await store.create(_item(text="  "))
        with pytest.raises(InvalidInputError):
            await store.create(_item(ease_factor=1.0))
        with pytest.raises(InvalidInputError):
            await store.create(_item(owner_id=""))

    @pytest.mark.asyncio
    async def test_get_by_owner_and_location(self, store: ReviewItemStore) -> None:
        first = await store.create(_item())
        second = await store.create(_item(text="world", page=4))
        await store.create(_item(owner_id="bob"))

        owned = await store.get_by_owner("alice")
        assert {item.id for item in owned} == {first.id, second.id}

        on_page = await store.get_by_location(ItemLocation("alice", "book-1", 4))
        assert [item.id for item in on_page] == [second.id]

    @pytest.mark.asyncio
    async def test_update_bumps_version(self, store: ReviewItemStore) -> None:
        item = await store.create(_item())
        updated = await store.update(_scheduled(item, NOW))
        assert updated.version == 2
        assert updated.next_review_at == NOW
        assert (await store.get_by_id(item.id)).review_count == 1

    @pytest.mark.asyncio
    async def test_stale_version_conflicts(self, store: ReviewItemStore) -> None:
        item = await store.create(_item())
        await store.update(_scheduled(item, NOW))
        with pytest.raises(ConflictError) as exc_info:
            await store.update(_scheduled(item, NOW + timedelta(days=2)))
        assert exc_info.value.retryable

        current = await store.get_by_id(item.id)
        assert current.next_review_at == NOW

    @pytest.mark.asyncio
    async def test_update_unknown_raises_not_found(self, store: ReviewItemStore) -> None:
        with pytest.raises(NotFoundError):
            await store.update(_item())

    @pytest.mark.asyncio
    async def test_review_count_cannot_decrease(self, store: ReviewItemStore) -> None:
        item = await store.update(_scheduled(await store.create(_item()), NOW))
        with pytest.raises(InvalidInputError):
            await store.update(dataclasses.replace(item, review_count=0))

    @pytest.mark.asyncio
    async def test_location_is_immutable(self, store: ReviewItemStore) -> None:
        item = await store.create(_item())
        with pytest.raises(InvalidInputError):
            await store.update(dataclasses.replace(item, page=9))

    @pytest.mark.asyncio
    async def test_update_cannot_tombstone(self, store: ReviewItemStore) -> None:
        item = await store.create(_item())
        updated = await store.update(dataclasses.replace(item, deleted_at=NOW))

        assert updated.deleted_at is None
        assert (await store.get_by_id(item.id)).deleted_at is None
        assert [owned.id for owned in await store.get_by_owner("alice")] == [item.id]

    @pytest.mark.asyncio
    async def test_soft_delete_hides_item(self, store: ReviewItemStore) -> None:
        item = await store.update(_scheduled(await store.create(_item()), NOW))
        await store.append_history(HistoryRecord(item_id=item.id, owner_id="alice", score=80))
        await store.soft_delete(item.id)

        with pytest.raises(NotFoundError):
            await store.get_by_id(item.id)
        assert await store.get_by_owner("alice") == []
        assert await store.get_due("alice", NOW + timedelta(days=1)) == []
        assert len(await store.get_history(item.id)) == 1

        with pytest.raises(NotFoundError):
            await store.soft_delete(item.id)


class TestDue:
    @pytest.mark.asyncio
    async def test_boundary_is_inclusive(self, store: ReviewItemStore) -> None:
        on_time = await store.update(_scheduled(await store.create(_item()), NOW))
        later = await store.update(
            _scheduled(await store.create(_item()), NOW + timedelta(seconds=1))
        )
        await store.create(_item())  # Never scheduled

        due = await store.get_due("alice", NOW)
        assert [item.id for item in due] == [on_time.id]

        due_later = await store.get_due("alice", NOW + timedelta(seconds=1))
        assert {item.id for item in due_later} == {on_time.id, later.id}

    @pytest.mark.asyncio
    async def test_most_overdue_first(self, store: ReviewItemStore) -> None:
        recent = await store.update(
            _scheduled(await store.create(_item()), NOW - timedelta(hours=1))
        )
        oldest = await store.update(
            _scheduled(await store.create(_item()), NOW - timedelta(days=3))
        )
        due = await store.get_due("alice", NOW)
        assert [item.id for item in due] == [oldest.id, recent.id]

    @pytest.mark.asyncio
    async def test_other_owner_not_included(self, store: ReviewItemStore) -> None:
        await store.update(_scheduled(await store.create(_item(owner_id="bob")), NOW))
        assert await store.get_due("alice", NOW) == []


class TestHistoryAndStats:
    @pytest.mark.asyncio
    async def test_history_in_order(self, store: ReviewItemStore) -> None:
        item = await store.create(_item())
        for offset, score in enumerate([40, 70, 95]):
            await store.append_history(
                HistoryRecord(
                    item_id=item.id,
                    owner_id="alice",
                    score=score,
                    reviewed_at=NOW + timedelta(minutes=offset),
                )
            )
        history = await store.get_history(item.id)
        assert [record.score for record in history] == [40, 70, 95]

    @pytest.mark.asyncio
    async def test_history_for_unknown_item(self, store: ReviewItemStore) -> None:
        with pytest.raises(NotFoundError):
            await store.append_history(HistoryRecord(item_id="missing", owner_id="alice", score=50))

    @pytest.mark.asyncio
    async def test_history_score_validated(self, store: ReviewItemStore) -> None:
        item = await store.create(_item())
        with pytest.raises(InvalidInputError):
            await store.append_history(HistoryRecord(item_id=item.id, owner_id="alice", score=101))

    @pytest.mark.asyncio
    async def test_count_since_and_review_days(self, store: ReviewItemStore) -> None:
        item = await store.create(_item())
        for reviewed_at in (NOW - timedelta(days=2), NOW - timedelta(hours=1), NOW):
            await store.append_history(
                HistoryRecord(item_id=item.id, owner_id="alice", score=80, reviewed_at=reviewed_at)
            )
        assert await store.count_history_since("alice", NOW - timedelta(days=1)) == 2
        assert await store.count_history_since("bob", NOW - timedelta(days=10)) == 0
        assert await store.review_days("alice") == [NOW.date(), (NOW - timedelta(days=2)).date()]

    @pytest.mark.asyncio
    async def test_stats(self, store: ReviewItemStore) -> None:
        await store.create(_item())  # Never scheduled: counted in total only
        await store.update(_scheduled(await store.create(_item()), NOW - timedelta(hours=2)))
        await store.update(_scheduled(await store.create(_item()), NOW + timedelta(hours=30)))
        await store.update(_scheduled(await store.create(_item()), NOW + timedelta(days=5)))
        await store.update(_scheduled(await store.create(_item()), NOW + timedelta(days=6)))

        counts = await store.stats("alice", NOW)
        assert counts.total == 5
        assert counts.urgent == 1
        assert counts.recommended == 1
        assert counts.relaxed == 2
        assert counts.scheduled == 4

    @pytest.mark.asyncio
    async def test_ping(self, store: ReviewItemStore) -> None:
        await store.ping()


class InterleavedWriterStore(SQLReviewItemStore):
    """Commits a competing version bump right after the first row read."""

    interleaved = False

    async def _live_row(self, session: AsyncSession, item_id: str) -> ReviewItem:
        row = await super()._live_row(session, item_id)
        if not self.interleaved:
            self.interleaved = True
            async with self.session_factory() as other, other.begin():
                await other.execute(
                    update(ReviewItem)
                    .where(ReviewItem.id == item_id)
                    .values(version=ReviewItem.version + 1)
                )
        return row


class TestSQLRace:
    @pytest.mark.asyncio
    async def test_write_between_read_and_update_conflicts(self, tmp_path) -> None:
        engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'race.db'}")
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
        store = InterleavedWriterStore(session_factory)
        plain = SQLReviewItemStore(session_factory)
        try:
            item = await plain.create(_item())
            with pytest.raises(ConflictError):
                await store.update(_scheduled(item, NOW))

            current = await plain.get_by_id(item.id)
            assert current.version == 2
            assert current.next_review_at is None
        finally:
            await engine.dispose()


class SlowStore(InMemoryReviewItemStore):
    async def _ping(self) -> None:
        await asyncio.sleep(1)


class BrokenStore(InMemoryReviewItemStore):
    async def _get_by_owner(self, owner_id: str) -> list[ItemRecord]:
        raise ConnectionError("connection refused")


class TestAvailability:
    @pytest.mark.asyncio
    async def test_deadline_exceeded(self) -> None:
        with pytest.raises(StoreUnavailableError) as exc_info:
            await SlowStore(timeout=0.01).ping()
        assert exc_info.value.retryable

    @pytest.mark.asyncio
    async def test_per_call_deadline_overrides_default(self) -> None:
        with pytest.raises(StoreUnavailableError):
            await SlowStore(timeout=None).ping(timeout=0.01)

    @pytest.mark.asyncio
    async def test_backend_failure_translated(self) -> None:
        with pytest.raises(StoreUnavailableError):
            await BrokenStore().get_by_owner("alice")

    def test_build_store(self) -> None:
        assert isinstance(build_store("memory"), InMemoryReviewItemStore)
        with pytest.raises(ValueError):
            build_store("redis")

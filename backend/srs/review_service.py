"""Review service.

Coordinates evaluation, SM-2 scheduling and the review item store into the
operations the API and CLI expose: creating items, recording attempts,
triaging items by urgency and summarizing progress.
"""

from __future__ import annotations

import dataclasses
import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta

from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_random_exponential,
)

from backend.config import settings, utcnow
from backend.errors import ConflictError, InvalidInputError
from backend.srs.constants import SUPPORTED_LANGUAGES
from backend.srs.evaluation import EvaluationResult, evaluate
from backend.srs.sm2 import Priority, ScheduleResult, SM2Scheduler, update_mastery
from backend.srs.timing import DEFAULT_TIMING, TimedToken, TimingConfig
from backend.store.base import ReviewItemStore
from backend.store.records import HistoryRecord, ItemKind, ItemLocation, ItemRecord, PriorityCounts

logger = logging.getLogger(__name__)


@dataclass
class NewItem:
    """Data for a reviewable word or phrase found in a learner's content."""

    owner_id: str
    document_id: str
    page: int
    text: str
    translation: str = ""
    language: str = "en"
    kind: ItemKind = ItemKind.PHRASE


@dataclass
class Attempt:
    """A transcribed attempt at an item, as delivered by the recognizer."""

    recognized_text: str
    tokens: list[TimedToken]
    duration: float
    time_spent_seconds: int = 0


@dataclass
class ReviewOutcome:
    """The stored item and its new schedule after one attempt."""

    item: ItemRecord
    schedule: ScheduleResult
    history: HistoryRecord


@dataclass
class PriorityBuckets:
    """An owner's items split by urgency, most urgent first within each bucket."""

    urgent: list[ItemRecord] = field(default_factory=list)
    recommended: list[ItemRecord] = field(default_factory=list)
    relaxed: list[ItemRecord] = field(default_factory=list)


@dataclass
class Reminder:
    """Payload for push-style review reminders."""

    owner_id: str
    due_count: int
    buckets: PriorityBuckets


@dataclass
class Dashboard:
    """Progress summary for one owner."""

    counts: PriorityCounts
    completed_today: int
    weekly_completion_rate: float  # Percent of one review per item per day
    streak_days: int
    average_mastery: float | None


def validate_language(language: str) -> None:
    if language not in SUPPORTED_LANGUAGES:
        raise InvalidInputError(f"unsupported language code: {language!r}")


def current_streak(days: Sequence[date], today: date) -> int:
    """Count consecutive days with reviews, ending today, from newest-first days."""
    streak = 0
    for i, review_day in enumerate(days):
        if review_day == today - timedelta(days=i):
            streak += 1
        else:
            break
    return streak


class ReviewService:
    """Application service over a review item store."""

    def __init__(
        self,
        store: ReviewItemStore,
        scheduler: SM2Scheduler | None = None,
        timing: TimingConfig = DEFAULT_TIMING,
        max_attempts: int = settings.update_max_attempts,
    ) -> None:
        """Initialize the service with a store and optional scheduler/timing overrides."""
        self.store = store
        self.scheduler = scheduler or SM2Scheduler(min_ease_factor=settings.min_ease_factor)
        self.timing = timing
        self.max_attempts = max_attempts

    # --- Items ---

    async def create_item(self, data: NewItem) -> ItemRecord:
        """Create a review item that has never been reviewed."""
        validate_language(data.language)
        item = ItemRecord(
            owner_id=data.owner_id,
            document_id=data.document_id,
            page=data.page,
            kind=data.kind,
            text=data.text.strip(),
            translation=data.translation,
            language=data.language,
            ease_factor=settings.default_ease_factor,
        )
        created = await self.store.create(item)
        logger.info("Created %s item %s for owner %s", item.kind.value, item.id, item.owner_id)
        return created

    async def bulk_create_items(self, items: Sequence[NewItem]) -> list[ItemRecord]:
        """Create several items; stops at the first failure."""
        return [await self.create_item(data) for data in items]

    async def items_at(self, location: ItemLocation) -> list[ItemRecord]:
        return await self.store.get_by_location(location)

    async def remove_item(self, item_id: str) -> None:
        await self.store.soft_delete(item_id)

    async def history(self, item_id: str) -> list[HistoryRecord]:
        await self.store.get_by_id(item_id)
        return await self.store.get_history(item_id)

    # --- Attempts ---

    def evaluate(
        self,
        expected_text: str,
        attempt: Attempt,
        language: str = "en",
    ) -> EvaluationResult:
        """Score an attempt without touching the store."""
        validate_language(language)
        return evaluate(
            expected_text,
            attempt.recognized_text,
            attempt.tokens,
            attempt.duration,
            timing=self.timing,
        )

    async def evaluate_attempt(
        self,
        item_id: str,
        attempt: Attempt,
        now: datetime | None = None,
    ) -> tuple[EvaluationResult, ReviewOutcome]:
        """Score an attempt against an item's text and record the result."""
        item = await self.store.get_by_id(item_id)
        result = self.evaluate(item.text, attempt, language=item.language)
        outcome = await self.complete_review(
            item_id, result.total_score, attempt.time_spent_seconds, now=now
        )
        return result, outcome

    async def complete_review(
        self,
        item_id: str,
        score: int,
        time_spent_seconds: int = 0,
        now: datetime | None = None,
    ) -> ReviewOutcome:
        """Record an attempt's score: reschedule the item and append history.

        The read-modify-write of the item is retried when another writer
        updated the same item in between; after ``max_attempts`` the
        ConflictError propagates.
        """
        if time_spent_seconds < 0:
            raise InvalidInputError("time spent is negative")

        retrying = AsyncRetrying(
            retry=retry_if_exception_type(ConflictError),
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_random_exponential(multiplier=0.01, max=0.2),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )
        async for attempt in retrying:
            with attempt:
                reviewed_at = now or utcnow()
                item, schedule = await self._reschedule(item_id, score, reviewed_at)

        history = await self.store.append_history(
            HistoryRecord(
                item_id=item.id,
                owner_id=item.owner_id,
                score=score,
                time_spent_seconds=time_spent_seconds,
                reviewed_at=reviewed_at,
            )
        )
        logger.info(
            "Recorded score %d for item %s: next review in %d days (%s)",
            score,
            item_id,
            schedule.interval_days,
            schedule.priority.value,
        )
        return ReviewOutcome(item=item, schedule=schedule, history=history)

    async def _reschedule(
        self, item_id: str, score: int, reviewed_at: datetime
    ) -> tuple[ItemRecord, ScheduleResult]:
        current = await self.store.get_by_id(item_id)
        schedule = self.scheduler.record_attempt(current.schedule_state, score, now=reviewed_at)
        updated = dataclasses.replace(
            current,
            ease_factor=schedule.ease_factor,
            interval_days=schedule.interval_days,
            last_reviewed_at=reviewed_at,
            next_review_at=schedule.next_review_at,
            review_count=current.review_count + 1,
            last_score=score,
            mastery=update_mastery(current.mastery, score),
        )
        return await self.store.update(updated), schedule

    # --- Triage ---

    async def due_items(self, owner_id: str, as_of: datetime | None = None) -> list[ItemRecord]:
        return await self.store.get_due(owner_id, as_of or utcnow())

    async def items_by_priority(self, owner_id: str, now: datetime | None = None) -> PriorityBuckets:
        """Split an owner's items by urgency.

        Items that were never scheduled have nothing to wait for and go to
        the urgent bucket.
        """
        now = now or utcnow()
        items = await self.store.get_by_owner(owner_id)
        items.sort(key=lambda item: (item.next_review_at is not None, item.next_review_at or now))

        buckets = PriorityBuckets()
        for item in items:
            priority = item.priority(now) or Priority.URGENT
            if priority is Priority.URGENT:
                buckets.urgent.append(item)
            elif priority is Priority.RECOMMENDED:
                buckets.recommended.append(item)
            else:
                buckets.relaxed.append(item)
        return buckets

    async def reminder(self, owner_id: str, now: datetime | None = None) -> Reminder:
        now = now or utcnow()
        due = await self.store.get_due(owner_id, now)
        buckets = await self.items_by_priority(owner_id, now)
        return Reminder(owner_id=owner_id, due_count=len(due), buckets=buckets)

    async def stats(self, owner_id: str, as_of: datetime | None = None) -> PriorityCounts:
        return await self.store.stats(owner_id, as_of or utcnow())

    async def dashboard(self, owner_id: str, now: datetime | None = None) -> Dashboard:
        """Counts per tier plus review activity over the last day and week."""
        now = now or utcnow()
        items = await self.store.get_by_owner(owner_id)
        counts = await self.store.stats(owner_id, now)

        today_start = datetime.combine(now.date(), datetime.min.time())
        completed_today = await self.store.count_history_since(owner_id, today_start)
        completed_week = await self.store.count_history_since(
            owner_id, today_start - timedelta(days=7)
        )
        weekly_target = len(items) * 7
        weekly_rate = completed_week / weekly_target * 100 if weekly_target else 0.0

        days = await self.store.review_days(owner_id)
        average_mastery = sum(item.mastery for item in items) / len(items) if items else None

        return Dashboard(
            counts=counts,
            completed_today=completed_today,
            weekly_completion_rate=round(weekly_rate, 1),
            streak_days=current_streak(days, now.date()),
            average_mastery=round(average_mastery, 1) if average_mastery is not None else None,
        )

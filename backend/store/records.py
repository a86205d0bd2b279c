"""Immutable snapshots exchanged with review item stores."""

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from backend.config import utcnow
from backend.srs.constants import DEFAULT_EASE_FACTOR
from backend.srs.sm2 import Priority, ScheduleState, priority_for


class ItemKind(Enum):
    WORD = "word"
    PHRASE = "phrase"


@dataclass(frozen=True)
class ItemLocation:
    """Where an item came from: secondary key (owner, document, page)."""

    owner_id: str
    document_id: str
    page: int


def new_id() -> str:
    return str(uuid.uuid4())


@dataclass(frozen=True)
class ItemRecord:
    """A review item as stored.

    ``version`` is the optimistic-concurrency token: a store accepts an
    update only if it carries the version it currently holds.
    """

    owner_id: str
    text: str
    translation: str = ""
    language: str = "en"
    kind: ItemKind = ItemKind.WORD
    document_id: str = ""
    page: int = 0
    mastery: int = 0
    ease_factor: float = DEFAULT_EASE_FACTOR
    interval_days: int = 0
    last_reviewed_at: datetime | None = None
    next_review_at: datetime | None = None
    review_count: int = 0
    last_score: int | None = None
    version: int = 1
    id: str = field(default_factory=new_id)
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)
    deleted_at: datetime | None = None

    @property
    def location(self) -> ItemLocation:
        return ItemLocation(self.owner_id, self.document_id, self.page)

    @property
    def schedule_state(self) -> ScheduleState:
        return ScheduleState(ease_factor=self.ease_factor, interval_days=self.interval_days)

    def is_due(self, as_of: datetime) -> bool:
        """Due at or before ``as_of``; never-scheduled items are not due."""
        return self.next_review_at is not None and self.next_review_at <= as_of

    def priority(self, now: datetime) -> Priority | None:
        """Urgency tier, or None when the item has never been scheduled."""
        if self.next_review_at is None:
            return None
        return priority_for(self.next_review_at, now)


@dataclass(frozen=True)
class HistoryRecord:
    """One completed review attempt. Append-only."""

    item_id: str
    owner_id: str
    score: int
    time_spent_seconds: int = 0
    reviewed_at: datetime = field(default_factory=utcnow)
    id: str = field(default_factory=new_id)


@dataclass(frozen=True)
class PriorityCounts:
    """Item counts per urgency tier for one owner.

    ``total`` counts every item; only scheduled items land in a tier.
    """

    total: int = 0
    urgent: int = 0
    recommended: int = 0
    relaxed: int = 0

    @property
    def scheduled(self) -> int:
        return self.urgent + self.recommended + self.relaxed

"""SM-2 spaced repetition scheduling driven by 0-100 quality scores.

Key concepts:
- Ease factor (EF): multiplier controlling how fast intervals grow, never below 1.3.
- Quality grade (q): 0, 2, 3, 4 or 5, derived from the score. There is no grade 1.
- Interval: days until the next review. A failing grade (q < 3) resets it to 1.
- Priority: urgency tier derived from the time left until the next review.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum

from backend.config import utcnow
from backend.errors import InvalidInputError
from backend.srs.constants import (
    DEFAULT_EASE_FACTOR,
    FIRST_INTERVAL_DAYS,
    MASTERY_GAIN,
    MASTERY_GAIN_SCORE,
    MASTERY_LOSS,
    MASTERY_LOSS_SCORE,
    MIN_EASE_FACTOR,
    PASSING_GRADE,
    RECOMMENDED_WITHIN_HOURS,
    SECOND_INTERVAL_DAYS,
    URGENT_WITHIN_HOURS,
)
from backend.srs.timing import round_half_up

logger = logging.getLogger(__name__)

# (minimum score, grade), checked top down
GRADE_THRESHOLDS: list[tuple[int, int]] = [
    (90, 5),  # Perfect recall
    (70, 4),  # Correct after hesitation
    (50, 3),  # Correct with serious difficulty
    (30, 2),  # Wrong, but remembered once shown
]


class Priority(Enum):
    """How urgently an item should be reviewed."""

    URGENT = "urgent"  # Overdue or due within a day
    RECOMMENDED = "recommended"  # Due within two days
    RELAXED = "relaxed"  # Can wait


@dataclass(frozen=True)
class ScheduleState:
    """The scheduling state carried by a review item."""

    ease_factor: float = DEFAULT_EASE_FACTOR
    interval_days: int = 0


@dataclass(frozen=True)
class ScheduleResult:
    """The scheduling state after recording an attempt."""

    ease_factor: float
    interval_days: int
    next_review_at: datetime
    priority: Priority
    quality: int


def quality_grade(score: int) -> int:
    """Map a 0-100 score to an SM-2 quality grade."""
    for minimum, grade in GRADE_THRESHOLDS:
        if score >= minimum:
            return grade
    return 0


def priority_for(next_review_at: datetime, now: datetime | None = None) -> Priority:
    """Classify a next-review timestamp relative to ``now``.

    Bounds are inclusive: exactly 24 hours away is still urgent and exactly
    48 hours away is still recommended.
    """
    now = now or utcnow()
    hours_until = (next_review_at - now).total_seconds() / 3600
    if hours_until <= URGENT_WITHIN_HOURS:
        return Priority.URGENT
    if hours_until <= RECOMMENDED_WITHIN_HOURS:
        return Priority.RECOMMENDED
    return Priority.RELAXED


def update_mastery(mastery: int, score: int) -> int:
    """Nudge the informational mastery percentage after an attempt."""
    if score >= MASTERY_GAIN_SCORE:
        mastery += MASTERY_GAIN
    elif score < MASTERY_LOSS_SCORE:
        mastery -= MASTERY_LOSS
    return max(0, min(100, mastery))


class SM2Scheduler:
    """SuperMemo 2 scheduler with a score-to-grade front end."""

    def __init__(self, min_ease_factor: float = MIN_EASE_FACTOR) -> None:
        """Initialize the scheduler with the ease factor floor."""
        if min_ease_factor < MIN_EASE_FACTOR:
            raise ValueError(
                f"ease factor floor must be at least {MIN_EASE_FACTOR}, got {min_ease_factor}"
            )
        self.min_ease_factor = min_ease_factor

    def next_ease_factor(self, ease_factor: float, quality: int) -> float:
        """EF' = EF + (0.1 - (5-q) * (0.08 + (5-q) * 0.02)), floored."""
        miss = 5 - quality
        return max(self.min_ease_factor, ease_factor + (0.1 - miss * (0.08 + miss * 0.02)))

    def next_interval(self, interval_days: int, ease_factor: float, quality: int) -> int:
        """Days until the next review, given the already-updated ease factor."""
        if quality < PASSING_GRADE:
            return FIRST_INTERVAL_DAYS
        if interval_days == 0:
            return FIRST_INTERVAL_DAYS
        if interval_days == 1:
            return SECOND_INTERVAL_DAYS
        return round_half_up(interval_days * ease_factor)

    def record_attempt(
        self,
        state: ScheduleState,
        quality_score: int,
        now: datetime | None = None,
    ) -> ScheduleResult:
        """Compute the next scheduling state for an attempt.

        Pure: nothing is persisted here.

        Args:
            state: Current ease factor and interval.
            quality_score: The attempt's 0-100 score.
            now: Time of the attempt (defaults to utcnow).

        Returns:
            ScheduleResult with the new ease factor, interval, due time and priority.

        Raises:
            InvalidInputError: If the score or prior state is out of range.
        """
        if not 0 <= quality_score <= 100:
            raise InvalidInputError(f"quality score must be between 0 and 100, got {quality_score}")
        if state.interval_days < 0:
            raise InvalidInputError(f"interval must be non-negative, got {state.interval_days}")

        now = now or utcnow()
        quality = quality_grade(quality_score)
        ease_factor = self.next_ease_factor(state.ease_factor, quality)
        interval_days = self.next_interval(state.interval_days, ease_factor, quality)
        next_review_at = now + timedelta(days=interval_days)

        logger.debug(
            "Score %d -> grade %d: EF %.2f -> %.2f, interval %d -> %d days",
            quality_score,
            quality,
            state.ease_factor,
            ease_factor,
            state.interval_days,
            interval_days,
        )

        return ScheduleResult(
            ease_factor=ease_factor,
            interval_days=interval_days,
            next_review_at=next_review_at,
            priority=priority_for(next_review_at, now),
            quality=quality,
        )


default_scheduler = SM2Scheduler()

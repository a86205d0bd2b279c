"""Conversions from engine results to API response models."""

from datetime import datetime

from backend.api.schemas import (
    EvaluationResponse,
    FeedbackResponse,
    ItemResponse,
    PriorityBucketsResponse,
    ScheduleResponse,
    TimedTokenSchema,
    TokenScoreResponse,
)
from backend.config import utcnow
from backend.srs.evaluation import EvaluationResult, tokens_from_text
from backend.srs.review_service import Attempt, PriorityBuckets
from backend.srs.sm2 import ScheduleResult
from backend.srs.timing import TimedToken
from backend.store.records import ItemRecord


def item_response(item: ItemRecord, now: datetime | None = None) -> ItemResponse:
    priority = item.priority(now or utcnow())
    return ItemResponse(
        id=item.id,
        owner_id=item.owner_id,
        document_id=item.document_id,
        page=item.page,
        kind=item.kind.value,
        text=item.text,
        translation=item.translation,
        language=item.language,
        mastery=item.mastery,
        ease_factor=item.ease_factor,
        interval_days=item.interval_days,
        last_reviewed_at=item.last_reviewed_at,
        next_review_at=item.next_review_at,
        review_count=item.review_count,
        last_score=item.last_score,
        priority=priority.value if priority else None,
    )


def schedule_response(schedule: ScheduleResult) -> ScheduleResponse:
    return ScheduleResponse(
        ease_factor=schedule.ease_factor,
        interval_days=schedule.interval_days,
        next_review_at=schedule.next_review_at,
        priority=schedule.priority.value,
        quality=schedule.quality,
    )


def evaluation_response(result: EvaluationResult) -> EvaluationResponse:
    return EvaluationResponse(
        evaluation_id=result.evaluation_id,
        total_score=result.total_score,
        accuracy_score=result.accuracy_score,
        fluency_score=result.fluency_score,
        pronunciation_score=result.pronunciation_score,
        token_scores=[
            TokenScoreResponse(
                expected=t.expected, recognized=t.recognized, score=t.score, passed=t.passed
            )
            for t in result.token_scores
        ],
        expected_text=result.expected_text,
        recognized_text=result.recognized_text,
        feedback=FeedbackResponse(
            level=result.feedback.level.value,
            message=result.feedback.message,
            positive_points=result.feedback.positive_points,
            improvements=result.feedback.improvements,
            specific_advice=result.feedback.specific_advice,
        ),
        created_at=result.created_at,
    )


def buckets_response(buckets: PriorityBuckets, now: datetime) -> PriorityBucketsResponse:
    return PriorityBucketsResponse(
        urgent=[item_response(item, now) for item in buckets.urgent],
        recommended=[item_response(item, now) for item in buckets.recommended],
        relaxed=[item_response(item, now) for item in buckets.relaxed],
    )


def to_attempt(
    recognized_text: str,
    tokens: list[TimedTokenSchema] | None,
    duration: float,
    time_spent_seconds: int,
) -> Attempt:
    """Build an Attempt, splitting the recognized text when no tokens were sent."""
    if tokens is None:
        timed = tokens_from_text(recognized_text)
    else:
        timed = [TimedToken(t.text, t.start, t.end, t.confidence) for t in tokens]
    return Attempt(
        recognized_text=recognized_text,
        tokens=timed,
        duration=duration,
        time_spent_seconds=time_spent_seconds,
    )

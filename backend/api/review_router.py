"""API routes for review items, attempts and progress."""

import logging

from fastapi import APIRouter, Depends, Query

from backend.api.converters import (
    buckets_response,
    evaluation_response,
    item_response,
    schedule_response,
    to_attempt,
)
from backend.api.dependencies import get_evaluation_cache, get_review_service
from backend.api.schemas import (
    ERROR_RESPONSES,
    AttemptRequest,
    AttemptResponse,
    DashboardResponse,
    HistoryResponse,
    ItemCreateRequest,
    ItemListResponse,
    ItemResponse,
    ReminderResponse,
    ReviewOutcomeResponse,
    ScoreRequest,
    StatsResponse,
)
from backend.config import utcnow
from backend.srs.evaluation_cache import EvaluationCache
from backend.srs.review_service import NewItem, ReviewService
from backend.store.records import ItemKind

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/review", tags=["review"], responses=ERROR_RESPONSES)


@router.post("/items", response_model=ItemResponse, status_code=201)
async def create_item(
    request: ItemCreateRequest,
    service: ReviewService = Depends(get_review_service),
) -> ItemResponse:
    """Register a new reviewable word or phrase."""
    item = await service.create_item(
        NewItem(
            owner_id=request.owner_id,
            document_id=request.document_id,
            page=request.page,
            kind=ItemKind(request.kind),
            text=request.text,
            translation=request.translation,
            language=request.language,
        )
    )
    return item_response(item)


@router.get("/items", response_model=ItemListResponse)
async def list_items(
    owner_id: str,
    priority: str | None = Query(default=None, pattern="^(urgent|recommended|relaxed)$"),
    service: ReviewService = Depends(get_review_service),
) -> ItemListResponse:
    """List an owner's items, most urgent first, optionally for one tier only."""
    now = utcnow()
    buckets = await service.items_by_priority(owner_id, now)
    tiers = {
        "urgent": buckets.urgent,
        "recommended": buckets.recommended,
        "relaxed": buckets.relaxed,
    }
    selected = tiers[priority] if priority else [item for tier in tiers.values() for item in tier]
    return ItemListResponse(items=[item_response(item, now) for item in selected])


@router.get("/items/{item_id}", response_model=ItemResponse)
async def get_item(
    item_id: str,
    service: ReviewService = Depends(get_review_service),
) -> ItemResponse:
    return item_response(await service.store.get_by_id(item_id))


@router.delete("/items/{item_id}", status_code=204)
async def delete_item(
    item_id: str,
    service: ReviewService = Depends(get_review_service),
) -> None:
    """Remove an item from review. Its history is kept."""
    await service.remove_item(item_id)


@router.get("/items/{item_id}/history", response_model=list[HistoryResponse])
async def item_history(
    item_id: str,
    service: ReviewService = Depends(get_review_service),
) -> list[HistoryResponse]:
    records = await service.history(item_id)
    return [HistoryResponse.model_validate(record) for record in records]


@router.post("/items/{item_id}/attempts", response_model=AttemptResponse)
async def submit_attempt(
    item_id: str,
    request: AttemptRequest,
    service: ReviewService = Depends(get_review_service),
    cache: EvaluationCache = Depends(get_evaluation_cache),
) -> AttemptResponse:
    """Score a transcribed attempt against the item and reschedule it."""
    attempt = to_attempt(
        request.recognized_text, request.tokens, request.duration, request.time_spent_seconds
    )
    result, outcome = await service.evaluate_attempt(item_id, attempt)
    cache.put(result)
    return AttemptResponse(
        evaluation=evaluation_response(result),
        item=item_response(outcome.item),
        schedule=schedule_response(outcome.schedule),
    )


@router.post("/items/{item_id}/score", response_model=ReviewOutcomeResponse)
async def submit_score(
    item_id: str,
    request: ScoreRequest,
    service: ReviewService = Depends(get_review_service),
) -> ReviewOutcomeResponse:
    """Record a score computed elsewhere (e.g. a self-graded card)."""
    outcome = await service.complete_review(item_id, request.score, request.time_spent_seconds)
    return ReviewOutcomeResponse(
        item=item_response(outcome.item),
        schedule=schedule_response(outcome.schedule),
    )


@router.get("/due", response_model=ItemListResponse)
async def due_items(
    owner_id: str,
    service: ReviewService = Depends(get_review_service),
) -> ItemListResponse:
    """Items whose next review time has arrived, most overdue first."""
    now = utcnow()
    items = await service.due_items(owner_id, now)
    return ItemListResponse(items=[item_response(item, now) for item in items])


@router.get("/stats", response_model=StatsResponse)
async def stats(
    owner_id: str,
    service: ReviewService = Depends(get_review_service),
) -> StatsResponse:
    counts = await service.stats(owner_id)
    return StatsResponse(
        total=counts.total,
        urgent=counts.urgent,
        recommended=counts.recommended,
        relaxed=counts.relaxed,
    )


@router.get("/dashboard", response_model=DashboardResponse)
async def dashboard(
    owner_id: str,
    service: ReviewService = Depends(get_review_service),
) -> DashboardResponse:
    """Tier counts plus recent review activity."""
    summary = await service.dashboard(owner_id)
    return DashboardResponse(
        total=summary.counts.total,
        urgent=summary.counts.urgent,
        recommended=summary.counts.recommended,
        relaxed=summary.counts.relaxed,
        completed_today=summary.completed_today,
        weekly_completion_rate=summary.weekly_completion_rate,
        streak_days=summary.streak_days,
        average_mastery=summary.average_mastery,
    )


@router.get("/reminders", response_model=ReminderResponse)
async def reminders(
    owner_id: str,
    service: ReviewService = Depends(get_review_service),
) -> ReminderResponse:
    """Due count and urgency buckets for the notification service."""
    now = utcnow()
    reminder = await service.reminder(owner_id, now)
    if reminder.buckets.urgent:
        logger.info("Owner %s has %d urgent items", owner_id, len(reminder.buckets.urgent))
    return ReminderResponse(
        owner_id=reminder.owner_id,
        due_count=reminder.due_count,
        buckets=buckets_response(reminder.buckets, now),
    )

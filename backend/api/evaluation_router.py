"""API routes for standalone attempt evaluation."""

from fastapi import APIRouter, Depends

from backend.api.converters import evaluation_response, to_attempt
from backend.api.dependencies import get_evaluation_cache, get_review_service
from backend.api.schemas import ERROR_RESPONSES, EvaluateRequest, EvaluationResponse
from backend.errors import NotFoundError
from backend.srs.evaluation_cache import EvaluationCache
from backend.srs.review_service import ReviewService

router = APIRouter(prefix="/api/evaluations", tags=["evaluations"], responses=ERROR_RESPONSES)


@router.post("", response_model=EvaluationResponse)
async def evaluate_attempt(
    request: EvaluateRequest,
    service: ReviewService = Depends(get_review_service),
    cache: EvaluationCache = Depends(get_evaluation_cache),
) -> EvaluationResponse:
    """Score an attempt against a reference text without scheduling anything."""
    attempt = to_attempt(
        request.recognized_text, request.tokens, request.duration, request.time_spent_seconds
    )
    result = service.evaluate(request.expected_text, attempt, language=request.language)
    cache.put(result)
    return evaluation_response(result)


@router.get("/{evaluation_id}", response_model=EvaluationResponse)
async def get_evaluation(
    evaluation_id: str,
    cache: EvaluationCache = Depends(get_evaluation_cache),
) -> EvaluationResponse:
    """Fetch a recent evaluation by id."""
    result = cache.get(evaluation_id)
    if result is None:
        raise NotFoundError(f"evaluation {evaluation_id} not found or expired")
    return evaluation_response(result)

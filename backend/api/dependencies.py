"""FastAPI dependencies shared by the routers."""

from fastapi import Depends

from backend.config import settings
from backend.srs.evaluation_cache import EvaluationCache
from backend.srs.review_service import ReviewService
from backend.srs.timing import TimingConfig
from backend.store import ReviewItemStore, build_store

# Lazy singletons, created on first request so importing the app stays cheap.
_store: ReviewItemStore | None = None
_evaluation_cache: EvaluationCache | None = None


def get_store() -> ReviewItemStore:
    """Return the process-wide review item store."""
    global _store
    if _store is None:
        _store = build_store(settings.store_backend, timeout=settings.store_timeout_seconds)
    return _store


def get_evaluation_cache() -> EvaluationCache:
    """Return the process-wide cache of recent evaluations."""
    global _evaluation_cache
    if _evaluation_cache is None:
        _evaluation_cache = EvaluationCache(ttl_seconds=settings.evaluation_cache_ttl_seconds)
    return _evaluation_cache


def get_review_service(store: ReviewItemStore = Depends(get_store)) -> ReviewService:
    """Build a review service over the configured store."""
    timing = TimingConfig(
        ideal_seconds_per_token=settings.ideal_seconds_per_token,
        pace_penalty=settings.pace_penalty,
        gap_variance_penalty=settings.gap_variance_penalty,
    )
    return ReviewService(store, timing=timing)

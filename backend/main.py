"""FastAPI application entry point and configuration."""

import asyncio
import contextlib
import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from backend.api.dependencies import get_evaluation_cache, get_store
from backend.api.evaluation_router import router as evaluation_router
from backend.api.review_router import router as review_router
from backend.api.schemas import ERROR_RESPONSES
from backend.config import settings
from backend.errors import (
    EVALUATION_FAILED_MESSAGE,
    REQUEST_FAILED_MESSAGE,
    ErrorKind,
    ReviewEngineError,
)
from backend.srs.evaluation_cache import run_periodic_sweep
from backend.store import ReviewItemStore

logger = logging.getLogger(__name__)

ERROR_STATUS = {
    ErrorKind.INVALID_INPUT: 400,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.CONFLICT: 409,
    ErrorKind.STORE_UNAVAILABLE: 503,
}


def failure_message(path: str) -> str:
    """Scoring routes report a failed evaluation, everything else a failed request."""
    if path.startswith(evaluation_router.prefix) or path.endswith("/attempts"):
        return EVALUATION_FAILED_MESSAGE
    return REQUEST_FAILED_MESSAGE


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Initialize the database and the cache sweeper on startup, clean up on shutdown."""
    if settings.store_backend == "sql":
        from backend.database import create_tables, engine

        await create_tables()
    sweeper = asyncio.create_task(
        run_periodic_sweep(get_evaluation_cache(), settings.evaluation_cache_sweep_seconds)
    )
    yield
    sweeper.cancel()
    with contextlib.suppress(asyncio.CancelledError):
        await sweeper
    if settings.store_backend == "sql":
        await engine.dispose()


app = FastAPI(
    title=settings.app_name,
    description="Adaptive review engine: attempt scoring and spaced repetition scheduling",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:5173", "http://localhost:3000"],
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(review_router)
app.include_router(evaluation_router)


@app.exception_handler(ReviewEngineError)
async def review_engine_error_handler(request: Request, exc: ReviewEngineError) -> JSONResponse:
    """Report engine errors with their reason class so callers can decide whether to retry."""
    status = ERROR_STATUS[exc.kind]
    if status >= 500:
        logger.warning("%s %s failed: %s", request.method, request.url.path, exc.detail)
    message = failure_message(request.url.path)
    return JSONResponse(status_code=status, content=exc.describe(message))


@app.get("/health", responses={503: ERROR_RESPONSES[503]})
async def health_check(store: ReviewItemStore = Depends(get_store)) -> dict[str, str]:
    """Check store connectivity and return status."""
    await store.ping()
    return {"status": "ok"}

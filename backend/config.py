from datetime import UTC, datetime
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings

from backend.srs.constants import MIN_EASE_FACTOR


def utcnow() -> datetime:
    """Return the current UTC time as a naive datetime.

    Replaces the deprecated ``datetime.utcnow()`` while keeping datetimes
    naive so they stay compatible with SQLite (which doesn't store tz info).
    """
    return datetime.now(UTC).replace(tzinfo=None)


class Settings(BaseSettings):
    app_name: str = "Lingua Review"
    database_url: str = f"sqlite+aiosqlite:///{Path(__file__).resolve().parent.parent / 'data' / 'lingua_review.db'}"
    store_backend: str = "sql"  # sql, memory
    store_timeout_seconds: float | None = 5.0
    ideal_seconds_per_token: float = 0.5
    pace_penalty: float = 100.0
    gap_variance_penalty: float = 200.0
    min_ease_factor: float = Field(default=MIN_EASE_FACTOR, ge=MIN_EASE_FACTOR)
    default_ease_factor: float = Field(default=2.5, ge=MIN_EASE_FACTOR)
    update_max_attempts: int = 5
    evaluation_cache_ttl_seconds: int = 3600  # 1 hour
    evaluation_cache_sweep_seconds: int = 300
    debug: bool = False

    model_config = {"env_prefix": "LINGUA_REVIEW_", "env_file": ".env"}


settings = Settings()

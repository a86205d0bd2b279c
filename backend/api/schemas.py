"""Pydantic schemas for API request/response models."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

# --- Items ---


class ItemCreateRequest(BaseModel):
    """Request to register a reviewable word or phrase."""

    owner_id: str = Field(min_length=1)
    document_id: str = ""
    page: int = Field(default=0, ge=0)
    kind: str = Field(default="phrase", pattern="^(word|phrase)$")
    text: str = Field(min_length=1)
    translation: str = ""
    language: str = "en"


class ItemResponse(BaseModel):
    """A review item with its scheduling state."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    owner_id: str
    document_id: str
    page: int
    kind: str
    text: str
    translation: str
    language: str
    mastery: int
    ease_factor: float
    interval_days: int
    last_reviewed_at: datetime | None
    next_review_at: datetime | None
    review_count: int
    last_score: int | None
    priority: str | None = None


class ItemListResponse(BaseModel):
    items: list[ItemResponse]


class HistoryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    item_id: str
    owner_id: str
    score: int
    time_spent_seconds: int
    reviewed_at: datetime


# --- Attempts ---


class TimedTokenSchema(BaseModel):
    """One recognized token with offsets in seconds."""

    text: str
    start: float = Field(ge=0)
    end: float = Field(ge=0)
    confidence: float = Field(default=1.0, ge=0, le=1)


class AttemptRequest(BaseModel):
    """A transcribed attempt. Tokens default to the recognized text split on whitespace."""

    recognized_text: str
    tokens: list[TimedTokenSchema] | None = None
    duration: float = Field(ge=0)
    time_spent_seconds: int = Field(default=0, ge=0)


class EvaluateRequest(AttemptRequest):
    """A standalone scoring request that is not tied to a stored item."""

    expected_text: str
    language: str = "en"


class ScoreRequest(BaseModel):
    """Request to record an externally computed score."""

    score: int = Field(ge=0, le=100)
    time_spent_seconds: int = Field(default=0, ge=0)


class TokenScoreResponse(BaseModel):
    expected: str
    recognized: str
    score: int
    passed: bool


class FeedbackResponse(BaseModel):
    level: str  # excellent, good, fair, poor
    message: str
    positive_points: list[str]
    improvements: list[str]
    specific_advice: list[str]


class EvaluationResponse(BaseModel):
    """Scores and feedback for one attempt."""

    evaluation_id: str
    total_score: int
    accuracy_score: int
    fluency_score: int
    pronunciation_score: int
    token_scores: list[TokenScoreResponse]
    expected_text: str
    recognized_text: str
    feedback: FeedbackResponse
    created_at: datetime


class ScheduleResponse(BaseModel):
    """The scheduler's decision after an attempt."""

    ease_factor: float
    interval_days: int
    next_review_at: datetime
    priority: str  # urgent, recommended, relaxed
    quality: int


class ReviewOutcomeResponse(BaseModel):
    item: ItemResponse
    schedule: ScheduleResponse


class AttemptResponse(BaseModel):
    evaluation: EvaluationResponse
    item: ItemResponse
    schedule: ScheduleResponse


# --- Stats ---


class StatsResponse(BaseModel):
    """Item counts per urgency tier."""

    total: int
    urgent: int
    recommended: int
    relaxed: int


class DashboardResponse(StatsResponse):
    completed_today: int
    weekly_completion_rate: float
    streak_days: int
    average_mastery: float | None


class PriorityBucketsResponse(BaseModel):
    urgent: list[ItemResponse]
    recommended: list[ItemResponse]
    relaxed: list[ItemResponse]


class ReminderResponse(BaseModel):
    """Due count and urgency buckets for push reminders."""

    owner_id: str
    due_count: int
    buckets: PriorityBucketsResponse


class ErrorResponse(BaseModel):
    """Body of every engine error response."""

    message: str
    reason: str  # invalid_input, not_found, conflict, store_unavailable
    detail: str


ERROR_RESPONSES = {
    400: {"model": ErrorResponse, "description": "Invalid input"},
    404: {"model": ErrorResponse, "description": "Item or evaluation not found"},
    409: {"model": ErrorResponse, "description": "Concurrent update, retry"},
    503: {"model": ErrorResponse, "description": "Store unavailable, retry"},
}

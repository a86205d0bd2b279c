"""Error taxonomy shared by the scoring engine, the stores and the API.

Every failure the engine reports belongs to exactly one ``ErrorKind``.
Callers branch on the kind (or the exception class), never on message text.
"""

from enum import Enum

EVALUATION_FAILED_MESSAGE = "Could not evaluate this attempt"
REQUEST_FAILED_MESSAGE = "Could not complete this request"


class ErrorKind(Enum):
    """Closed set of failure reasons."""

    INVALID_INPUT = "invalid_input"  # Bad or missing caller data, do not retry
    NOT_FOUND = "not_found"  # Addressed item does not exist
    CONFLICT = "conflict"  # Lost an optimistic-concurrency race
    STORE_UNAVAILABLE = "store_unavailable"  # Storage unreachable or timed out


class ReviewEngineError(Exception):
    """Base class for all engine errors."""

    kind: ErrorKind

    def __init__(self, detail: str) -> None:
        super().__init__(detail)
        self.detail = detail

    @property
    def retryable(self) -> bool:
        """Whether the caller may retry the same request later."""
        return self.kind in (ErrorKind.CONFLICT, ErrorKind.STORE_UNAVAILABLE)

    def describe(self, message: str = REQUEST_FAILED_MESSAGE) -> dict[str, str]:
        """Return the user-facing summary of this failure under ``message``."""
        return {
            "message": message,
            "reason": self.kind.value,
            "detail": self.detail,
        }


class InvalidInputError(ReviewEngineError):
    kind = ErrorKind.INVALID_INPUT


class NotFoundError(ReviewEngineError):
    kind = ErrorKind.NOT_FOUND


class ConflictError(ReviewEngineError):
    kind = ErrorKind.CONFLICT


class StoreUnavailableError(ReviewEngineError):
    kind = ErrorKind.STORE_UNAVAILABLE

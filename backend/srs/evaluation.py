"""Evaluation engine for spoken or recalled attempts.

Combines three signals into a single 0-100 quality score:

- accuracy: similarity of the whole recognized text to the reference
- fluency: pace and rhythm of the recognized tokens
- pronunciation: mean similarity of aligned reference/recognized tokens

and turns the result into qualitative feedback for the learner.
"""

import logging
import uuid
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from backend.config import utcnow
from backend.errors import InvalidInputError
from backend.srs.constants import (
    ACCURACY_ADVICE_THRESHOLD,
    ACCURACY_WEIGHT,
    FLUENCY_ADVICE_THRESHOLD,
    FLUENCY_WEIGHT,
    PRONUNCIATION_ADVICE_THRESHOLD,
    PRONUNCIATION_WEIGHT,
    REFERENCE_TOKEN_SECONDS,
    SCORE_EXCELLENT_THRESHOLD,
    SCORE_FAIR_THRESHOLD,
    SCORE_GOOD_THRESHOLD,
    TOKEN_PASS_SCORE,
)
from backend.srs.similarity import accuracy
from backend.srs.timing import DEFAULT_TIMING, TimedToken, TimingConfig, fluency, round_half_up

logger = logging.getLogger(__name__)


class FeedbackLevel(Enum):
    """Qualitative tier of a total score."""

    EXCELLENT = "excellent"  # >= 90
    GOOD = "good"  # 75-89
    FAIR = "fair"  # 45-74
    POOR = "poor"  # < 45


@dataclass
class Feedback:
    """Learner-facing feedback. List order is display order."""

    level: FeedbackLevel
    message: str
    positive_points: list[str] = field(default_factory=list)
    improvements: list[str] = field(default_factory=list)
    specific_advice: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class TokenScore:
    """Similarity between one reference token and its recognized counterpart."""

    expected: str
    recognized: str
    score: int
    passed: bool


@dataclass
class EvaluationResult:
    """The outcome of scoring one attempt."""

    total_score: int
    accuracy_score: int
    fluency_score: int
    pronunciation_score: int
    token_scores: list[TokenScore]
    expected_text: str
    recognized_text: str
    feedback: Feedback
    evaluation_id: str = field(default_factory=lambda: f"eval_{uuid.uuid4().hex}")
    created_at: datetime = field(default_factory=utcnow)


# Fixed copy per tier: (message, positive points, improvements)
TIER_FEEDBACK: dict[FeedbackLevel, tuple[str, list[str], list[str]]] = {
    FeedbackLevel.EXCELLENT: (
        "Excellent! That was close to perfect.",
        [
            "Your pronunciation is very clear",
            "Your intonation sounds natural",
            "You spoke fluently",
        ],
        [],
    ),
    FeedbackLevel.GOOD: (
        "Good job! You're nearly there.",
        [
            "Your basic pronunciation is accurate",
            "You are easy to understand",
        ],
        ["A few words could be pronounced more precisely"],
    ),
    FeedbackLevel.FAIR: (
        "Keep going! There's room to improve.",
        [],
        [
            "Work on pronouncing each word accurately",
            "Pay attention to the boundaries between words",
        ],
    ),
    FeedbackLevel.POOR: (
        "Let's keep practicing.",
        [],
        [
            "Start by practicing the basic sounds",
            "Speak slowly and carefully",
        ],
    ),
}


def feedback_level(total_score: int) -> FeedbackLevel:
    """Map a total score to its feedback tier."""
    if total_score >= SCORE_EXCELLENT_THRESHOLD:
        return FeedbackLevel.EXCELLENT
    if total_score >= SCORE_GOOD_THRESHOLD:
        return FeedbackLevel.GOOD
    if total_score >= SCORE_FAIR_THRESHOLD:
        return FeedbackLevel.FAIR
    return FeedbackLevel.POOR


def reference_tokens(text: str) -> list[TimedToken]:
    """Split reference text on whitespace, giving each token an evenly spaced window."""
    return [
        TimedToken(
            text=word,
            start=i * REFERENCE_TOKEN_SECONDS,
            end=(i + 1) * REFERENCE_TOKEN_SECONDS,
        )
        for i, word in enumerate(text.split())
    ]


def score_tokens(
    expected: Sequence[TimedToken],
    recognized: Sequence[TimedToken],
) -> list[TokenScore]:
    """Compare tokens position by position.

    Runs over the longer of the two sequences; a missing counterpart is
    compared as the empty string, so extra and missing words both score 0.
    """
    scores: list[TokenScore] = []
    for i in range(max(len(expected), len(recognized))):
        expected_word = expected[i].text if i < len(expected) else ""
        recognized_word = recognized[i].text if i < len(recognized) else ""
        score = accuracy(expected_word, recognized_word)
        scores.append(
            TokenScore(
                expected=expected_word,
                recognized=recognized_word,
                score=score,
                passed=score >= TOKEN_PASS_SCORE,
            )
        )
    return scores


def weighted_total(accuracy_score: int, fluency_score: int, pronunciation_score: int) -> int:
    """Combine the three sub-scores with the fixed weights."""
    weighted = (
        accuracy_score * ACCURACY_WEIGHT
        + fluency_score * FLUENCY_WEIGHT
        + pronunciation_score * PRONUNCIATION_WEIGHT
    )
    return round_half_up(weighted / 100)


def generate_feedback(
    total_score: int,
    accuracy_score: int,
    fluency_score: int,
    pronunciation_score: int,
    token_scores: Sequence[TokenScore],
) -> Feedback:
    """Build feedback from the scores.

    The tier copy depends only on the total; specific advice is appended
    for each weak sub-score and then for each failed token, in that order.
    """
    level = feedback_level(total_score)
    message, positives, improvements = TIER_FEEDBACK[level]
    feedback = Feedback(
        level=level,
        message=message,
        positive_points=list(positives),
        improvements=list(improvements),
    )

    if accuracy_score < ACCURACY_ADVICE_THRESHOLD:
        feedback.specific_advice.append("Focus on saying every word exactly as written")
    if fluency_score < FLUENCY_ADVICE_THRESHOLD:
        feedback.specific_advice.append("Try to speak with a natural, steady rhythm")
    if pronunciation_score < PRONUNCIATION_ADVICE_THRESHOLD:
        feedback.specific_advice.append("Articulate each sound clearly")

    for token in token_scores:
        if token.passed:
            continue
        heard = token.recognized or "nothing"
        if token.expected:
            feedback.specific_advice.append(f'Practice "{token.expected}" (we heard: {heard})')
        else:
            feedback.specific_advice.append(f'Leave out the extra word "{token.recognized}"')

    return feedback


def evaluate(
    expected_text: str,
    recognized_text: str,
    recognized_tokens: Sequence[TimedToken],
    duration: float,
    timing: TimingConfig = DEFAULT_TIMING,
) -> EvaluationResult:
    """Score an attempt against its reference text.

    Args:
        expected_text: The reference the learner was asked to produce.
        recognized_text: What the recognizer (or the learner's typing) produced.
        recognized_tokens: Timed tokens of the recognized text, in order.
        duration: Total length of the utterance in seconds.
        timing: Fluency coefficients.

    Returns:
        The full EvaluationResult including feedback.

    Raises:
        InvalidInputError: If ``expected_text`` is empty or blank.
    """
    if not expected_text or not expected_text.strip():
        raise InvalidInputError("expected text is empty")

    expected_tokens = reference_tokens(expected_text)

    accuracy_score = accuracy(expected_text, recognized_text)
    fluency_score = fluency(recognized_tokens, duration, timing)
    token_scores = score_tokens(expected_tokens, recognized_tokens)
    if expected_tokens and token_scores:
        pronunciation_score = round_half_up(sum(t.score for t in token_scores) / len(token_scores))
    else:
        pronunciation_score = 0

    total_score = weighted_total(accuracy_score, fluency_score, pronunciation_score)
    feedback = generate_feedback(
        total_score, accuracy_score, fluency_score, pronunciation_score, token_scores
    )

    logger.debug(
        "Evaluated attempt: total=%d accuracy=%d fluency=%d pronunciation=%d",
        total_score,
        accuracy_score,
        fluency_score,
        pronunciation_score,
    )

    return EvaluationResult(
        total_score=total_score,
        accuracy_score=accuracy_score,
        fluency_score=fluency_score,
        pronunciation_score=pronunciation_score,
        token_scores=token_scores,
        expected_text=expected_text,
        recognized_text=recognized_text,
        feedback=feedback,
    )


def tokens_from_text(text: str) -> list[TimedToken]:
    """Untimed tokens for typed recall, where no recognizer timing exists."""
    return [TimedToken(text=word, start=0.0, end=0.0) for word in text.split()]

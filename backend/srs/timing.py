"""Fluency scoring from token timings."""

import math
from collections.abc import Sequence
from dataclasses import dataclass

from backend.srs.constants import GAP_VARIANCE_PENALTY, IDEAL_SECONDS_PER_TOKEN, PACE_PENALTY


@dataclass(frozen=True)
class TimedToken:
    """One recognized (or reference) token with its offsets in seconds."""

    text: str
    start: float
    end: float
    confidence: float = 1.0  # Accepted from the recognizer, unused by scoring


@dataclass(frozen=True)
class TimingConfig:
    """Coefficients of the fluency formula."""

    ideal_seconds_per_token: float = IDEAL_SECONDS_PER_TOKEN
    pace_penalty: float = PACE_PENALTY
    gap_variance_penalty: float = GAP_VARIANCE_PENALTY


DEFAULT_TIMING = TimingConfig()


def round_half_up(value: float) -> int:
    """Round to the nearest integer, with .5 rounding away from zero."""
    if value < 0:
        return -math.floor(-value + 0.5)
    return math.floor(value + 0.5)


def variance(values: Sequence[float]) -> float:
    """Population variance; 0 for an empty sequence."""
    if not values:
        return 0.0
    mean = sum(values) / len(values)
    return sum((v - mean) ** 2 for v in values) / len(values)


def gaps(tokens: Sequence[TimedToken]) -> list[float]:
    """Silence between the end of each token and the start of the next."""
    return [tokens[i + 1].start - tokens[i].end for i in range(len(tokens) - 1)]


def fluency(
    tokens: Sequence[TimedToken],
    total_duration: float,
    config: TimingConfig = DEFAULT_TIMING,
) -> int:
    """Score speaking fluency from 0 to 100.

    The score is the mean of two sub-scores:

    - speed: linear penalty on the distance between the average seconds per
      token and the ideal pace
    - stability: linear penalty on the variance of inter-token gaps

    Both sub-scores are floored at 0. An empty token list or a non-positive
    duration scores 0.
    """
    if not tokens or total_duration <= 0:
        return 0

    seconds_per_token = total_duration / len(tokens)
    pace_diff = abs(seconds_per_token - config.ideal_seconds_per_token)
    speed_score = max(0.0, 100 - pace_diff * config.pace_penalty)

    stability_score = max(0.0, 100 - variance(gaps(tokens)) * config.gap_variance_penalty)

    return max(0, min(100, round_half_up((speed_score + stability_score) / 2)))

"""Spoken duration estimation for questions."""

import math
from dataclasses import dataclass
from enum import Enum

from surveyor.selection.models.question import CandidateQuestion

DEFAULT_CATEGORY_MULTIPLIERS: dict[str, float] = {
    "product_quality": 1.2,
    "service_experience": 1.1,
    "checkout_process": 0.9,
    "general_feedback": 1.0,
    "specific_item": 1.3,
}


class EstimateSource(str, Enum):
    """Where a duration estimate came from."""

    HISTORICAL = "historical"
    EXPLICIT = "explicit"
    TOKENS = "tokens"


@dataclass(frozen=True)
class DurationEstimate:
    """Estimated spoken duration of a question.

    Attributes:
        seconds: Whole seconds, at least 1
        confidence: Confidence in the estimate
        source: Which input the estimate was derived from
    """

    seconds: int
    confidence: float
    source: EstimateSource


class DurationEstimator:
    """Estimates how long a question takes to ask and answer.

    Measured history is preferred over a configured estimate, which is
    preferred over a token-based guess. The result is scaled by the
    category multiplier and rounded to whole seconds.
    """

    def __init__(
        self,
        category_multipliers: dict[str, float] | None = None,
        tokens_per_second: float = 4.2,
        minimum_token_seconds: float = 8.0,
        historical_confidence: float = 0.9,
        explicit_confidence: float = 0.7,
        token_confidence: float = 0.6,
    ) -> None:
        self._multipliers = (
            DEFAULT_CATEGORY_MULTIPLIERS if category_multipliers is None else category_multipliers
        )
        self._tokens_per_second = tokens_per_second
        self._minimum_token_seconds = minimum_token_seconds
        self._historical_confidence = historical_confidence
        self._explicit_confidence = explicit_confidence
        self._token_confidence = token_confidence

    def estimate(self, question: CandidateQuestion) -> DurationEstimate:
        if question.historical_duration_seconds is not None and question.historical_duration_seconds > 0:
            raw = question.historical_duration_seconds
            confidence = self._historical_confidence
            source = EstimateSource.HISTORICAL
        elif question.estimated_duration_seconds is not None and question.estimated_duration_seconds > 0:
            raw = question.estimated_duration_seconds
            confidence = self._explicit_confidence
            source = EstimateSource.EXPLICIT
        else:
            raw = self.from_tokens(question.token_count, question.complexity_factor)
            confidence = self._token_confidence
            source = EstimateSource.TOKENS

        scaled = raw * self._multipliers.get(question.category, 1.0)
        return DurationEstimate(
            seconds=max(1, _round_half_up(scaled)),
            confidence=confidence,
            source=source,
        )

    def from_tokens(self, token_count: int, complexity_factor: float = 1.0) -> float:
        """Token-based duration before category scaling."""
        base = token_count / self._tokens_per_second
        adjustment = 1.0 + (complexity_factor - 1.0) * 0.3
        return max(self._minimum_token_seconds, base * adjustment)


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))

"""Test factories for creating test data."""

from tests.factories.selection import (
    CandidateFactory,
    CombinationRuleFactory,
    RequestFactory,
    TimedQuestionFactory,
    TriggerFactory,
)

__all__ = [
    "CandidateFactory",
    "CombinationRuleFactory",
    "RequestFactory",
    "TimedQuestionFactory",
    "TriggerFactory",
]

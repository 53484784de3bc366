"""Trigger evaluation: contextual rules that force and boost questions."""

from surveyor.selection.triggers.conditions import matches, resolve_field
from surveyor.selection.triggers.evaluator import (
    TriggerEvaluator,
    fold_boosts,
    questions_for_trigger,
)
from surveyor.selection.triggers.models import (
    ConditionMatch,
    QuestionBoost,
    TriggerActivation,
    TriggerEvaluationMetadata,
    TriggerEvaluationResult,
)

__all__ = [
    "ConditionMatch",
    "QuestionBoost",
    "TriggerActivation",
    "TriggerEvaluationMetadata",
    "TriggerEvaluationResult",
    "TriggerEvaluator",
    "fold_boosts",
    "matches",
    "questions_for_trigger",
    "resolve_field",
]

"""Domain models for question selection."""

from surveyor.selection.models.base import BusinessScopedModel, utc_now
from surveyor.selection.models.context import EvaluationContext
from surveyor.selection.models.enums import (
    AlgorithmPreference,
    ConditionField,
    ConditionOperator,
    OptimizationAlgorithm,
    PipelineStage,
    PriorityTier,
    ProcessingMode,
    ReasonCode,
    TriggerKind,
)
from surveyor.selection.models.question import CandidateQuestion, ScoredQuestion
from surveyor.selection.models.rule import (
    MAX_CALL_DURATION_SECONDS,
    CombinationRule,
    PriorityThresholds,
    TopicGroup,
)
from surveyor.selection.models.trigger import TriggerCondition, TriggerDefinition

__all__ = [
    "AlgorithmPreference",
    "BusinessScopedModel",
    "CandidateQuestion",
    "CombinationRule",
    "ConditionField",
    "ConditionOperator",
    "EvaluationContext",
    "MAX_CALL_DURATION_SECONDS",
    "OptimizationAlgorithm",
    "PipelineStage",
    "PriorityThresholds",
    "PriorityTier",
    "ProcessingMode",
    "ReasonCode",
    "ScoredQuestion",
    "TopicGroup",
    "TriggerCondition",
    "TriggerDefinition",
    "TriggerKind",
    "utc_now",
]

"""Priority adjustment, topic grouping and frequency harmonization."""

from surveyor.selection.prioritization.adjuster import PriorityAdjuster
from surveyor.selection.prioritization.harmonization import FrequencyHarmonizer
from surveyor.selection.prioritization.models import (
    AdjustmentResult,
    BusinessContext,
    ConflictSeverity,
    FrequencyConflict,
    HarmonizationResult,
    QuestionGroup,
    TopicGroupingResult,
)
from surveyor.selection.prioritization.recency import fairness_score
from surveyor.selection.prioritization.topic_grouping import (
    TopicGrouper,
    question_similarity,
    similarity_matrix,
)

__all__ = [
    "AdjustmentResult",
    "BusinessContext",
    "ConflictSeverity",
    "FrequencyConflict",
    "FrequencyHarmonizer",
    "HarmonizationResult",
    "PriorityAdjuster",
    "QuestionGroup",
    "TopicGrouper",
    "TopicGroupingResult",
    "fairness_score",
    "question_similarity",
    "similarity_matrix",
]

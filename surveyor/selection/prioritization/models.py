"""Prioritization models.

Contains topic grouping, frequency harmonization and adjustment results.
"""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field

from surveyor.selection.models.base import utc_now
from surveyor.selection.models.question import ScoredQuestion


class BusinessContext(BaseModel):
    """Per-business inputs to priority adjustment."""

    now: datetime = Field(default_factory=utc_now, description="Reference time for recency")
    category_weights: dict[str, float] = Field(
        default_factory=dict, description="Question category to weight factor"
    )


class QuestionGroup(BaseModel):
    """Questions asked together under one conversation topic."""

    name: str
    topic_category: str
    question_ids: list[str] = Field(default_factory=list)
    compatibility: float = Field(default=1.0, ge=0.0, le=1.0)
    priority_boost: float = Field(default=1.0, gt=0)
    configured: bool = Field(default=False, description="Backed by a configured TopicGroup")


class TopicGroupingResult(BaseModel):
    """Result of topic grouping."""

    groups: list[QuestionGroup] = Field(default_factory=list)
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    grouping_time_ms: float = Field(default=0.0, ge=0)

    def topic_boosts(self) -> dict[str, float]:
        """Question id to topic boost."""
        return {qid: g.priority_boost for g in self.groups for qid in g.question_ids}

    def group_names(self) -> dict[str, str]:
        """Question id to group name."""
        return {qid: g.name for g in self.groups for qid in g.question_ids}


class ConflictSeverity(str, Enum):
    """How close two repeat frequencies are."""

    HIGH = "high"
    MEDIUM = "medium"


class FrequencyConflict(BaseModel):
    """Two same-topic questions whose repeat cycles nearly coincide."""

    question_id: str
    conflicting_question_id: str
    ratio: float = Field(ge=1.0)
    severity: ConflictSeverity


class HarmonizationResult(BaseModel):
    """Result of frequency harmonization."""

    questions: list[ScoredQuestion] = Field(default_factory=list)
    demoted_question_ids: list[str] = Field(default_factory=list)
    preserved_question_ids: list[str] = Field(
        default_factory=list, description="Not yet due but kept for high priority"
    )
    conflicts: list[FrequencyConflict] = Field(default_factory=list)


class AdjustmentResult(BaseModel):
    """Candidates in final conversational order."""

    questions: list[ScoredQuestion] = Field(default_factory=list)
    topic_metadata_available: bool = True

"""Candidate and scored question models."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class CandidateQuestion(BaseModel):
    """A survey question eligible for selection in a run.

    Owned by the configuration store and never modified by the pipeline.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    id: str = Field(..., min_length=1, description="Question identifier")
    text: str = Field(..., description="Text spoken to the customer")
    category: str = Field(default="general_feedback", description="Question category")
    topic_category: str = Field(default="general", description="Conversation topic")
    base_priority: int = Field(default=3, ge=1, le=5, description="Base priority level")
    token_count: int = Field(default=0, ge=0, description="Token/length estimate")
    repeat_frequency: int = Field(
        default=0,
        ge=0,
        description="Interactions that must elapse before the question repeats",
    )
    last_presented_at: datetime | None = Field(
        default=None, description="When the question was last asked"
    )
    interactions_since_presented: int | None = Field(
        default=None, ge=0, description="Interactions since the question was last asked"
    )
    estimated_duration_seconds: float | None = Field(
        default=None, description="Configured spoken duration estimate"
    )
    historical_duration_seconds: float | None = Field(
        default=None, description="Measured average spoken duration"
    )
    complexity_factor: float = Field(default=1.0, gt=0, description="Answer complexity")
    keywords: list[str] = Field(default_factory=list)
    is_active: bool = Field(default=True)


class ScoredQuestion(BaseModel):
    """A candidate enriched with the scores computed during one run."""

    question: CandidateQuestion
    trigger_boost: float = Field(default=0.0, ge=0)
    topic_boost: float = Field(default=1.0, gt=0)
    category_weight: float = Field(default=1.0, gt=0)
    fairness_score: float = Field(default=10.0, ge=0, le=10)
    adjusted_priority: float = Field(default=0.0)
    is_triggered: bool = False
    trigger_reasons: list[str] = Field(default_factory=list)
    group_name: str | None = None
    harmonization_note: str | None = None
    estimated_duration: int | None = Field(default=None, ge=1, description="Seconds")
    duration_confidence: float | None = Field(default=None, ge=0.0, le=1.0)

    @property
    def id(self) -> str:
        return self.question.id

    @property
    def topic_category(self) -> str:
        return self.question.topic_category

    @classmethod
    def from_candidate(cls, question: CandidateQuestion) -> "ScoredQuestion":
        """Start scoring a candidate at its base priority."""
        return cls(question=question, adjusted_priority=float(question.base_priority))

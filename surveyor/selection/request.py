"""Selection request models."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from surveyor.selection.exceptions import InvalidConstraintsError
from surveyor.selection.models.context import EvaluationContext
from surveyor.selection.models.enums import (
    AlgorithmPreference,
    OptimizationAlgorithm,
    ProcessingMode,
)
from surveyor.selection.models.question import CandidateQuestion
from surveyor.selection.models.rule import MAX_CALL_DURATION_SECONDS


class SelectionConstraints(BaseModel):
    """Per-request limits on the selection.

    Bounds are checked by validate_bounds rather than by field
    constraints so that out-of-range values surface as
    InvalidConstraintsError.
    """

    max_duration_seconds: float | None = Field(
        default=None, description="Budget in seconds; None uses the combination rule's"
    )
    min_questions: int = Field(default=0, description="Warn when fewer are selected")
    max_questions: int | None = Field(default=None, description="Hard cap on selected questions")
    priority_threshold: float = Field(
        default=0.0, description="Drop questions whose adjusted priority is below this"
    )
    include_triggered_only: bool = Field(
        default=False, description="Keep only questions selected by a firing trigger"
    )
    algorithm_preference: AlgorithmPreference | None = None

    def validate_bounds(self) -> None:
        """Raise InvalidConstraintsError if any limit is out of range."""
        if self.max_duration_seconds is not None:
            if self.max_duration_seconds <= 0:
                raise InvalidConstraintsError("max_duration_seconds must be positive")
            if self.max_duration_seconds > MAX_CALL_DURATION_SECONDS:
                raise InvalidConstraintsError(
                    f"max_duration_seconds must not exceed {MAX_CALL_DURATION_SECONDS}"
                )
        if self.min_questions < 0:
            raise InvalidConstraintsError("min_questions must not be negative")
        if self.max_questions is not None:
            if self.max_questions < 0:
                raise InvalidConstraintsError("max_questions must not be negative")
            if self.min_questions > self.max_questions:
                raise InvalidConstraintsError("min_questions must not exceed max_questions")
        if self.priority_threshold < 0:
            raise InvalidConstraintsError("priority_threshold must not be negative")


class SelectionOptions(BaseModel):
    """Per-request pipeline options.

    Stage flags left as None follow the processing mode.
    """

    processing_mode: ProcessingMode | None = None
    topic_grouping: bool | None = None
    priority_balancing: bool | None = None
    frequency_harmonization: bool | None = None
    algorithm: OptimizationAlgorithm | None = Field(
        default=None, description="Explicit strategy, overriding the rule and auto-pick"
    )
    enforce_deadline: bool | None = None


class SelectionRequest(BaseModel):
    """Input to a selection run."""

    business_id: UUID
    interaction_id: UUID
    context: EvaluationContext = Field(default_factory=EvaluationContext)
    candidates: list[CandidateQuestion] = Field(default_factory=list)
    constraints: SelectionConstraints = Field(default_factory=SelectionConstraints)
    options: SelectionOptions = Field(default_factory=SelectionOptions)
    now: datetime | None = Field(default=None, description="Reference time; defaults to now")

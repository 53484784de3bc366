"""Time optimization models.

Contains the time budget, timed inputs and the uniform optimization
result shared by every strategy.
"""

from dataclasses import dataclass, field
from typing import Any

from pydantic import BaseModel, Field

from surveyor.selection.models.enums import OptimizationAlgorithm


class TimeBudget(BaseModel):
    """Wall-clock budget of one interaction.

    A share of max_duration_seconds is held back as a buffer; what
    remains is the time questions and transitions may consume.
    """

    max_duration_seconds: float = Field(..., gt=0)
    buffer_percentage: float = Field(default=10.0, ge=0, lt=100)
    transition_seconds: int = Field(default=2, ge=0)

    @property
    def buffer_seconds(self) -> float:
        return self.max_duration_seconds * self.buffer_percentage / 100

    @property
    def available_seconds(self) -> float:
        return self.max_duration_seconds - self.buffer_seconds


@dataclass(frozen=True)
class TimedQuestion:
    """A prioritized question with its duration estimate.

    Attributes:
        question_id: Question identifier
        text: Question text
        priority: Adjusted priority used as the strategy value
        duration: Estimated spoken duration in whole seconds
        confidence: Confidence in the duration estimate
        position: Index in the prioritized input, used for tie-breaks
        token_count: Token/length estimate of the question
    """

    question_id: str
    text: str
    priority: float
    duration: int
    confidence: float
    position: int
    token_count: int = 0

    def consumed(self, transition_seconds: int) -> int:
        """Seconds the question takes including its transition."""
        return self.duration + transition_seconds


@dataclass
class Pick:
    """A question accepted by a strategy and why."""

    item: TimedQuestion
    reason: str


@dataclass
class StrategySelection:
    """Raw output of a strategy.

    Attributes:
        picks: Accepted questions in acceptance order
        algorithm: Strategy that actually produced the picks
        metadata: Strategy-specific details for logging
    """

    picks: list[Pick]
    algorithm: OptimizationAlgorithm
    metadata: dict[str, Any] = field(default_factory=dict)


class SelectedItem(BaseModel):
    """A question in an optimization result."""

    question_id: str
    text: str
    priority: float
    estimated_duration: int = Field(ge=1, description="Seconds")
    reason: str
    time_allocation_seconds: float = Field(ge=0, description="Duration plus transition")
    time_allocation_percent: float = Field(ge=0, description="Share of max duration")
    confidence: float = Field(ge=0.0, le=1.0)


class TimeBreakdown(BaseModel):
    """How the maximum duration is spent."""

    question_time: float = Field(ge=0)
    buffer_time: float = Field(ge=0)
    transition_time: float = Field(ge=0)
    total_constraint: float = Field(gt=0)


class OptimizationResult(BaseModel):
    """Uniform result of every time strategy."""

    algorithm: OptimizationAlgorithm
    requested_algorithm: OptimizationAlgorithm | None = Field(
        default=None, description="Set when the result came from a fallback"
    )
    selected: list[SelectedItem] = Field(default_factory=list)
    total_estimated_duration: float = Field(default=0.0, ge=0, description="Including transitions")
    total_token_count: int = Field(default=0, ge=0)
    time_utilization: float = Field(default=0.0, ge=0, description="Percent of max duration")
    questions_considered: int = Field(default=0, ge=0)
    average_confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    processing_time_ms: float = Field(default=0.0, ge=0)
    time_breakdown: TimeBreakdown
    warnings: list[str] = Field(default_factory=list)

    @property
    def questions_selected(self) -> int:
        return len(self.selected)

    @property
    def selected_ids(self) -> list[str]:
        return [item.question_id for item in self.selected]


class StrategyProfile(BaseModel):
    """Descriptor of a time strategy."""

    algorithm: OptimizationAlgorithm
    name: str
    description: str
    time_complexity: str
    accuracy: str
    speed: str

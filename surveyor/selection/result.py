"""Selection result models.

Contains the SelectionResult returned by the engine and its timing and
warning models.
"""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from surveyor.selection.models.enums import (
    OptimizationAlgorithm,
    PipelineStage,
    PriorityTier,
    ProcessingMode,
    ReasonCode,
)
from surveyor.selection.optimization.models import OptimizationResult
from surveyor.selection.triggers.models import TriggerEvaluationMetadata


class StageTiming(BaseModel):
    """Timing information for a single pipeline stage."""

    stage: PipelineStage = Field(..., description="Stage name")
    started_at: datetime
    ended_at: datetime
    duration_ms: float = Field(ge=0)
    skipped: bool = False
    skip_reason: str | None = None


class SelectionWarning(BaseModel):
    """A non-fatal issue raised during a run."""

    code: str = Field(..., description="Machine-readable warning code")
    stage: PipelineStage
    message: str


class SelectedQuestion(BaseModel):
    """A question chosen for the interaction, in asking order."""

    question_id: str
    text: str
    reason: str = Field(..., description="Why the strategy accepted it")
    priority: float = Field(..., description="Final adjusted priority")
    priority_tier: PriorityTier
    estimated_duration: int = Field(ge=1, description="Seconds")
    time_allocation_seconds: float = Field(ge=0)
    time_allocation_percent: float = Field(ge=0)
    confidence: float = Field(ge=0.0, le=1.0, description="Duration estimate confidence")
    topic_category: str
    group_name: str | None = None
    trigger_reasons: list[str] = Field(default_factory=list)
    is_triggered: bool = False


class TriggerSummary(BaseModel):
    """Trigger outcome of a run."""

    fired_trigger_ids: list[UUID] = Field(default_factory=list)
    triggered_question_ids: list[str] = Field(default_factory=list)
    priority_boosts: dict[str, float] = Field(default_factory=dict)
    evaluation: TriggerEvaluationMetadata = Field(default_factory=TriggerEvaluationMetadata)


class SelectionMetadata(BaseModel):
    """How the run went."""

    processing_mode: ProcessingMode
    rule_id: UUID | None = None
    effective_max_duration: float | None = None
    stage_timings: list[StageTiming] = Field(default_factory=list)
    total_time_ms: float = Field(default=0.0, ge=0)
    latency_budget_ms: float = Field(default=500.0, gt=0)
    met_latency_requirement: bool = True
    final_state: PipelineStage = PipelineStage.DONE
    triggers: TriggerSummary = Field(default_factory=TriggerSummary)
    optimization: OptimizationResult | None = None


class SelectionResult(BaseModel):
    """Complete result of one selection run.

    This is the primary output of the SelectionEngine.
    """

    business_id: UUID
    interaction_id: UUID
    selected_questions: list[SelectedQuestion] = Field(default_factory=list)
    reason_code: ReasonCode | None = Field(
        default=None, description="Set when no question was selected"
    )
    total_estimated_duration: float = Field(default=0.0, ge=0, description="Including transitions")
    total_token_count: int = Field(default=0, ge=0)
    time_utilization: float = Field(default=0.0, ge=0)
    algorithm: OptimizationAlgorithm | None = None
    metadata: SelectionMetadata
    warnings: list[SelectionWarning] = Field(default_factory=list)
    errors: list[str] = Field(default_factory=list)

    @property
    def selected_ids(self) -> list[str]:
        return [q.question_id for q in self.selected_questions]

    def has_warning(self, code: str) -> bool:
        return any(w.code == code for w in self.warnings)

"""SelectionRecord model for the audit domain."""

from datetime import datetime
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field

from surveyor.selection.models.enums import OptimizationAlgorithm, PipelineStage, ProcessingMode, ReasonCode


class SelectionRecord(BaseModel):
    """Immutable audit record of one selection run."""

    model_config = ConfigDict(frozen=True)

    record_id: UUID = Field(default_factory=uuid4, description="Record identifier")
    business_id: UUID = Field(..., description="Owning business")
    interaction_id: UUID = Field(..., description="Feedback interaction")
    rule_id: UUID | None = Field(default=None, description="Combination rule applied")
    algorithm: OptimizationAlgorithm | None = Field(default=None, description="Strategy used")
    processing_mode: ProcessingMode = Field(default=ProcessingMode.BALANCED)
    final_state: PipelineStage = Field(..., description="DONE or FAILED")
    reason_code: ReasonCode | None = Field(default=None, description="Why the selection is empty")
    selected_question_ids: list[str] = Field(default_factory=list)
    triggered_question_ids: list[str] = Field(default_factory=list)
    fired_trigger_ids: list[UUID] = Field(default_factory=list)
    total_estimated_duration: float = Field(default=0.0, ge=0)
    max_duration_seconds: float = Field(default=0.0, ge=0)
    time_utilization: float = Field(default=0.0, ge=0)
    stage_timings_ms: dict[str, float] = Field(default_factory=dict)
    total_time_ms: float = Field(default=0.0, ge=0)
    met_latency_requirement: bool = True
    warning_count: int = Field(default=0, ge=0)
    timestamp: datetime = Field(..., description="Run time")

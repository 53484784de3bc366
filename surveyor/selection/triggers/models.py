"""Trigger evaluation models.

Contains per-trigger activations and the folded question boost map.
"""

from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from surveyor.selection.models.enums import TriggerKind


class ConditionMatch(BaseModel):
    """Outcome of one condition against the context."""

    field: str
    operator: str
    matched: bool
    weight: float = Field(ge=0.0)
    is_required: bool = False


class TriggerActivation(BaseModel):
    """A trigger that fired for the current context."""

    trigger_id: UUID
    trigger_name: str
    kind: TriggerKind
    priority_level: int = Field(ge=1, le=5)
    confidence: float = Field(ge=0.0, le=1.0)
    priority_boost: float = Field(default=0.0, ge=0.0)
    question_ids: list[str] = Field(default_factory=list)
    condition_matches: list[ConditionMatch] = Field(default_factory=list)
    activation_reason: str = ""


class QuestionBoost(BaseModel):
    """Combined effect of every firing trigger on one question.

    boost is the maximum positive boost among the triggers; the reason
    comes from the highest priority_level trigger.
    """

    model_config = ConfigDict(frozen=True)

    question_id: str
    boost: float = Field(ge=0.0)
    trigger_ids: tuple[UUID, ...] = ()
    reason_trigger_id: UUID
    reason: str


class TriggerEvaluationMetadata(BaseModel):
    """Summary statistics of one evaluation pass."""

    triggers_evaluated: int = Field(default=0, ge=0)
    triggers_fired: int = Field(default=0, ge=0)
    processing_time_ms: float = Field(default=0.0, ge=0)
    average_confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    high_confidence_triggers: int = Field(default=0, ge=0)
    skipped_trigger_ids: list[UUID] = Field(default_factory=list)
    errors: list[str] = Field(default_factory=list)


class TriggerEvaluationResult(BaseModel):
    """Result of evaluating every active trigger of a business."""

    model_config = ConfigDict(frozen=True)

    fired_triggers: list[TriggerActivation] = Field(default_factory=list)
    triggered_question_ids: list[str] = Field(
        default_factory=list, description="Distinct question ids in first-fired order"
    )
    question_boosts: dict[str, QuestionBoost] = Field(default_factory=dict)
    metadata: TriggerEvaluationMetadata = Field(default_factory=TriggerEvaluationMetadata)

    @property
    def priority_boosts(self) -> dict[str, float]:
        """Question id to boost, for questions with a positive boost."""
        return {qid: b.boost for qid, b in self.question_boosts.items()}

    def reasons_for(self, question_id: str) -> list[str]:
        """Activation reasons of every trigger that selected the question."""
        return [
            activation.activation_reason
            for activation in self.fired_triggers
            if question_id in activation.question_ids
        ]

"""Trigger definition models."""

from typing import Any
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

from surveyor.selection.models.base import BusinessScopedModel
from surveyor.selection.models.enums import ConditionField, ConditionOperator, TriggerKind

ConditionValue = str | float | bool | list[str] | list[float]


class TriggerCondition(BaseModel):
    """A single test of one context field."""

    field: ConditionField
    operator: ConditionOperator
    value: ConditionValue
    secondary_value: str | float | None = Field(
        default=None, description="Upper bound for between/in_range"
    )
    weight_factor: float = Field(default=1.0, ge=0.0)
    is_required: bool = False


class TriggerDefinition(BusinessScopedModel):
    """A business rule that boosts or forces questions when it fires.

    Fires when every required condition matches and the weighted share of
    matching conditions reaches sensitivity_threshold percent.
    """

    id: UUID = Field(default_factory=uuid4)
    name: str = Field(..., min_length=1)
    kind: TriggerKind
    priority_level: int = Field(default=3, ge=1, le=5)
    sensitivity_threshold: float = Field(default=50.0, ge=0.0, le=100.0)
    conditions: list[TriggerCondition] = Field(default_factory=list)
    priority_boost: float = Field(default=0.0, ge=0.0)
    question_ids: list[str] | None = Field(
        default=None, description="Explicit questions; falls back to the kind mapping"
    )
    config: dict[str, Any] = Field(default_factory=dict)
    is_active: bool = True

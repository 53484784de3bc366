"""Combination rule and topic group models."""

from uuid import UUID, uuid4

from pydantic import BaseModel, Field, model_validator

from surveyor.selection.models.base import BusinessScopedModel
from surveyor.selection.models.enums import (
    AlgorithmPreference,
    OptimizationAlgorithm,
    PriorityTier,
)

# Hard ceiling on a single interaction, in seconds
MAX_CALL_DURATION_SECONDS = 300


class PriorityThresholds(BaseModel):
    """Lower bounds of the named priority bands."""

    critical: float = Field(default=4.5, ge=0)
    high: float = Field(default=3.5, ge=0)
    medium: float = Field(default=2.5, ge=0)
    low: float = Field(default=0.0, ge=0)

    @model_validator(mode="after")
    def check_ordering(self) -> "PriorityThresholds":
        if not self.critical >= self.high >= self.medium >= self.low:
            raise ValueError("Priority thresholds must be non-increasing: critical >= high >= medium >= low")
        return self

    def tier_for(self, priority: float) -> PriorityTier:
        """Map an adjusted priority to its band."""
        if priority >= self.critical:
            return PriorityTier.CRITICAL
        if priority >= self.high:
            return PriorityTier.HIGH
        if priority >= self.medium:
            return PriorityTier.MEDIUM
        if priority >= self.low:
            return PriorityTier.LOW
        return PriorityTier.BELOW_LOW


class CombinationRule(BusinessScopedModel):
    """Per-business budget and strategy configuration.

    Exactly one rule per business is expected to be active; the
    configuration store owns that invariant.
    """

    id: UUID = Field(default_factory=uuid4)
    name: str = Field(default="default")
    max_duration_seconds: float = Field(default=90.0, gt=0, le=MAX_CALL_DURATION_SECONDS)
    priority_thresholds: PriorityThresholds = Field(default_factory=PriorityThresholds)
    is_active: bool = True
    algorithm: OptimizationAlgorithm | None = Field(
        default=None, description="Explicit strategy; None picks one automatically"
    )
    algorithm_preference: AlgorithmPreference | None = Field(
        default=None, description="Auto-pick trade-off; None uses the configured default"
    )


class TopicGroup(BusinessScopedModel):
    """Configured grouping of questions that share a conversation topic."""

    id: UUID = Field(default_factory=uuid4)
    topic_category: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    priority_boost: float = Field(default=1.0, gt=0, description="Multiplicative boost")
    is_active: bool = True

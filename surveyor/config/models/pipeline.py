"""Selection pipeline configuration models."""

from pydantic import BaseModel, Field

from surveyor.selection.models.enums import (
    AlgorithmPreference,
    OptimizationAlgorithm,
    ProcessingMode,
)
from surveyor.selection.optimization.estimation import DEFAULT_CATEGORY_MULTIPLIERS


class TriggerEvaluationConfig(BaseModel):
    """Trigger evaluation stage configuration."""

    enabled: bool = Field(default=True, description="Enable this stage")
    high_confidence: float = Field(
        default=0.8,
        ge=0.0,
        le=1.0,
        description="Confidence at which a trigger counts as fully met",
    )


class TopicGroupingConfig(BaseModel):
    """Topic grouping stage configuration."""

    enabled: bool = Field(default=True, description="Enable this stage")
    max_group_size: int = Field(default=4, ge=1, description="Largest topic subgroup")
    min_similarity: float = Field(
        default=0.6,
        ge=0.0,
        le=1.0,
        description="Similarity needed to cluster two questions",
    )


class PrioritizationConfig(BaseModel):
    """Priority balancing stage configuration."""

    enabled: bool = Field(default=True, description="Enable this stage")
    fairness_weight: float = Field(
        default=0.1,
        ge=0.0,
        description="Weight of the recency fairness score in adjusted priority",
    )


class HarmonizationConfig(BaseModel):
    """Frequency harmonization stage configuration."""

    enabled: bool = Field(default=True, description="Enable this stage")
    penalty: float = Field(
        default=0.5,
        gt=0.0,
        le=1.0,
        description="Multiplier for questions not yet due to repeat",
    )
    preserve_high_priority: bool = Field(
        default=True,
        description="Never demote questions at or above high_priority_level",
    )
    high_priority_level: int = Field(default=4, ge=1, le=5)
    overlap_ratio: float = Field(
        default=2.0,
        ge=1.0,
        description="Repeat frequency ratio below which two questions conflict",
    )


class OptimizationConfig(BaseModel):
    """Time optimization stage configuration."""

    buffer_percentage: float = Field(
        default=10.0,
        ge=0.0,
        lt=100.0,
        description="Share of max duration held back as buffer",
    )
    transition_seconds: int = Field(
        default=2,
        ge=0,
        description="Seconds between two questions",
    )
    default_algorithm: OptimizationAlgorithm | None = Field(
        default=None,
        description="Strategy when neither request nor rule names one; None auto-picks",
    )
    default_preference: AlgorithmPreference = Field(default=AlgorithmPreference.BALANCED)
    max_dp_cells: int = Field(
        default=2_000_000,
        ge=1,
        description="Largest knapsack table before falling back to greedy",
    )
    category_multipliers: dict[str, float] = Field(
        default_factory=lambda: dict(DEFAULT_CATEGORY_MULTIPLIERS),
        description="Duration multiplier per question category",
    )


class PipelineConfig(BaseModel):
    """Configuration for the selection pipeline."""

    processing_mode: ProcessingMode = Field(
        default=ProcessingMode.BALANCED,
        description="Default processing mode",
    )
    latency_budget_ms: float = Field(
        default=500.0,
        gt=0,
        description="End-to-end latency target per run",
    )
    enforce_deadline: bool = Field(
        default=True,
        description="Bound the optimizer by the remaining latency budget",
    )
    trigger_evaluation: TriggerEvaluationConfig = Field(
        default_factory=TriggerEvaluationConfig,
        description="Trigger evaluation stage",
    )
    topic_grouping: TopicGroupingConfig = Field(
        default_factory=TopicGroupingConfig,
        description="Topic grouping stage",
    )
    prioritization: PrioritizationConfig = Field(
        default_factory=PrioritizationConfig,
        description="Priority balancing stage",
    )
    harmonization: HarmonizationConfig = Field(
        default_factory=HarmonizationConfig,
        description="Frequency harmonization stage",
    )
    optimization: OptimizationConfig = Field(
        default_factory=OptimizationConfig,
        description="Time optimization stage",
    )

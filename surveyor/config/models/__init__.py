"""Configuration section models."""

from surveyor.config.models.observability import (
    LoggingConfig,
    MetricsConfig,
    ObservabilityConfig,
)
from surveyor.config.models.pipeline import (
    HarmonizationConfig,
    OptimizationConfig,
    PipelineConfig,
    PrioritizationConfig,
    TopicGroupingConfig,
    TriggerEvaluationConfig,
)

__all__ = [
    "HarmonizationConfig",
    "LoggingConfig",
    "MetricsConfig",
    "ObservabilityConfig",
    "OptimizationConfig",
    "PipelineConfig",
    "PrioritizationConfig",
    "TopicGroupingConfig",
    "TriggerEvaluationConfig",
]

"""Time-constrained question selection."""

from surveyor.selection.optimization.estimation import (
    DEFAULT_CATEGORY_MULTIPLIERS,
    DurationEstimate,
    DurationEstimator,
    EstimateSource,
)
from surveyor.selection.optimization.models import (
    OptimizationResult,
    Pick,
    SelectedItem,
    StrategyProfile,
    StrategySelection,
    TimeBreakdown,
    TimeBudget,
    TimedQuestion,
)
from surveyor.selection.optimization.optimizer import TimeConstraintOptimizer, build_result
from surveyor.selection.optimization.strategies import (
    DynamicProgrammingStrategy,
    EfficiencyRankedStrategy,
    GreedyStrategy,
    TimeBalancedStrategy,
    TimeStrategy,
    choose_algorithm,
    create_time_strategy,
    priority_level,
)

__all__ = [
    "DEFAULT_CATEGORY_MULTIPLIERS",
    "DurationEstimate",
    "DurationEstimator",
    "DynamicProgrammingStrategy",
    "EfficiencyRankedStrategy",
    "EstimateSource",
    "GreedyStrategy",
    "OptimizationResult",
    "Pick",
    "SelectedItem",
    "StrategyProfile",
    "StrategySelection",
    "TimeBalancedStrategy",
    "TimeBreakdown",
    "TimeBudget",
    "TimeConstraintOptimizer",
    "TimeStrategy",
    "TimedQuestion",
    "build_result",
    "choose_algorithm",
    "create_time_strategy",
    "priority_level",
]

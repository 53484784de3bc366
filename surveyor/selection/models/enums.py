"""Enums for the question selection domain."""

from enum import Enum


class TriggerKind(str, Enum):
    """What kind of customer fact a trigger reacts to."""

    PURCHASE_BASED = "purchase_based"
    TIME_BASED = "time_based"
    AMOUNT_BASED = "amount_based"


class ConditionField(str, Enum):
    """Evaluation context fields a trigger condition can test."""

    PURCHASE_CATEGORY = "purchase_category"
    PURCHASE_ITEM = "purchase_item"
    TRANSACTION_AMOUNT = "transaction_amount"
    TRANSACTION_CURRENCY = "transaction_currency"
    TIME_OF_DAY = "time_of_day"
    DAY_OF_WEEK = "day_of_week"
    IS_WEEKEND = "is_weekend"
    CUSTOMER_SEQUENCE = "customer_sequence"


class ConditionOperator(str, Enum):
    """Comparison applied between a context field and a condition value.

    - BETWEEN: inclusive numeric range [value, secondary_value]
    - IN_RANGE: membership when value is a list, otherwise a numeric
      window that may wrap around (e.g. 22 -> 6 for time of day)
    """

    EQUALS = "equals"
    NOT_EQUALS = "not_equals"
    CONTAINS = "contains"
    NOT_CONTAINS = "not_contains"
    GREATER_THAN = "greater_than"
    LESS_THAN = "less_than"
    BETWEEN = "between"
    IN_RANGE = "in_range"


class OptimizationAlgorithm(str, Enum):
    """Time-budgeted selection strategies."""

    GREEDY = "greedy"
    DYNAMIC_PROGRAMMING = "dynamic_programming"
    TIME_BALANCED = "time_balanced"
    EFFICIENCY_RANKED = "efficiency_ranked"


class AlgorithmPreference(str, Enum):
    """Trade-off used when the algorithm is picked automatically."""

    SPEED = "speed"
    ACCURACY = "accuracy"
    BALANCED = "balanced"


class ProcessingMode(str, Enum):
    """Which optional pipeline stages run.

    - FAST: skips topic grouping and frequency harmonization
    - BALANCED: runs every stage
    - COMPREHENSIVE: runs every stage with similarity clustering
    """

    FAST = "fast"
    BALANCED = "balanced"
    COMPREHENSIVE = "comprehensive"


class PipelineStage(str, Enum):
    """States of a selection run."""

    INIT = "init"
    TRIGGER_EVALUATION = "trigger_evaluation"
    TOPIC_GROUPING = "topic_grouping"
    PRIORITY_BALANCING = "priority_balancing"
    FREQUENCY_HARMONIZATION = "frequency_harmonization"
    TIME_OPTIMIZATION = "time_optimization"
    COMBINATION = "combination"
    DONE = "done"
    FAILED = "failed"


class ReasonCode(str, Enum):
    """Why a run produced an empty selection."""

    NO_ACTIVE_QUESTIONS = "no_active_questions"
    NO_TRIGGERED_QUESTIONS = "no_triggered_questions"
    BELOW_PRIORITY_THRESHOLD = "below_priority_threshold"
    NO_QUESTIONS_FIT_BUDGET = "no_questions_fit_budget"


class PriorityTier(str, Enum):
    """Named priority bands of a combination rule."""

    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    BELOW_LOW = "below_low"

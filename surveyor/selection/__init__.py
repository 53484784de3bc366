"""Question selection domain.

The pipeline entry point lives in surveyor.selection.engine:

    from surveyor.selection.engine import SelectionEngine
"""

from surveyor.selection.exceptions import (
    AmbiguousCombinationRuleError,
    ConditionEvaluationError,
    ConfigurationError,
    InvalidConstraintsError,
    NoActiveCombinationRuleError,
    SelectionError,
    StageFailedError,
)

__all__ = [
    "AmbiguousCombinationRuleError",
    "ConditionEvaluationError",
    "ConfigurationError",
    "InvalidConstraintsError",
    "NoActiveCombinationRuleError",
    "SelectionError",
    "StageFailedError",
]

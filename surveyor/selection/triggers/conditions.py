"""Condition matching for trigger evaluation.

Resolves the context field a condition names and applies its operator.
A field the context does not carry (None or an empty list) never
matches, whatever the operator.
"""

from typing import Any

from surveyor.selection.exceptions import ConditionEvaluationError
from surveyor.selection.models.context import EvaluationContext
from surveyor.selection.models.enums import ConditionField, ConditionOperator
from surveyor.selection.models.trigger import TriggerCondition

_FIELD_ATTRIBUTES: dict[ConditionField, str] = {
    ConditionField.PURCHASE_CATEGORY: "purchase_categories",
    ConditionField.PURCHASE_ITEM: "purchase_items",
    ConditionField.TRANSACTION_AMOUNT: "transaction_amount",
    ConditionField.TRANSACTION_CURRENCY: "transaction_currency",
    ConditionField.TIME_OF_DAY: "time_of_day",
    ConditionField.DAY_OF_WEEK: "day_of_week",
    ConditionField.IS_WEEKEND: "is_weekend",
    ConditionField.CUSTOMER_SEQUENCE: "customer_sequence",
}


def resolve_field(context: EvaluationContext, field: ConditionField) -> Any:
    """Return the context value for a condition field, or None if absent."""
    value = getattr(context, _FIELD_ATTRIBUTES[field])
    if isinstance(value, list) and not value:
        return None
    return value


def matches(condition: TriggerCondition, context: EvaluationContext) -> bool:
    """Check a single condition against the context.

    Raises:
        ConditionEvaluationError: If the condition value cannot be
            interpreted for its operator
    """
    actual = resolve_field(context, condition.field)
    if actual is None:
        return False

    operator = condition.operator
    if operator == ConditionOperator.EQUALS:
        return _equals(actual, condition.value)
    if operator == ConditionOperator.NOT_EQUALS:
        return not _equals(actual, condition.value)
    if operator == ConditionOperator.CONTAINS:
        return _contains(actual, condition.value)
    if operator == ConditionOperator.NOT_CONTAINS:
        return not _contains(actual, condition.value)
    if operator == ConditionOperator.GREATER_THAN:
        return _number(actual, "context") > _number(condition.value, "value")
    if operator == ConditionOperator.LESS_THAN:
        return _number(actual, "context") < _number(condition.value, "value")
    if operator == ConditionOperator.BETWEEN:
        low, high = _bounds(condition)
        return low <= _number(actual, "context") <= high
    if operator == ConditionOperator.IN_RANGE:
        if isinstance(condition.value, list):
            return _equals(actual, condition.value)
        low, high = _bounds(condition)
        number = _number(actual, "context")
        if low <= high:
            return low <= number <= high
        # Window wraps around, e.g. 22 -> 6
        return number >= low or number <= high

    raise ConditionEvaluationError(f"Unsupported operator: {operator}")


def _normalize(value: Any) -> Any:
    if isinstance(value, str):
        return value.strip().lower()
    if isinstance(value, bool):
        return value
    if isinstance(value, int | float):
        return float(value)
    return value


def _scalar_equals(left: Any, right: Any) -> bool:
    if isinstance(left, bool) or isinstance(right, bool):
        return _to_bool(left) == _to_bool(right)
    if isinstance(left, int | float) and not isinstance(right, int | float):
        return float(left) == _number(right, "value")
    return _normalize(left) == _normalize(right)


def _equals(actual: Any, expected: Any) -> bool:
    """Equality, or membership when either side is a list."""
    actual_values = actual if isinstance(actual, list) else [actual]
    expected_values = expected if isinstance(expected, list) else [expected]
    return any(
        _scalar_equals(a, e) for a in actual_values for e in expected_values
    )


def _contains(actual: Any, expected: Any) -> bool:
    if isinstance(actual, list):
        return _equals(actual, expected)
    if isinstance(actual, str):
        needles = expected if isinstance(expected, list) else [expected]
        haystack = actual.lower()
        return any(str(needle).lower() in haystack for needle in needles)
    raise ConditionEvaluationError(
        f"contains is not defined for {type(actual).__name__} fields"
    )


def _to_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lower() in ("true", "false"):
        return value.strip().lower() == "true"
    raise ConditionEvaluationError(f"Cannot interpret {value!r} as a boolean")


def _number(value: Any, label: str) -> float:
    if isinstance(value, bool) or isinstance(value, list):
        raise ConditionEvaluationError(f"Expected a number for {label}, got {value!r}")
    try:
        return float(value)
    except (TypeError, ValueError) as e:
        raise ConditionEvaluationError(
            f"Expected a number for {label}, got {value!r}"
        ) from e


def _bounds(condition: TriggerCondition) -> tuple[float, float]:
    if condition.secondary_value is None:
        raise ConditionEvaluationError(
            f"{condition.operator.value} on {condition.field.value} requires secondary_value"
        )
    return _number(condition.value, "value"), _number(condition.secondary_value, "secondary_value")

"""Tests for trigger condition matching."""

from datetime import datetime

import pytest

from surveyor.selection.exceptions import ConditionEvaluationError
from surveyor.selection.models import (
    ConditionField,
    ConditionOperator,
    EvaluationContext,
    TriggerCondition,
)
from surveyor.selection.triggers.conditions import matches, resolve_field


def condition(
    field: ConditionField,
    operator: ConditionOperator,
    value,
    secondary_value=None,
) -> TriggerCondition:
    return TriggerCondition(
        field=field,
        operator=operator,
        value=value,
        secondary_value=secondary_value,
    )


@pytest.fixture
def context() -> EvaluationContext:
    """A Saturday evening bakery purchase."""
    return EvaluationContext(
        purchase_categories=["bakery", "dairy"],
        purchase_items=["Sourdough loaf"],
        transaction_amount=750.0,
        transaction_currency="SEK",
        transaction_time=datetime(2024, 6, 1, 23, 30),
        customer_sequence=3,
    )


class TestEvaluationContext:
    """Tests for derived context fields."""

    def test_time_fields_derived_from_transaction_time(self, context: EvaluationContext) -> None:
        """Day, weekend flag and time of day come from transaction_time."""
        assert context.day_of_week == 5
        assert context.is_weekend is True
        assert context.time_of_day == 23.5

    def test_explicit_fields_win(self) -> None:
        """Explicit values are not overwritten by derivation."""
        ctx = EvaluationContext(
            transaction_time=datetime(2024, 6, 1, 23, 30),
            is_weekend=False,
            time_of_day=8.0,
        )
        assert ctx.is_weekend is False
        assert ctx.time_of_day == 8.0


class TestResolveField:
    """Tests for resolve_field."""

    def test_empty_list_counts_as_missing(self) -> None:
        """A context with no purchases has no purchase category."""
        assert resolve_field(EvaluationContext(), ConditionField.PURCHASE_CATEGORY) is None

    def test_scalar_field(self, context: EvaluationContext) -> None:
        """Scalar fields resolve to their value."""
        assert resolve_field(context, ConditionField.TRANSACTION_AMOUNT) == 750.0


class TestEqualityOperators:
    """Tests for equals and not_equals."""

    def test_equals_is_case_insensitive(self, context: EvaluationContext) -> None:
        """String comparison ignores case."""
        assert matches(
            condition(ConditionField.TRANSACTION_CURRENCY, ConditionOperator.EQUALS, "sek"),
            context,
        )

    def test_equals_list_field_is_membership(self, context: EvaluationContext) -> None:
        """A list field equals a value it contains."""
        assert matches(
            condition(ConditionField.PURCHASE_CATEGORY, ConditionOperator.EQUALS, "Dairy"),
            context,
        )

    def test_not_equals(self, context: EvaluationContext) -> None:
        """not_equals negates equality."""
        assert matches(
            condition(ConditionField.TRANSACTION_CURRENCY, ConditionOperator.NOT_EQUALS, "EUR"),
            context,
        )

    def test_boolean_field(self, context: EvaluationContext) -> None:
        """Boolean fields compare against boolean values."""
        assert matches(condition(ConditionField.IS_WEEKEND, ConditionOperator.EQUALS, True), context)
        assert matches(
            condition(ConditionField.IS_WEEKEND, ConditionOperator.EQUALS, "true"), context
        )


class TestContainsOperators:
    """Tests for contains and not_contains."""

    def test_contains_in_list(self, context: EvaluationContext) -> None:
        """A list field contains its members."""
        assert matches(
            condition(ConditionField.PURCHASE_CATEGORY, ConditionOperator.CONTAINS, "bakery"),
            context,
        )

    def test_contains_any_of_values(self, context: EvaluationContext) -> None:
        """A list value matches when any member is present."""
        assert matches(
            condition(
                ConditionField.PURCHASE_CATEGORY,
                ConditionOperator.CONTAINS,
                ["produce", "dairy"],
            ),
            context,
        )

    def test_not_contains(self, context: EvaluationContext) -> None:
        """not_contains is true when the value is absent."""
        assert matches(
            condition(ConditionField.PURCHASE_CATEGORY, ConditionOperator.NOT_CONTAINS, "meat"),
            context,
        )

    def test_contains_on_number_raises(self, context: EvaluationContext) -> None:
        """contains is not defined for numeric fields."""
        with pytest.raises(ConditionEvaluationError):
            matches(
                condition(ConditionField.TRANSACTION_AMOUNT, ConditionOperator.CONTAINS, "7"),
                context,
            )


class TestNumericOperators:
    """Tests for greater_than, less_than and between."""

    def test_greater_than(self, context: EvaluationContext) -> None:
        """greater_than is strict."""
        assert matches(
            condition(ConditionField.TRANSACTION_AMOUNT, ConditionOperator.GREATER_THAN, 500.0),
            context,
        )
        assert not matches(
            condition(ConditionField.TRANSACTION_AMOUNT, ConditionOperator.GREATER_THAN, 750.0),
            context,
        )

    def test_less_than_accepts_numeric_strings(self, context: EvaluationContext) -> None:
        """Numeric strings are read as numbers."""
        assert matches(
            condition(ConditionField.CUSTOMER_SEQUENCE, ConditionOperator.LESS_THAN, "5"),
            context,
        )

    def test_between_is_inclusive(self, context: EvaluationContext) -> None:
        """Both bounds of between are included."""
        assert matches(
            condition(
                ConditionField.TRANSACTION_AMOUNT, ConditionOperator.BETWEEN, 500.0, 750.0
            ),
            context,
        )

    def test_between_without_upper_bound_raises(self, context: EvaluationContext) -> None:
        """between needs a secondary value."""
        with pytest.raises(ConditionEvaluationError):
            matches(
                condition(ConditionField.TRANSACTION_AMOUNT, ConditionOperator.BETWEEN, 500.0),
                context,
            )

    def test_non_numeric_value_raises(self, context: EvaluationContext) -> None:
        """A value that is not a number cannot be compared."""
        with pytest.raises(ConditionEvaluationError):
            matches(
                condition(
                    ConditionField.TRANSACTION_AMOUNT, ConditionOperator.GREATER_THAN, "lots"
                ),
                context,
            )


class TestInRange:
    """Tests for in_range."""

    def test_wrapping_window(self, context: EvaluationContext) -> None:
        """A window from 22 to 6 covers late evening."""
        late = condition(ConditionField.TIME_OF_DAY, ConditionOperator.IN_RANGE, 22.0, 6.0)
        assert matches(late, context)
        assert not matches(late, EvaluationContext(time_of_day=12.0))
        assert matches(late, EvaluationContext(time_of_day=5.5))

    def test_plain_window(self) -> None:
        """A non-wrapping window behaves like between."""
        lunch = condition(ConditionField.TIME_OF_DAY, ConditionOperator.IN_RANGE, 11.0, 14.0)
        assert matches(lunch, EvaluationContext(time_of_day=12.0))
        assert not matches(lunch, EvaluationContext(time_of_day=15.0))

    def test_list_value_is_membership(self, context: EvaluationContext) -> None:
        """A list value is a set of accepted values."""
        weekend_days = condition(ConditionField.DAY_OF_WEEK, ConditionOperator.IN_RANGE, [5.0, 6.0])
        assert matches(weekend_days, context)
        assert not matches(weekend_days, EvaluationContext(day_of_week=2))


class TestMissingFields:
    """A missing context field never matches."""

    @pytest.mark.parametrize("operator", list(ConditionOperator))
    def test_missing_field_never_matches(self, operator: ConditionOperator) -> None:
        """Negated operators do not match a missing field either."""
        cond = condition(ConditionField.TRANSACTION_AMOUNT, operator, 100.0, 200.0)
        assert matches(cond, EvaluationContext()) is False

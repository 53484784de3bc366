"""Selection exception hierarchy.

All selection exceptions inherit from SelectionError and carry an
error_code so callers can report failures without matching on type.
Empty selections are not errors; they surface as a ReasonCode on the
result instead.
"""

from uuid import UUID

from surveyor.selection.models.enums import PipelineStage


class SelectionError(Exception):
    """Base exception for all selection errors."""

    error_code: str = "SELECTION_ERROR"

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class ConfigurationError(SelectionError):
    """Raised when business configuration cannot drive a run."""

    error_code = "CONFIGURATION_ERROR"


class NoActiveCombinationRuleError(ConfigurationError):
    """Raised when a business has no active combination rule."""

    error_code = "NO_ACTIVE_COMBINATION_RULE"

    def __init__(self, business_id: UUID) -> None:
        super().__init__(f"No active combination rule for business {business_id}")
        self.business_id = business_id


class AmbiguousCombinationRuleError(ConfigurationError):
    """Raised when a business has more than one active combination rule."""

    error_code = "AMBIGUOUS_COMBINATION_RULE"

    def __init__(self, business_id: UUID, rule_ids: list[UUID]) -> None:
        super().__init__(
            f"Business {business_id} has {len(rule_ids)} active combination rules"
        )
        self.business_id = business_id
        self.rule_ids = rule_ids


class InvalidConstraintsError(SelectionError):
    """Raised when request constraints are out of bounds."""

    error_code = "INVALID_CONSTRAINTS"


class ConditionEvaluationError(SelectionError):
    """Raised when a trigger condition value cannot be interpreted."""

    error_code = "CONDITION_EVALUATION_FAILED"

    def __init__(self, message: str, trigger_id: UUID | None = None) -> None:
        super().__init__(message)
        self.trigger_id = trigger_id


class StageFailedError(SelectionError):
    """Raised when a mandatory pipeline stage fails."""

    error_code = "STAGE_FAILED"

    def __init__(self, message: str, stage: PipelineStage) -> None:
        super().__init__(message)
        self.stage = stage

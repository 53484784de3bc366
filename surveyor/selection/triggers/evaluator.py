"""Trigger evaluation for the selection pipeline.

Tests every active trigger of a business against the customer and
transaction context and folds the firing triggers into per-question
priority boosts.
"""

import time
from collections.abc import Sequence
from uuid import UUID

from surveyor.observability.logging import get_logger
from surveyor.observability.metrics import TRIGGERS_FIRED
from surveyor.selection.exceptions import ConditionEvaluationError
from surveyor.selection.models.context import EvaluationContext
from surveyor.selection.models.enums import TriggerKind
from surveyor.selection.models.trigger import TriggerDefinition
from surveyor.selection.triggers.conditions import matches
from surveyor.selection.triggers.models import (
    ConditionMatch,
    QuestionBoost,
    TriggerActivation,
    TriggerEvaluationMetadata,
    TriggerEvaluationResult,
)

logger = get_logger(__name__)

# Triggers at or above this confidence count as having all conditions met
HIGH_CONFIDENCE = 0.8

_FALLBACK_QUESTIONS: dict[TriggerKind, list[str]] = {
    TriggerKind.TIME_BASED: ["queue_time_question", "checkout_experience_question"],
    TriggerKind.AMOUNT_BASED: ["value_perception_question", "service_quality_question"],
}


def questions_for_trigger(trigger: TriggerDefinition) -> list[str]:
    """Question ids a firing trigger contributes.

    Explicit question_ids win. Otherwise purchase triggers map each
    configured category to its quality and freshness questions, and
    time/amount triggers map to fixed question sets.
    """
    if trigger.question_ids is not None:
        return list(trigger.question_ids)

    if trigger.kind == TriggerKind.PURCHASE_BASED:
        categories = trigger.config.get("categories", [])
        if not isinstance(categories, list) or not all(isinstance(c, str) for c in categories):
            raise ConditionEvaluationError(
                f"config 'categories' must be a list of strings, got {categories!r}",
                trigger_id=trigger.id,
            )
        questions = []
        for category in categories:
            questions.append(f"{category}_quality_question")
            questions.append(f"{category}_freshness_question")
        return questions

    return list(_FALLBACK_QUESTIONS.get(trigger.kind, []))


class TriggerEvaluator:
    """Evaluates dynamic triggers against an interaction context.

    Evaluation is a pure function of its inputs: no state is kept between
    calls, so a single evaluator is shared by concurrent runs.
    """

    def __init__(self, high_confidence: float = HIGH_CONFIDENCE) -> None:
        self._high_confidence = high_confidence

    def evaluate(
        self,
        context: EvaluationContext,
        triggers: Sequence[TriggerDefinition],
    ) -> TriggerEvaluationResult:
        """Evaluate triggers and fold their boosts.

        Args:
            context: Customer and transaction facts
            triggers: Trigger definitions of the business; inactive ones
                are ignored

        Returns:
            TriggerEvaluationResult with fired triggers, triggered
            question ids and the question boost map
        """
        start_time = time.perf_counter()

        active = [t for t in triggers if t.is_active]
        fired: list[TriggerActivation] = []
        skipped: list[UUID] = []
        errors: list[str] = []

        for trigger in active:
            try:
                activation = self._evaluate_trigger(trigger, context)
            except ConditionEvaluationError as e:
                logger.warning(
                    "trigger_evaluation_skipped",
                    trigger_id=str(trigger.id),
                    trigger_name=trigger.name,
                    error=e.message,
                )
                skipped.append(trigger.id)
                errors.append(f"{trigger.name}: {e.message}")
                continue
            except Exception as e:  # noqa: BLE001
                logger.warning(
                    "trigger_evaluation_failed",
                    trigger_id=str(trigger.id),
                    trigger_name=trigger.name,
                    error=str(e),
                )
                skipped.append(trigger.id)
                errors.append(f"{trigger.name}: {e}")
                continue

            if activation is not None:
                fired.append(activation)
                TRIGGERS_FIRED.labels(kind=trigger.kind.value).inc()

        triggered_ids: list[str] = []
        for activation in fired:
            for question_id in activation.question_ids:
                if question_id not in triggered_ids:
                    triggered_ids.append(question_id)

        elapsed_ms = (time.perf_counter() - start_time) * 1000
        average_confidence = (
            sum(a.confidence for a in fired) / len(fired) if fired else 0.0
        )

        metadata = TriggerEvaluationMetadata(
            triggers_evaluated=len(active),
            triggers_fired=len(fired),
            processing_time_ms=elapsed_ms,
            average_confidence=average_confidence,
            high_confidence_triggers=sum(
                1 for a in fired if a.confidence >= self._high_confidence
            ),
            skipped_trigger_ids=skipped,
            errors=errors,
        )

        logger.info(
            "triggers_evaluated",
            evaluated=len(active),
            fired=len(fired),
            questions_triggered=len(triggered_ids),
            skipped=len(skipped),
            elapsed_ms=elapsed_ms,
        )

        return TriggerEvaluationResult(
            fired_triggers=fired,
            triggered_question_ids=triggered_ids,
            question_boosts=fold_boosts(fired),
            metadata=metadata,
        )

    def _evaluate_trigger(
        self,
        trigger: TriggerDefinition,
        context: EvaluationContext,
    ) -> TriggerActivation | None:
        """Return an activation if the trigger fires, else None."""
        if not trigger.conditions:
            return self._activation(trigger, 1.0, [], "No conditions - always active")

        results: list[ConditionMatch] = []
        for condition in trigger.conditions:
            try:
                matched = matches(condition, context)
            except ConditionEvaluationError as e:
                e.trigger_id = trigger.id
                raise
            if condition.is_required and not matched:
                logger.debug(
                    "trigger_required_condition_unmet",
                    trigger_id=str(trigger.id),
                    field=condition.field.value,
                )
                return None
            results.append(
                ConditionMatch(
                    field=condition.field.value,
                    operator=condition.operator.value,
                    matched=matched,
                    weight=condition.weight_factor,
                    is_required=condition.is_required,
                )
            )

        total_weight = sum(r.weight for r in results) or 1.0
        confidence = sum(r.weight for r in results if r.matched) / total_weight
        confidence = min(confidence, 1.0)

        if confidence < trigger.sensitivity_threshold / 100:
            return None

        met = [
            f"{c.field.value}({c.operator.value}: {c.value})"
            for c, r in zip(trigger.conditions, results)
            if r.matched
        ]
        reason = f"{trigger.kind.value} trigger activated: {', '.join(met)}"
        return self._activation(trigger, confidence, results, reason)

    def _activation(
        self,
        trigger: TriggerDefinition,
        confidence: float,
        results: list[ConditionMatch],
        reason: str,
    ) -> TriggerActivation:
        return TriggerActivation(
            trigger_id=trigger.id,
            trigger_name=trigger.name,
            kind=trigger.kind,
            priority_level=trigger.priority_level,
            confidence=confidence,
            priority_boost=trigger.priority_boost,
            question_ids=questions_for_trigger(trigger),
            condition_matches=results,
            activation_reason=reason,
        )


def fold_boosts(activations: Sequence[TriggerActivation]) -> dict[str, QuestionBoost]:
    """Fold firing triggers into a question id -> QuestionBoost map.

    The boost is the maximum positive boost across triggers that selected
    the question. The reason comes from the highest priority_level
    trigger, ties going to the lowest trigger id. Questions whose
    triggers carry no boost get no entry.
    """
    by_question: dict[str, list[TriggerActivation]] = {}
    for activation in activations:
        if activation.priority_boost <= 0:
            continue
        for question_id in activation.question_ids:
            by_question.setdefault(question_id, []).append(activation)

    boosts: dict[str, QuestionBoost] = {}
    for question_id, contributors in by_question.items():
        lead = min(contributors, key=lambda a: (-a.priority_level, str(a.trigger_id)))
        boosts[question_id] = QuestionBoost(
            question_id=question_id,
            boost=max(a.priority_boost for a in contributors),
            trigger_ids=tuple(a.trigger_id for a in contributors),
            reason_trigger_id=lead.trigger_id,
            reason=lead.activation_reason,
        )
    return boosts

"""Time-constrained question optimization.

Estimates durations, chooses a strategy and turns its picks into a
uniform OptimizationResult.
"""

import time
from collections.abc import Sequence

from surveyor.observability.logging import get_logger
from surveyor.selection.models.enums import AlgorithmPreference, OptimizationAlgorithm
from surveyor.selection.models.question import ScoredQuestion
from surveyor.selection.optimization.estimation import DurationEstimator
from surveyor.selection.optimization.models import (
    OptimizationResult,
    SelectedItem,
    StrategyProfile,
    StrategySelection,
    TimeBreakdown,
    TimeBudget,
    TimedQuestion,
)
from surveyor.selection.optimization.strategies import (
    TimeStrategy,
    choose_algorithm,
    create_time_strategy,
)

logger = get_logger(__name__)


class TimeConstraintOptimizer:
    """Selects the questions that fit an interaction's time budget."""

    def __init__(
        self,
        estimator: DurationEstimator | None = None,
        max_dp_cells: int = 2_000_000,
    ) -> None:
        self._estimator = estimator or DurationEstimator()
        self._max_dp_cells = max_dp_cells

    def estimate(self, questions: Sequence[ScoredQuestion]) -> list[ScoredQuestion]:
        """Attach duration estimates to questions that lack one."""
        estimated = []
        for scored in questions:
            if scored.estimated_duration is None or scored.duration_confidence is None:
                estimate = self._estimator.estimate(scored.question)
                scored = scored.model_copy(
                    update={
                        "estimated_duration": estimate.seconds,
                        "duration_confidence": estimate.confidence,
                    }
                )
            estimated.append(scored)
        return estimated

    def optimize(
        self,
        questions: Sequence[ScoredQuestion],
        budget: TimeBudget,
        algorithm: OptimizationAlgorithm | None = None,
        preference: AlgorithmPreference = AlgorithmPreference.BALANCED,
    ) -> OptimizationResult:
        """Select questions within the budget.

        Args:
            questions: Prioritized questions
            budget: Time budget of the interaction
            algorithm: Explicit strategy; None picks one from the number
                of questions and the preference
            preference: Trade-off for the automatic pick

        Returns:
            OptimizationResult with the accepted questions
        """
        start_time = time.perf_counter()

        items = self._timed(self.estimate(questions))
        chosen = algorithm or choose_algorithm(len(items), preference)
        strategy = self._strategy(chosen)

        selection = strategy.select(items, budget)
        elapsed_ms = (time.perf_counter() - start_time) * 1000

        result = build_result(
            selection,
            budget,
            considered=len(items),
            requested=chosen,
            processing_time_ms=elapsed_ms,
        )

        logger.info(
            "time_optimized",
            algorithm=result.algorithm.value,
            requested_algorithm=chosen.value,
            considered=len(items),
            selected=result.questions_selected,
            total_duration=result.total_estimated_duration,
            utilization=round(result.time_utilization, 1),
            elapsed_ms=elapsed_ms,
        )

        return result

    def describe_strategies(self) -> list[StrategyProfile]:
        """Descriptors of every available strategy."""
        return [self._strategy(a).profile for a in OptimizationAlgorithm]

    def _strategy(self, algorithm: OptimizationAlgorithm) -> TimeStrategy:
        if algorithm == OptimizationAlgorithm.DYNAMIC_PROGRAMMING:
            return create_time_strategy(algorithm, max_cells=self._max_dp_cells)
        return create_time_strategy(algorithm)

    def _timed(self, questions: Sequence[ScoredQuestion]) -> list[TimedQuestion]:
        return [
            TimedQuestion(
                question_id=scored.id,
                text=scored.question.text,
                priority=scored.adjusted_priority,
                duration=scored.estimated_duration or 1,
                confidence=scored.duration_confidence or 0.0,
                position=position,
                token_count=scored.question.token_count,
            )
            for position, scored in enumerate(questions)
        ]


def build_result(
    selection: StrategySelection,
    budget: TimeBudget,
    considered: int,
    requested: OptimizationAlgorithm,
    processing_time_ms: float = 0.0,
) -> OptimizationResult:
    """Aggregate strategy picks into an OptimizationResult."""
    transition = budget.transition_seconds
    max_duration = budget.max_duration_seconds

    selected = [
        SelectedItem(
            question_id=pick.item.question_id,
            text=pick.item.text,
            priority=pick.item.priority,
            estimated_duration=pick.item.duration,
            reason=pick.reason,
            time_allocation_seconds=pick.item.consumed(transition),
            time_allocation_percent=pick.item.consumed(transition) / max_duration * 100,
            confidence=pick.item.confidence,
        )
        for pick in selection.picks
    ]

    total = float(sum(item.time_allocation_seconds for item in selected))
    transition_time = float(len(selected) * transition)
    warnings = []
    fallback_reason = selection.metadata.get("fallback_reason")
    if fallback_reason:
        warnings.append(f"{requested.value} fell back to {selection.algorithm.value}: {fallback_reason}")

    return OptimizationResult(
        algorithm=selection.algorithm,
        requested_algorithm=requested if selection.algorithm != requested else None,
        selected=selected,
        total_estimated_duration=total,
        total_token_count=sum(pick.item.token_count for pick in selection.picks),
        time_utilization=total / max_duration * 100,
        questions_considered=considered,
        average_confidence=(
            sum(item.confidence for item in selected) / len(selected) if selected else 0.0
        ),
        processing_time_ms=processing_time_ms,
        time_breakdown=TimeBreakdown(
            question_time=total - transition_time,
            buffer_time=budget.buffer_seconds,
            transition_time=transition_time,
            total_constraint=max_duration,
        ),
        warnings=warnings,
    )

"""Time-budgeted selection strategies.

Each strategy picks a subset of timed questions whose consumed time
(duration plus transition) fits the available time of a budget.

Contract guarantees:
    - Total consumed time of the picks never exceeds available time
    - Each question is picked at most once
    - Output is a deterministic function of the input; ties go to the
      question that appears first in the input
"""

import math
from abc import ABC, abstractmethod
from collections.abc import Callable, Sequence
from typing import Any

import numpy as np

from surveyor.observability.logging import get_logger
from surveyor.selection.models.enums import AlgorithmPreference, OptimizationAlgorithm
from surveyor.selection.optimization.models import (
    Pick,
    StrategyProfile,
    StrategySelection,
    TimeBudget,
    TimedQuestion,
)

logger = get_logger(__name__)

# Auto-pick thresholds on the number of candidates
DP_MAX_QUESTIONS = 20
GREEDY_MIN_QUESTIONS = 50


class TimeStrategy(ABC):
    """Interface for selecting questions within a time budget."""

    @property
    @abstractmethod
    def algorithm(self) -> OptimizationAlgorithm:
        """Return the strategy identifier."""
        pass

    @property
    @abstractmethod
    def profile(self) -> StrategyProfile:
        """Return the strategy descriptor."""
        pass

    @property
    def name(self) -> str:
        return self.algorithm.value

    @abstractmethod
    def select(
        self,
        items: Sequence[TimedQuestion],
        budget: TimeBudget,
    ) -> StrategySelection:
        """Select questions that fit the budget.

        Args:
            items: Timed questions in prioritized order
            budget: Time budget to respect

        Returns:
            StrategySelection with picks in acceptance order
        """
        pass


class GreedyStrategy(TimeStrategy):
    """Highest priority first, shorter first on ties.

    Accepts each question that still fits; never backtracks.
    """

    @property
    def algorithm(self) -> OptimizationAlgorithm:
        return OptimizationAlgorithm.GREEDY

    @property
    def profile(self) -> StrategyProfile:
        return StrategyProfile(
            algorithm=self.algorithm,
            name="Greedy Priority",
            description="Select highest priority questions first until time limit",
            time_complexity="O(n log n)",
            accuracy="medium",
            speed="fast",
        )

    def select(
        self,
        items: Sequence[TimedQuestion],
        budget: TimeBudget,
    ) -> StrategySelection:
        ranked = sorted(items, key=lambda q: (-q.priority, q.duration, q.position))
        picks = _fill(
            ranked,
            budget,
            lambda q: f"Greedy selection - Priority {q.priority:.2f}",
        )
        return StrategySelection(picks=picks, algorithm=self.algorithm)


class DynamicProgrammingStrategy(TimeStrategy):
    """0/1 knapsack over whole seconds.

    Maximizes the sum of priority * confidence. Capacity is the floor of
    the available time and each weight the ceiling of the consumed time,
    so a DP selection always fits the real budget. Problems whose table
    would exceed max_cells are delegated to the greedy strategy.
    """

    def __init__(self, max_cells: int = 2_000_000) -> None:
        self._max_cells = max_cells

    @property
    def algorithm(self) -> OptimizationAlgorithm:
        return OptimizationAlgorithm.DYNAMIC_PROGRAMMING

    @property
    def profile(self) -> StrategyProfile:
        return StrategyProfile(
            algorithm=self.algorithm,
            name="Dynamic Programming",
            description="Optimal selection using knapsack algorithm",
            time_complexity="O(n * W)",
            accuracy="high",
            speed="slow",
        )

    def select(
        self,
        items: Sequence[TimedQuestion],
        budget: TimeBudget,
    ) -> StrategySelection:
        capacity = max(0, math.floor(budget.available_seconds))
        cells = (len(items) + 1) * (capacity + 1)

        if cells > self._max_cells:
            logger.warning(
                "dp_table_too_large",
                cells=cells,
                max_cells=self._max_cells,
                num_questions=len(items),
            )
            fallback = GreedyStrategy().select(items, budget)
            fallback.metadata["fallback_reason"] = "dp_table_too_large"
            fallback.metadata["dp_cells"] = cells
            return fallback

        ordered = sorted(items, key=lambda q: q.position)
        weights = [math.ceil(q.consumed(budget.transition_seconds)) for q in ordered]
        values = np.array([q.priority * q.confidence for q in ordered], dtype=np.float64)

        n = len(ordered)
        table = np.zeros((n + 1, capacity + 1), dtype=np.float64)
        for i in range(1, n + 1):
            weight = weights[i - 1]
            table[i] = table[i - 1]
            if weight <= capacity:
                candidate = table[i - 1, : capacity + 1 - weight] + values[i - 1]
                table[i, weight:] = np.maximum(table[i - 1, weight:], candidate)

        chosen: list[TimedQuestion] = []
        remaining = capacity
        for i in range(n, 0, -1):
            if table[i, remaining] > table[i - 1, remaining]:
                chosen.append(ordered[i - 1])
                remaining -= weights[i - 1]
        chosen.reverse()

        picks = [
            Pick(
                item=q,
                reason=f"Optimal DP selection - Value score: {q.priority * q.confidence:.2f}",
            )
            for q in chosen
        ]
        return StrategySelection(
            picks=picks,
            algorithm=self.algorithm,
            metadata={"dp_cells": cells, "total_value": float(table[n, capacity])},
        )


class TimeBalancedStrategy(TimeStrategy):
    """Shares available time across priority levels.

    Questions are bucketed by priority level (adjusted priority rounded
    half up, at least 1). Each bucket is allotted time proportional to
    level * bucket size and filled shortest first; the overall available
    time is never exceeded.
    """

    @property
    def algorithm(self) -> OptimizationAlgorithm:
        return OptimizationAlgorithm.TIME_BALANCED

    @property
    def profile(self) -> StrategyProfile:
        return StrategyProfile(
            algorithm=self.algorithm,
            name="Time Balanced",
            description="Distribute time proportionally across priority levels",
            time_complexity="O(n log n)",
            accuracy="high",
            speed="medium",
        )

    def select(
        self,
        items: Sequence[TimedQuestion],
        budget: TimeBudget,
    ) -> StrategySelection:
        buckets: dict[int, list[TimedQuestion]] = {}
        for q in items:
            buckets.setdefault(priority_level(q.priority), []).append(q)

        total_weight = sum(level * len(members) for level, members in buckets.items())
        available = budget.available_seconds
        allocations = {
            level: available * level * len(members) / total_weight
            for level, members in buckets.items()
        }

        picks: list[Pick] = []
        used = 0
        for level in sorted(buckets, reverse=True):
            bucket_used = 0
            for q in sorted(buckets[level], key=lambda q: (q.duration, q.position)):
                consumed = q.consumed(budget.transition_seconds)
                if bucket_used + consumed <= allocations[level] and used + consumed <= available:
                    picks.append(
                        Pick(item=q, reason=f"Time-balanced selection - Priority {level} allocation")
                    )
                    bucket_used += consumed
                    used += consumed

        return StrategySelection(
            picks=picks,
            algorithm=self.algorithm,
            metadata={"allocations": {str(k): v for k, v in allocations.items()}},
        )


class EfficiencyRankedStrategy(TimeStrategy):
    """Highest priority per second first."""

    @property
    def algorithm(self) -> OptimizationAlgorithm:
        return OptimizationAlgorithm.EFFICIENCY_RANKED

    @property
    def profile(self) -> StrategyProfile:
        return StrategyProfile(
            algorithm=self.algorithm,
            name="Efficiency Ranked",
            description="Efficiency-based selection using priority-to-duration ratio",
            time_complexity="O(n log n)",
            accuracy="medium",
            speed="fast",
        )

    def select(
        self,
        items: Sequence[TimedQuestion],
        budget: TimeBudget,
    ) -> StrategySelection:
        ranked = sorted(items, key=lambda q: (-(q.priority / q.duration), q.position))
        picks = _fill(
            ranked,
            budget,
            lambda q: f"Efficiency-ranked selection - Score: {q.priority / q.duration:.2f}",
        )
        return StrategySelection(picks=picks, algorithm=self.algorithm)


def priority_level(priority: float) -> int:
    """Whole priority level of an adjusted priority, at least 1."""
    return max(1, int(math.floor(priority + 0.5)))


def _fill(
    ranked: Sequence[TimedQuestion],
    budget: TimeBudget,
    reason: Callable[[TimedQuestion], str],
) -> list[Pick]:
    """Accept questions in ranked order while they fit."""
    picks: list[Pick] = []
    used = 0
    for q in ranked:
        consumed = q.consumed(budget.transition_seconds)
        if used + consumed <= budget.available_seconds:
            picks.append(Pick(item=q, reason=reason(q)))
            used += consumed
    return picks


def choose_algorithm(
    question_count: int,
    preference: AlgorithmPreference = AlgorithmPreference.BALANCED,
) -> OptimizationAlgorithm:
    """Pick a strategy from problem size and preference."""
    if question_count <= DP_MAX_QUESTIONS and preference != AlgorithmPreference.SPEED:
        return OptimizationAlgorithm.DYNAMIC_PROGRAMMING
    if question_count > GREEDY_MIN_QUESTIONS or preference == AlgorithmPreference.SPEED:
        return OptimizationAlgorithm.GREEDY
    if preference == AlgorithmPreference.ACCURACY:
        return OptimizationAlgorithm.TIME_BALANCED
    return OptimizationAlgorithm.EFFICIENCY_RANKED


def create_time_strategy(
    algorithm: OptimizationAlgorithm | str,
    **kwargs: Any,
) -> TimeStrategy:
    """Factory function to create time strategies.

    Args:
        algorithm: Strategy name (greedy, dynamic_programming,
            time_balanced, efficiency_ranked)
        **kwargs: Strategy-specific parameters

    Returns:
        Configured TimeStrategy instance

    Raises:
        ValueError: If the algorithm name is not recognized
    """
    strategies: dict[str, type[TimeStrategy]] = {
        OptimizationAlgorithm.GREEDY.value: GreedyStrategy,
        OptimizationAlgorithm.DYNAMIC_PROGRAMMING.value: DynamicProgrammingStrategy,
        OptimizationAlgorithm.TIME_BALANCED.value: TimeBalancedStrategy,
        OptimizationAlgorithm.EFFICIENCY_RANKED.value: EfficiencyRankedStrategy,
    }

    key = algorithm.value if isinstance(algorithm, OptimizationAlgorithm) else algorithm
    if key not in strategies:
        valid = ", ".join(strategies.keys())
        raise ValueError(f"Unknown algorithm: {key}. Valid options: {valid}")

    return strategies[key](**kwargs)

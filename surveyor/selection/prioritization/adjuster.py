"""Priority and topic adjustment for the selection pipeline.

Computes each candidate's adjusted priority and puts candidates in
conversational order: grouped by topic, best topic first.
"""

from collections.abc import Sequence

from surveyor.observability.logging import get_logger
from surveyor.selection.models.question import ScoredQuestion
from surveyor.selection.prioritization.models import (
    AdjustmentResult,
    BusinessContext,
    TopicGroupingResult,
)
from surveyor.selection.prioritization.recency import fairness_score

logger = get_logger(__name__)


class PriorityAdjuster:
    """Combines base priority, trigger boost, weights and fairness.

    adjusted = (base + trigger_boost) * category_weight * topic_boost
               + fairness_weight * fairness_score
    """

    def __init__(self, fairness_weight: float = 0.1) -> None:
        self._fairness_weight = fairness_weight

    def adjust(
        self,
        candidates: Sequence[ScoredQuestion],
        topic_groups: TopicGroupingResult | None,
        business_context: BusinessContext,
    ) -> AdjustmentResult:
        """Score and order candidates.

        Args:
            candidates: Candidates carrying their trigger boosts
            topic_groups: Topic grouping, or None when topic metadata
                could not be loaded; ordering then falls back to a pure
                priority sort
            business_context: Reference time and category weights

        Returns:
            AdjustmentResult with candidates in conversational order
        """
        topic_boosts = topic_groups.topic_boosts() if topic_groups else {}
        group_names = topic_groups.group_names() if topic_groups else {}

        scored = [
            self._score(c, topic_boosts, group_names, business_context)
            for c in candidates
        ]

        if topic_groups is None:
            logger.warning("topic_metadata_unavailable", num_questions=len(scored))
            ordered = sorted(scored, key=_within_topic_key)
            return AdjustmentResult(questions=ordered, topic_metadata_available=False)

        ordered = _order_by_topic(scored)

        logger.debug(
            "priorities_adjusted",
            num_questions=len(ordered),
            num_topics=len({q.topic_category for q in ordered}),
        )

        return AdjustmentResult(questions=ordered)

    def _score(
        self,
        candidate: ScoredQuestion,
        topic_boosts: dict[str, float],
        group_names: dict[str, str],
        business_context: BusinessContext,
    ) -> ScoredQuestion:
        question = candidate.question
        category_weight = business_context.category_weights.get(question.category, 1.0)
        topic_boost = topic_boosts.get(question.id, 1.0)
        fairness = fairness_score(question.last_presented_at, business_context.now)

        adjusted = (question.base_priority + candidate.trigger_boost) * category_weight * topic_boost
        adjusted += self._fairness_weight * fairness

        return candidate.model_copy(
            update={
                "category_weight": category_weight,
                "topic_boost": topic_boost,
                "fairness_score": fairness,
                "adjusted_priority": adjusted,
                "group_name": group_names.get(question.id, candidate.group_name),
            }
        )


def _within_topic_key(q: ScoredQuestion) -> tuple[float, float, str]:
    return (-q.adjusted_priority, -q.fairness_score, q.id)


def _order_by_topic(questions: list[ScoredQuestion]) -> list[ScoredQuestion]:
    """Topics by their best adjusted priority, ties by topic name."""
    by_topic: dict[str, list[ScoredQuestion]] = {}
    for q in questions:
        by_topic.setdefault(q.topic_category, []).append(q)

    topics = sorted(
        by_topic,
        key=lambda t: (-max(q.adjusted_priority for q in by_topic[t]), t),
    )

    ordered: list[ScoredQuestion] = []
    for topic in topics:
        ordered.extend(sorted(by_topic[topic], key=_within_topic_key))
    return ordered


def reorder_within_topics(questions: Sequence[ScoredQuestion]) -> list[ScoredQuestion]:
    """Re-sort each topic's questions in place, keeping the topic layout.

    Every position held by a topic stays with that topic; the topic's
    questions are redistributed over those positions by descending
    adjusted priority.
    """
    by_topic: dict[str, list[ScoredQuestion]] = {}
    for q in questions:
        by_topic.setdefault(q.topic_category, []).append(q)
    queues = {
        topic: iter(sorted(members, key=_within_topic_key))
        for topic, members in by_topic.items()
    }
    return [next(queues[q.topic_category]) for q in questions]

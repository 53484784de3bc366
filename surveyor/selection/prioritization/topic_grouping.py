"""Topic grouping for the selection pipeline.

Assigns questions to conversation topics so related questions are asked
back to back, and yields the topic boost applied during priority
adjustment.
"""

import time
from collections.abc import Sequence

import numpy as np

from surveyor.observability.logging import get_logger
from surveyor.selection.models.question import CandidateQuestion, ScoredQuestion
from surveyor.selection.models.rule import TopicGroup
from surveyor.selection.prioritization.models import QuestionGroup, TopicGroupingResult

logger = get_logger(__name__)


def question_similarity(a: CandidateQuestion, b: CandidateQuestion) -> float:
    """Similarity 0-1 from shared category, topic, keywords and wording."""
    similarity = 0.0
    if a.category == b.category:
        similarity += 0.3
    if a.topic_category == b.topic_category:
        similarity += 0.2

    keywords_a = {k.lower() for k in a.keywords}
    keywords_b = {k.lower() for k in b.keywords}
    if keywords_a and keywords_b:
        similarity += 0.3 * len(keywords_a & keywords_b) / len(keywords_a | keywords_b)

    words_a = set(a.text.lower().split())
    words_b = set(b.text.lower().split())
    union = words_a | words_b
    if union:
        shared = {w for w in words_a & words_b if len(w) > 3}
        similarity += 0.2 * len(shared) / len(union)

    return min(1.0, similarity)


def similarity_matrix(questions: Sequence[CandidateQuestion]) -> np.ndarray:
    """Symmetric pairwise similarity matrix with ones on the diagonal."""
    n = len(questions)
    matrix = np.eye(n)
    for i in range(n):
        for j in range(i + 1, n):
            matrix[i, j] = matrix[j, i] = question_similarity(questions[i], questions[j])
    return matrix


class TopicGrouper:
    """Groups questions by topic category.

    Questions in a topic with an active configured TopicGroup take that
    group's name and boost. Oversized topics are split into subgroups of
    at most max_group_size, highest base priority first. With similarity
    enabled, each topic is first partitioned into similarity clusters and
    every cluster becomes its own subgroup.
    """

    def __init__(self, max_group_size: int = 4, min_similarity: float = 0.6) -> None:
        if max_group_size < 1:
            raise ValueError("max_group_size must be at least 1")
        self._max_group_size = max_group_size
        self._min_similarity = min_similarity

    def group(
        self,
        questions: Sequence[ScoredQuestion],
        topic_groups: Sequence[TopicGroup],
        use_similarity: bool = False,
    ) -> TopicGroupingResult:
        """Group questions into conversation topics.

        Args:
            questions: Candidates in their current order
            topic_groups: Configured topic groups of the business
            use_similarity: Partition each topic into similarity
                clusters before splitting by size

        Returns:
            TopicGroupingResult with one or more groups per topic
        """
        start_time = time.perf_counter()

        configured: dict[str, TopicGroup] = {}
        for topic_group in topic_groups:
            if topic_group.is_active:
                configured.setdefault(topic_group.topic_category, topic_group)

        by_topic: dict[str, list[CandidateQuestion]] = {}
        for scored in questions:
            by_topic.setdefault(scored.topic_category, []).append(scored.question)

        groups: list[QuestionGroup] = []
        for topic, members in by_topic.items():
            topic_group = configured.get(topic)
            base_name = topic_group.name if topic_group else topic.replace("_", " ")
            if use_similarity and len(members) > 1:
                subgroups = [
                    part for cluster in self._cluster(members) for part in self._split(cluster)
                ]
            else:
                subgroups = self._split(members)

            for index, subgroup in enumerate(subgroups):
                name = base_name if len(subgroups) == 1 else f"{base_name} - Group {index + 1}"
                groups.append(
                    QuestionGroup(
                        name=name,
                        topic_category=topic,
                        question_ids=[q.id for q in subgroup],
                        compatibility=self._compatibility(subgroup),
                        priority_boost=topic_group.priority_boost if topic_group else 1.0,
                        configured=topic_group is not None,
                    )
                )

        confidence = (
            float(np.mean([g.compatibility for g in groups])) if groups else 0.0
        )
        elapsed_ms = (time.perf_counter() - start_time) * 1000

        logger.debug(
            "topics_grouped",
            num_questions=len(questions),
            num_groups=len(groups),
            configured_topics=len(configured),
            elapsed_ms=elapsed_ms,
        )

        return TopicGroupingResult(
            groups=groups,
            confidence=confidence,
            grouping_time_ms=elapsed_ms,
        )

    def _cluster(self, members: list[CandidateQuestion]) -> list[list[CandidateQuestion]]:
        """Partition members into clusters of questions similar to a seed.

        Each unassigned question seeds a cluster and pulls in every later
        unassigned question at least min_similarity to it.
        """
        matrix = similarity_matrix(members)
        processed: set[int] = set()
        clusters: list[list[CandidateQuestion]] = []
        for i in range(len(members)):
            if i in processed:
                continue
            processed.add(i)
            cluster = [members[i]]
            for j in range(i + 1, len(members)):
                if j not in processed and matrix[i, j] >= self._min_similarity:
                    processed.add(j)
                    cluster.append(members[j])
            clusters.append(cluster)
        return clusters

    def _split(self, members: list[CandidateQuestion]) -> list[list[CandidateQuestion]]:
        if len(members) <= self._max_group_size:
            return [members]
        ranked = sorted(members, key=lambda q: -q.base_priority)
        size = self._max_group_size
        return [ranked[i : i + size] for i in range(0, len(ranked), size)]

    def _compatibility(self, members: list[CandidateQuestion]) -> float:
        """Mean pairwise similarity of a group."""
        if len(members) <= 1:
            return 1.0
        matrix = similarity_matrix(members)
        upper = matrix[np.triu_indices(len(members), k=1)]
        return float(upper.mean())

"""Frequency harmonization for the selection pipeline."""

from collections.abc import Sequence

from surveyor.observability.logging import get_logger
from surveyor.selection.models.question import ScoredQuestion
from surveyor.selection.prioritization.adjuster import reorder_within_topics
from surveyor.selection.prioritization.models import (
    ConflictSeverity,
    FrequencyConflict,
    HarmonizationResult,
)

logger = get_logger(__name__)


class FrequencyHarmonizer:
    """Demotes questions that are not yet due to repeat.

    A question is not due while interactions_since_presented is below its
    repeat_frequency. Such questions have their adjusted priority
    multiplied by penalty, unless preserve_high_priority is set and their
    base priority is at least high_priority_level.
    """

    def __init__(
        self,
        penalty: float = 0.5,
        preserve_high_priority: bool = True,
        high_priority_level: int = 4,
        overlap_ratio: float = 2.0,
    ) -> None:
        self._penalty = penalty
        self._preserve_high_priority = preserve_high_priority
        self._high_priority_level = high_priority_level
        self._overlap_ratio = overlap_ratio

    def harmonize(self, questions: Sequence[ScoredQuestion]) -> HarmonizationResult:
        demoted: list[str] = []
        preserved: list[str] = []
        harmonized: list[ScoredQuestion] = []

        for scored in questions:
            if not self._is_due(scored):
                if (
                    self._preserve_high_priority
                    and scored.question.base_priority >= self._high_priority_level
                ):
                    preserved.append(scored.id)
                    scored = scored.model_copy(
                        update={"harmonization_note": "Not yet due; kept for high priority"}
                    )
                else:
                    demoted.append(scored.id)
                    scored = scored.model_copy(
                        update={
                            "adjusted_priority": scored.adjusted_priority * self._penalty,
                            "harmonization_note": (
                                f"Asked {scored.question.interactions_since_presented} interactions ago; "
                                f"repeats every {scored.question.repeat_frequency}"
                            ),
                        }
                    )
            harmonized.append(scored)

        if demoted:
            harmonized = reorder_within_topics(harmonized)

        conflicts = self._detect_conflicts(harmonized)

        logger.debug(
            "frequencies_harmonized",
            num_questions=len(harmonized),
            demoted=len(demoted),
            preserved=len(preserved),
            conflicts=len(conflicts),
        )

        return HarmonizationResult(
            questions=harmonized,
            demoted_question_ids=demoted,
            preserved_question_ids=preserved,
            conflicts=conflicts,
        )

    def _is_due(self, scored: ScoredQuestion) -> bool:
        since = scored.question.interactions_since_presented
        if since is None or scored.question.repeat_frequency == 0:
            return True
        return since >= scored.question.repeat_frequency

    def _detect_conflicts(self, questions: Sequence[ScoredQuestion]) -> list[FrequencyConflict]:
        """Find same-topic questions with nearly equal repeat frequencies."""
        by_topic: dict[str, list[ScoredQuestion]] = {}
        for scored in questions:
            if scored.question.repeat_frequency > 0:
                by_topic.setdefault(scored.topic_category, []).append(scored)

        conflicts: list[FrequencyConflict] = []
        for members in by_topic.values():
            for i, first in enumerate(members):
                for second in members[i + 1 :]:
                    a = first.question.repeat_frequency
                    b = second.question.repeat_frequency
                    ratio = max(a, b) / min(a, b)
                    if ratio < self._overlap_ratio:
                        conflicts.append(
                            FrequencyConflict(
                                question_id=first.id,
                                conflicting_question_id=second.id,
                                ratio=ratio,
                                severity=ConflictSeverity.HIGH if ratio < 1.5 else ConflictSeverity.MEDIUM,
                            )
                        )
        return conflicts

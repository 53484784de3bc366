"""Recency-based fairness scoring."""

from datetime import datetime, timedelta

# (presented less than this long ago, score), checked in order
RECENCY_STAIRCASE: tuple[tuple[timedelta, float], ...] = (
    (timedelta(hours=1), 0.0),
    (timedelta(hours=6), 2.0),
    (timedelta(hours=24), 5.0),
    (timedelta(hours=72), 7.0),
)
NEVER_PRESENTED_SCORE = 10.0


def fairness_score(last_presented_at: datetime | None, now: datetime) -> float:
    """Score 0-10 favouring questions that have rested longer.

    A question never presented, or presented 72 hours or more ago, scores
    10. A timestamp in the future counts as just presented.
    """
    if last_presented_at is None:
        return NEVER_PRESENTED_SCORE

    elapsed = now - last_presented_at
    for limit, score in RECENCY_STAIRCASE:
        if elapsed < limit:
            return score
    return NEVER_PRESENTED_SCORE

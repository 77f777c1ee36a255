"""Project health scoring."""

from __future__ import annotations

from datetime import datetime, timezone

from ..status import AgentStatus
from .models import ProjectRecord

_ACTIVITY_TIERS = ((30, 40), (14, 25), (7, 15), (3, 5))
_CHANGE_TIERS = ((20, 30), (10, 20), (5, 10), (0, 5))
_TASK_TIERS = ((10, 20), (5, 10), (0, 5))
WORKING_BONUS = 10


def _tier_deduction(value: int, tiers: tuple[tuple[int, int], ...]) -> int:
    for threshold, deduction in tiers:
        if value > threshold:
            return deduction
    return 0


def calculate_health_score(project: ProjectRecord, now: datetime | None = None) -> int:
    """Score a project from 0 (neglected) to 100 (healthy).

    Staleness, uncommitted changes and open tasks each take off at most one
    tier's worth of points; an agent actively working adds a small bonus.
    """

    now = now or datetime.now(timezone.utc)
    score = 100
    if project.lastActivity is not None:
        days_since = (now - project.lastActivity).days
        score -= _tier_deduction(days_since, _ACTIVITY_TIERS)
    score -= _tier_deduction(project.uncommittedChanges, _CHANGE_TIERS)
    score -= _tier_deduction(len(project.remainingTasks), _TASK_TIERS)
    if project.live_status is AgentStatus.WORKING:
        score += WORKING_BONUS
    return max(0, min(100, score))


def health_label(score: int) -> str:
    """Return the display bucket for a health score."""

    if score >= 80:
        return "excellent"
    if score >= 60:
        return "good"
    if score >= 40:
        return "fair"
    if score >= 20:
        return "needs_attention"
    return "critical"


__all__ = ["WORKING_BONUS", "calculate_health_score", "health_label"]

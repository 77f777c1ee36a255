from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from project_dashboard.projects import ProjectRecord, calculate_health_score, health_label

NOW = datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc)


def make_project(*, days_ago: float = 0, changes: int = 0, tasks: int = 0, live: str | None = None) -> ProjectRecord:
    return ProjectRecord.model_validate(
        {
            "name": "api",
            "path": "/work/api",
            "lastActivity": (NOW - timedelta(days=days_ago)).isoformat(),
            "uncommittedChanges": changes,
            "remainingTasks": [f"task {i}" for i in range(tasks)],
            "claudeLive": {"status": live} if live else None,
        }
    )


def test_stale_project_with_lots_of_work_scores_ten() -> None:
    project = make_project(days_ago=40, changes=25, tasks=12)

    assert calculate_health_score(project, NOW) == 10


def test_fresh_clean_project_scores_full() -> None:
    assert calculate_health_score(make_project(), NOW) == 100


@pytest.mark.parametrize(
    ("days_ago", "expected"),
    [(2, 100), (3.5, 100), (4, 95), (8, 85), (15, 75), (31, 60)],
)
def test_activity_tiers(days_ago: float, expected: int) -> None:
    assert calculate_health_score(make_project(days_ago=days_ago), NOW) == expected


@pytest.mark.parametrize(
    ("changes", "expected"),
    [(0, 100), (1, 95), (5, 95), (6, 90), (11, 80), (21, 70)],
)
def test_change_tiers(changes: int, expected: int) -> None:
    assert calculate_health_score(make_project(changes=changes), NOW) == expected


@pytest.mark.parametrize(("tasks", "expected"), [(0, 100), (1, 95), (6, 90), (11, 80)])
def test_task_tiers(tasks: int, expected: int) -> None:
    assert calculate_health_score(make_project(tasks=tasks), NOW) == expected


def test_working_bonus_is_clamped_to_hundred() -> None:
    assert calculate_health_score(make_project(live="working"), NOW) == 100
    assert calculate_health_score(make_project(days_ago=40, live="working"), NOW) == 70


def test_waiting_gets_no_bonus() -> None:
    assert calculate_health_score(make_project(days_ago=40, live="waiting"), NOW) == 60


def test_score_is_monotonic_in_changes_and_tasks() -> None:
    change_scores = [calculate_health_score(make_project(changes=n), NOW) for n in range(0, 30)]
    task_scores = [calculate_health_score(make_project(tasks=n), NOW) for n in range(0, 15)]

    assert change_scores == sorted(change_scores, reverse=True)
    assert task_scores == sorted(task_scores, reverse=True)
    assert all(0 <= score <= 100 for score in change_scores + task_scores)


def test_missing_last_activity_has_no_staleness_penalty() -> None:
    project = ProjectRecord.model_validate({"name": "x", "path": "/x"})

    assert calculate_health_score(project, NOW) == 100


@pytest.mark.parametrize(
    ("score", "label"),
    [(100, "excellent"), (80, "excellent"), (79, "good"), (60, "good"), (40, "fair"), (20, "needs_attention"), (0, "critical")],
)
def test_health_label(score: int, label: str) -> None:
    assert health_label(score) == label

"""Project aggregation: records, health scores, projections and timeline."""

from .engine import ProjectDataSource, ProjectEngine, sort_projects
from .git import FakeGitRunner, GitNotFoundError, GitResult, GitRunner, GitRunnerError
from .health import calculate_health_score, health_label
from .models import (
    Direction,
    GitCommit,
    LiveStatus,
    ProjectFilter,
    ProjectRecord,
    SortKey,
    TimelineDay,
    TimelineEntry,
    ViewMode,
)
from .scanner import MAX_TASKS, LocalProjectSource

__all__ = [
    "Direction",
    "FakeGitRunner",
    "GitCommit",
    "GitNotFoundError",
    "GitResult",
    "GitRunner",
    "GitRunnerError",
    "LiveStatus",
    "LocalProjectSource",
    "MAX_TASKS",
    "ProjectDataSource",
    "ProjectEngine",
    "ProjectFilter",
    "ProjectRecord",
    "SortKey",
    "TimelineDay",
    "TimelineEntry",
    "ViewMode",
    "calculate_health_score",
    "health_label",
    "sort_projects",
]

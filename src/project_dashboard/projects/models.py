"""Project record, timeline and view-state models."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator

from ..status import AgentStatus, project_name_from_path

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def parse_timestamp(value: Any) -> datetime | None:
    """Parse an ISO-8601 string, epoch milliseconds or datetime into an aware datetime."""

    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, (int, float)):
        try:
            parsed = datetime.fromtimestamp(value / 1000, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    elif isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
    else:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def coerce_text(value: Any) -> str | None:
    """Return ``value`` as text when it is a string or number, else ``None``."""

    if isinstance(value, str):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return None


class ViewMode(str, Enum):
    LIST = "list"
    GRID = "grid"
    KANBAN = "kanban"
    GIT = "git"


class SortKey(str, Enum):
    ACTIVITY = "activity"
    NAME = "name"
    HEALTH = "health"
    CHANGES = "changes"


class ProjectFilter(str, Enum):
    ALL = "all"
    HAS_CHANGES = "hasChanges"
    HAS_TASKS = "hasTasks"
    CLAUDE_ACTIVE = "claudeActive"


class Direction(str, Enum):
    UP = "up"
    DOWN = "down"


ACTIVE_STATUSES = frozenset({AgentStatus.WORKING, AgentStatus.WAITING})


class GitCommit(BaseModel):
    """A commit summary as supplied by the data source."""

    model_config = ConfigDict(extra="ignore")

    message: str = ""
    date: str = ""
    hash: str | None = None
    author: str | None = None

    @field_validator("message", "date", mode="before")
    @classmethod
    def _text(cls, value: Any):  # type: ignore[override]
        if value is None:
            return ""
        if isinstance(value, datetime):
            return value.isoformat()
        return str(value)

    @field_validator("hash", "author", mode="before")
    @classmethod
    def _optional_text(cls, value: Any):  # type: ignore[override]
        return coerce_text(value)


class LiveStatus(BaseModel):
    """Agent-reported live status attached to a project."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    status: AgentStatus = AgentStatus.IDLE
    message: str | None = None
    task: str | None = None
    progress: int | None = None
    detectedAt: str | None = Field(
        default=None, validation_alias=AliasChoices("detectedAt", "updatedAt")
    )

    @field_validator("status", mode="before")
    @classmethod
    def _unknown_status_is_idle(cls, value: Any):  # type: ignore[override]
        if isinstance(value, AgentStatus):
            return value
        try:
            return AgentStatus(value)
        except ValueError:
            return AgentStatus.IDLE

    @field_validator("message", "task", "detectedAt", mode="before")
    @classmethod
    def _optional_text(cls, value: Any):  # type: ignore[override]
        return coerce_text(value)

    @field_validator("progress", mode="before")
    @classmethod
    def _coerce_progress(cls, value: Any):  # type: ignore[override]
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return max(0, min(100, int(round(value))))
        return None

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_STATUSES


class ProjectRecord(BaseModel):
    """Aggregated snapshot of one local repository."""

    model_config = ConfigDict(extra="ignore")

    name: str
    path: str
    branch: str = ""
    lastActivity: datetime | None = None
    uncommittedChanges: int = Field(default=0, ge=0)
    remainingTasks: list[str] = Field(default_factory=list)
    completedTasks: list[str] = Field(default_factory=list)
    recentCommits: list[GitCommit] = Field(default_factory=list)
    claudeLive: LiveStatus | None = None
    category: str | None = None
    summary: str | None = None
    healthScore: int | None = None

    @model_validator(mode="before")
    @classmethod
    def _derive_name(cls, data: Any):  # type: ignore[override]
        if not isinstance(data, dict):
            return data
        # The score is always recomputed on ingestion.
        data = {key: value for key, value in data.items() if key != "healthScore"}
        if not data.get("name") and data.get("path"):
            data["name"] = project_name_from_path(str(data["path"]))
        return data

    @field_validator("name", "path", mode="before")
    @classmethod
    def _identity_text(cls, value: Any):  # type: ignore[override]
        return coerce_text(value)

    @field_validator("branch", mode="before")
    @classmethod
    def _blank_branch(cls, value: Any):  # type: ignore[override]
        return coerce_text(value) or ""

    @field_validator("category", "summary", mode="before")
    @classmethod
    def _optional_text(cls, value: Any):  # type: ignore[override]
        return coerce_text(value) or None

    @field_validator("lastActivity", mode="before")
    @classmethod
    def _parse_last_activity(cls, value: Any):  # type: ignore[override]
        return parse_timestamp(value)

    @field_validator("uncommittedChanges", mode="before")
    @classmethod
    def _default_changes(cls, value: Any):  # type: ignore[override]
        if isinstance(value, bool):
            return 0
        try:
            count = int(value)
        except (TypeError, ValueError, OverflowError):
            return 0
        return max(count, 0)

    @field_validator("remainingTasks", "completedTasks", mode="before")
    @classmethod
    def _default_tasks(cls, value: Any):  # type: ignore[override]
        if not isinstance(value, (list, tuple)):
            return []
        return [str(item) for item in value if item is not None]

    @field_validator("recentCommits", mode="before")
    @classmethod
    def _default_commits(cls, value: Any):  # type: ignore[override]
        if not isinstance(value, (list, tuple)):
            return []
        return [item for item in value if isinstance(item, (dict, GitCommit))]

    @field_validator("claudeLive", mode="before")
    @classmethod
    def _default_live(cls, value: Any):  # type: ignore[override]
        if isinstance(value, (dict, LiveStatus)):
            return value
        return None

    @property
    def live_status(self) -> AgentStatus | None:
        return self.claudeLive.status if self.claudeLive is not None else None


class TimelineEntry(BaseModel):
    """A single dated event merged across all projects."""

    id: str
    type: Literal["commit", "claude_session"]
    project: str
    projectPath: str
    message: str
    date: str
    metadata: dict[str, Any] = Field(default_factory=dict)


class TimelineDay(BaseModel):
    """Timeline entries that fall on the same calendar day."""

    date: str
    label: str
    entries: list[TimelineEntry] = Field(default_factory=list)


__all__ = [
    "ACTIVE_STATUSES",
    "Direction",
    "EPOCH",
    "GitCommit",
    "LiveStatus",
    "ProjectFilter",
    "ProjectRecord",
    "SortKey",
    "TimelineDay",
    "TimelineEntry",
    "ViewMode",
    "coerce_text",
    "parse_timestamp",
]

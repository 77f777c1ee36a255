"""Models for agent-reported project status."""

from __future__ import annotations

from enum import Enum
from pathlib import PurePath
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class AgentStatus(str, Enum):
    """Working state an agent can report for a repository."""

    IDLE = "idle"
    WORKING = "working"
    WAITING = "waiting"
    DONE = "done"
    ERROR = "error"


def project_name_from_path(path: str) -> str:
    """Return the display name for a repository path (its final segment)."""

    name = PurePath(path.rstrip("/\\") or path).name
    return name or path


class StatusRecord(BaseModel):
    """Latest status reported for a single repository path."""

    model_config = ConfigDict(extra="ignore")

    name: str = Field(..., description="Display name derived from the path's final segment.")
    path: str = Field(..., description="Repository path the status belongs to.")
    status: AgentStatus = Field(default=AgentStatus.IDLE)
    message: str = Field(default="", description="Short description of the current activity.")
    task: str = Field(default="", description="Task or feature being worked on.")
    progress: int | None = Field(default=None, ge=0, le=100)
    updatedAt: str = Field(..., description="ISO-8601 timestamp of the last write.")

    @field_validator("message", "task", mode="before")
    @classmethod
    def _blank_none(cls, value):  # type: ignore[override]
        return "" if value is None else value

    @field_validator("progress", mode="before")
    @classmethod
    def _round_progress(cls, value):  # type: ignore[override]
        if isinstance(value, float):
            return int(round(value))
        return value

    def to_json(self) -> dict:
        return self.model_dump(mode="json")


class StatusDocument(BaseModel):
    """The persisted status document: a mapping of path to status record."""

    projects: dict[str, StatusRecord] = Field(default_factory=dict)
    passthrough: dict[str, Any] = Field(
        default_factory=dict,
        exclude=True,
        description="Entries that failed validation, written back unchanged on save.",
    )

    def to_json(self) -> dict:
        entries: dict[str, Any] = {
            path: entry for path, entry in self.passthrough.items() if path not in self.projects
        }
        entries.update((path, record.to_json()) for path, record in self.projects.items())
        return {"projects": entries}


__all__ = ["AgentStatus", "StatusDocument", "StatusRecord", "project_name_from_path"]

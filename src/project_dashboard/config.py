"""Configuration management for the Project Dashboard."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

STATUS_FILE_NAME = "status.json"


class DashboardSettings(BaseSettings):
    """Runtime configuration sourced from environment variables and optional .env file."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    home: Path = Field(default_factory=Path.home, validation_alias="HOME")
    status_dir_name: str = Field(
        default=".project-dashboard", validation_alias="PROJECT_DASHBOARD_DIR_NAME"
    )
    log_level: str = Field(default="INFO", validation_alias="PROJECT_DASHBOARD_LOG_LEVEL")
    projects_root: Path | None = Field(
        default=None, validation_alias="PROJECT_DASHBOARD_PROJECTS_ROOT"
    )
    commit_limit: int = Field(default=5, validation_alias="PROJECT_DASHBOARD_COMMIT_LIMIT")

    @field_validator("log_level")
    @classmethod
    def _normalize_log_level(cls, value: str) -> str:
        normalized = value.strip().upper()
        if normalized not in {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}:
            raise ValueError(
                "PROJECT_DASHBOARD_LOG_LEVEL must be one of CRITICAL, ERROR, WARNING, INFO, DEBUG"
            )
        return normalized

    @field_validator("status_dir_name")
    @classmethod
    def _validate_dir_name(cls, value: str) -> str:
        normalized = value.strip()
        if not normalized:
            raise ValueError("PROJECT_DASHBOARD_DIR_NAME must not be empty")
        return normalized

    @field_validator("commit_limit")
    @classmethod
    def _validate_commit_limit(cls, value: int) -> int:
        if value < 1:
            raise ValueError("PROJECT_DASHBOARD_COMMIT_LIMIT must be >= 1")
        return value

    @property
    def status_dir(self) -> Path:
        return self.home / self.status_dir_name

    @property
    def status_file(self) -> Path:
        return self.status_dir / STATUS_FILE_NAME


@lru_cache(maxsize=1)
def get_settings() -> DashboardSettings:
    """Return cached settings instance."""

    settings = DashboardSettings()
    settings.home = settings.home.expanduser()
    if settings.projects_root is not None:
        settings.projects_root = settings.projects_root.expanduser().resolve()
    return settings


__all__ = ["DashboardSettings", "STATUS_FILE_NAME", "get_settings"]

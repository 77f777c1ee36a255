"""Project data source that scans local git repositories."""

from __future__ import annotations

import asyncio
import json
import logging
import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Iterable

from ..status import StatusStore
from .git import GitRunner, GitRunnerError

logger = logging.getLogger(__name__)

DEFAULT_CATEGORY_FOLDERS = ("business-projects", "personal-projects", "archive")
TASK_FILES = ("task_plan.md", "TODO.md")
STATE_FILE = "CLAUDE_STATE.md"
LEGACY_STATUS_FILE = Path(".claude") / "project-status.json"
MAX_TASKS = 10

_UNCHECKED = re.compile(r"^\s*[-*]\s*\[\s*\]\s*(.+)")
_CHECKED = re.compile(r"^\s*[-*]\s*\[[xX]\]\s*(.+)")
_LOG_FORMAT = "%H%x1f%an%x1f%aI%x1f%s"
_OVERVIEW = re.compile(r"##\s*.*Project Overview.*\n\n([^\n#]+)", re.IGNORECASE)


def parse_task_markdown(content: str) -> tuple[list[str], list[str]]:
    """Split markdown checkboxes into (remaining, completed) task lists.

    Each list keeps at most ``MAX_TASKS`` entries, in file order.
    """

    remaining: list[str] = []
    completed: list[str] = []
    for line in content.splitlines():
        match = _UNCHECKED.match(line)
        if match:
            remaining.append(match.group(1).strip())
            continue
        match = _CHECKED.match(line)
        if match:
            completed.append(match.group(1).strip())
    return remaining[:MAX_TASKS], completed[:MAX_TASKS]


def parse_project_overview(content: str) -> str | None:
    """Return the first paragraph of a "Project Overview" section, if any."""

    match = _OVERVIEW.search(content.replace("\r\n", "\n"))
    if match is None:
        return None
    return match.group(1).strip() or None


def read_legacy_status(path: Path) -> dict[str, Any]:
    """Load a repository's ``.claude/project-status.json``; empty when unusable."""

    try:
        data = json.loads((path / LEGACY_STATUS_FILE).read_text(encoding="utf-8"))
    except (OSError, ValueError):
        return {}
    return data if isinstance(data, dict) else {}


def parse_log(output: str) -> list[dict[str, str]]:
    commits: list[dict[str, str]] = []
    for line in output.splitlines():
        parts = line.split("\x1f")
        if len(parts) != 4:
            continue
        commit_hash, author, date, message = parts
        commits.append({"hash": commit_hash, "author": author, "date": date, "message": message})
    return commits


class LocalProjectSource:
    """Builds project records from git repositories under a root directory.

    Immediate subdirectories containing ``.git`` are treated as projects.
    Category folders are scanned one level deeper and their name becomes the
    project category. Live agent status is joined from the status store.
    """

    def __init__(
        self,
        root: Path,
        *,
        status_store: StatusStore | None = None,
        git_runner: GitRunner | None = None,
        commit_limit: int = 5,
        category_folders: Iterable[str] = DEFAULT_CATEGORY_FOLDERS,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._root = Path(root).resolve()
        self._status_store = status_store
        self._git = git_runner or GitRunner()
        self._commit_limit = commit_limit
        self._category_folders = frozenset(category_folders)
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def discover(self) -> list[tuple[Path, str | None]]:
        """Return (repository path, category) pairs under the root."""

        found: list[tuple[Path, str | None]] = []
        if not self._root.is_dir():
            logger.warning("Projects root %s does not exist", self._root)
            return found

        for entry in sorted(self._root.iterdir()):
            if not entry.is_dir() or entry.name.startswith("."):
                continue
            if entry.name in self._category_folders:
                for child in sorted(entry.iterdir()):
                    if child.is_dir() and not child.name.startswith(".") and (child / ".git").exists():
                        found.append((child, entry.name))
            elif (entry / ".git").exists():
                found.append((entry, None))
        return found

    async def fetch(self) -> list[dict[str, Any]]:
        statuses = self._status_store.get_all() if self._status_store is not None else {}
        repositories = self.discover()
        results = await asyncio.gather(
            *(self._scan(path, category) for path, category in repositories),
            return_exceptions=True,
        )

        projects: list[dict[str, Any]] = []
        for (path, _), result in zip(repositories, results):
            if isinstance(result, BaseException):
                if not isinstance(result, (GitRunnerError, OSError)):
                    raise result
                logger.warning("Skipping repository %s: %s", path, result)
                continue
            live = statuses.get(str(path))
            result["claudeLive"] = live.to_json() if live is not None else None
            projects.append(result)
        return projects

    async def _scan(self, path: Path, category: str | None) -> dict[str, Any]:
        status = await self._git.run(path, "status", "--porcelain")
        if not status.ok:
            raise GitRunnerError(status.stderr.strip() or f"git status failed in {path}")

        branch = await self._git.run(path, "rev-parse", "--abbrev-ref", "HEAD")
        log = await self._git.run(path, "log", f"-n{self._commit_limit}", f"--format={_LOG_FORMAT}")
        commits = parse_log(log.stdout) if log.ok else []

        remaining: list[str] = []
        completed: list[str] = []
        for name in TASK_FILES:
            task_file = path / name
            if task_file.is_file():
                content = task_file.read_text(encoding="utf-8", errors="replace")
                remaining, completed = parse_task_markdown(content)
                if remaining or completed:
                    break

        legacy = read_legacy_status(path)
        if not remaining and isinstance(legacy.get("remainingTasks"), list):
            remaining = legacy["remainingTasks"]
        if not completed and isinstance(legacy.get("completedTasks"), list):
            completed = legacy["completedTasks"]

        summary = None
        state_file = path / STATE_FILE
        if state_file.is_file():
            summary = parse_project_overview(state_file.read_text(encoding="utf-8", errors="replace"))
        if summary is None and isinstance(legacy.get("summary"), str):
            summary = legacy["summary"] or None

        return {
            "name": path.name,
            "path": str(path),
            "branch": branch.stdout.strip() if branch.ok else "",
            "uncommittedChanges": sum(1 for line in status.stdout.splitlines() if line.strip()),
            "recentCommits": commits,
            "lastActivity": commits[0]["date"] if commits else self._clock().isoformat(),
            "remainingTasks": remaining,
            "completedTasks": completed,
            "category": category,
            "summary": summary,
        }


__all__ = [
    "LocalProjectSource",
    "parse_log",
    "parse_project_overview",
    "parse_task_markdown",
    "read_legacy_status",
]

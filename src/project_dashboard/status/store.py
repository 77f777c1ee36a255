"""JSON-file persistence for agent status records."""

from __future__ import annotations

import json
import logging
import os
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable

from pydantic import ValidationError

from .models import AgentStatus, StatusDocument, StatusRecord, project_name_from_path

logger = logging.getLogger(__name__)


class StatusStoreError(RuntimeError):
    """Raised when the status directory or document cannot be created."""


class StatusStore:
    """Read-modify-write store over a single status document.

    Every mutation reads the whole document, changes one entry and writes the
    whole document back. There is no cross-process lock: when two writers
    overlap, the later write wins in full.
    """

    def __init__(self, path: Path, *, clock: Callable[[], datetime] | None = None) -> None:
        self._path = Path(path)
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    @property
    def path(self) -> Path:
        return self._path

    def ensure_initialized(self) -> None:
        """Create the state directory and an empty document if missing."""

        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise StatusStoreError(
                f"Unable to create status directory {self._path.parent}: {exc}"
            ) from exc

        if not self._path.exists():
            self.save(StatusDocument())

    def load(self) -> StatusDocument:
        """Return the persisted document, or an empty one if it cannot be read."""

        try:
            raw = json.loads(self._path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return StatusDocument()
        except (OSError, ValueError) as exc:
            logger.warning("Ignoring unreadable status document %s: %s", self._path, exc)
            return StatusDocument()

        if not isinstance(raw, dict) or not isinstance(raw.get("projects"), dict):
            return StatusDocument()

        projects: dict[str, StatusRecord] = {}
        passthrough: dict[str, Any] = {}
        for path, entry in raw["projects"].items():
            if not isinstance(entry, dict):
                passthrough[path] = entry
                continue
            payload: dict[str, Any] = {
                "name": project_name_from_path(path),
                "path": path,
                "updatedAt": "",
                **entry,
            }
            try:
                projects[path] = StatusRecord.model_validate(payload)
            except ValidationError as exc:
                logger.warning("Skipping invalid status entry for %s: %s", path, exc)
                passthrough[path] = entry
        return StatusDocument(projects=projects, passthrough=passthrough)

    def save(self, document: StatusDocument) -> None:
        """Overwrite the persisted document in full."""

        self._path.parent.mkdir(parents=True, exist_ok=True)
        payload = json.dumps(document.to_json(), indent=2)
        fd, tmp_name = tempfile.mkstemp(
            dir=str(self._path.parent), prefix=".status-", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(payload)
            os.replace(tmp_name, self._path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    def upsert(
        self,
        path: str,
        *,
        status: AgentStatus | str,
        message: str | None = None,
        task: str | None = None,
        progress: int | None = None,
    ) -> StatusRecord:
        """Replace the status record for ``path`` and persist the document."""

        document = self.load()
        record = StatusRecord(
            name=project_name_from_path(path),
            path=path,
            status=AgentStatus(status),
            message=message or "",
            task=task or "",
            progress=progress,
            updatedAt=self._timestamp(),
        )
        document.passthrough.pop(path, None)
        document.projects[path] = record
        self.save(document)
        logger.debug("Recorded status %s for %s", record.status.value, path)
        return record

    def clear(self, path: str) -> StatusRecord | None:
        """Reset ``path`` to idle with blank text fields, keeping the entry."""

        document = self.load()
        existing = document.projects.get(path)
        record: StatusRecord | None = None
        if existing is not None:
            record = existing.model_copy(
                update={
                    "status": AgentStatus.IDLE,
                    "message": "",
                    "task": "",
                    "updatedAt": self._timestamp(),
                }
            )
            document.projects[path] = record
        self.save(document)
        return record

    def get(self, path: str) -> StatusRecord | None:
        return self.load().projects.get(path)

    def get_all(self) -> dict[str, StatusRecord]:
        return self.load().projects

    def _timestamp(self) -> str:
        return self._clock().isoformat()


__all__ = ["StatusStore", "StatusStoreError"]

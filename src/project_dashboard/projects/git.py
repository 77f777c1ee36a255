"""Async runner for the local git CLI."""

from __future__ import annotations

import asyncio
import os
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping

_SANITIZED_VARS = {
    "GIT_DIR",
    "GIT_WORK_TREE",
    "GIT_INDEX_FILE",
}


def sanitize_environment(additional: Mapping[str, str] | None = None) -> dict[str, str]:
    """Return an environment that does not pin git to another repository."""

    env = dict(os.environ)
    for key in _SANITIZED_VARS:
        env.pop(key, None)
    env.setdefault("GIT_TERMINAL_PROMPT", "0")
    if additional:
        env.update(additional)
    return env


class GitRunnerError(RuntimeError):
    """Base class for git runner errors."""


class GitNotFoundError(GitRunnerError):
    """Raised when the git executable cannot be located."""


@dataclass(slots=True)
class GitResult:
    """Holds the outcome of a git invocation."""

    args: tuple[str, ...]
    returncode: int
    stdout: str
    stderr: str

    @property
    def ok(self) -> bool:
        return self.returncode == 0


class GitRunner:
    """Execute read-only git commands asynchronously."""

    def __init__(self, executable: Path | None = None) -> None:
        self._executable_path = self._resolve_executable(executable)

    @staticmethod
    def _resolve_executable(explicit: Path | None) -> Path:
        if explicit is not None:
            candidate = Path(explicit)
            if candidate.exists() and candidate.is_file():
                return candidate
            raise GitNotFoundError(f"git executable not found at {candidate}")

        binary = shutil.which("git")
        if binary is None:
            raise GitNotFoundError("git executable not found on PATH")
        return Path(binary)

    @property
    def executable(self) -> Path:
        return self._executable_path

    async def run(self, repo: Path, *args: str) -> GitResult:
        return await self._invoke("-C", str(repo), *args)

    async def _invoke(self, *args: str) -> GitResult:
        cmd = [str(self._executable_path), *args]
        process = await asyncio.create_subprocess_exec(
            *cmd,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            env=sanitize_environment(),
        )
        stdout_bytes, stderr_bytes = await process.communicate()
        stdout = stdout_bytes.decode("utf-8", errors="replace")
        stderr = stderr_bytes.decode("utf-8", errors="replace")
        return GitResult(args=tuple(cmd), returncode=process.returncode, stdout=stdout, stderr=stderr)


class FakeGitRunner(GitRunner):
    """Test double that answers git commands from a lookup table."""

    def __init__(self, responses: Mapping[tuple[str, ...], GitResult | str] | None = None) -> None:  # type: ignore[override]
        self._responses = dict(responses or {})
        self._invocations: list[tuple[str, ...]] = []
        self._executable_path = Path("/tmp/fake-git")

    async def run(self, repo: Path, *args: str) -> GitResult:  # type: ignore[override]
        self._invocations.append((str(repo), *args))
        response = self._responses.get((str(repo), *args), self._responses.get(tuple(args), ""))
        if isinstance(response, GitResult):
            return response
        return GitResult(args=tuple(args), returncode=0, stdout=response, stderr="")

    @property
    def invocations(self) -> list[tuple[str, ...]]:
        return self._invocations


__all__ = [
    "FakeGitRunner",
    "GitNotFoundError",
    "GitResult",
    "GitRunner",
    "GitRunnerError",
    "sanitize_environment",
]

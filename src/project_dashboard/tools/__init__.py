"""Tool catalog and dispatch for the status reporting server."""

from __future__ import annotations

import json
import logging
from enum import Enum
from typing import Any, Callable, Mapping

from mcp.types import INVALID_PARAMS, METHOD_NOT_FOUND, CallToolResult, TextContent, Tool
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from ..status import AgentStatus, StatusStore

logger = logging.getLogger(__name__)


class ToolName(str, Enum):
    REPORT_STATUS = "report_status"
    GET_ALL_STATUSES = "get_all_statuses"


class ToolInvocationError(RuntimeError):
    """Raised when a tool call cannot be served; carries a JSON-RPC error code."""

    def __init__(self, code: int, message: str) -> None:
        super().__init__(message)
        self.code = code
        self.message = message


class ReportStatusArguments(BaseModel):
    """Arguments accepted by ``report_status``."""

    model_config = ConfigDict(extra="ignore")

    project_path: str = Field(..., min_length=1)
    status: AgentStatus
    message: str | None = None
    task: str | None = None
    progress: float | None = Field(default=None, ge=0, le=100)

    @field_validator("project_path")
    @classmethod
    def _strip_path(cls, value: str) -> str:
        normalized = value.strip()
        if not normalized:
            raise ValueError("project_path must not be empty")
        return normalized


class GetAllStatusesArguments(BaseModel):
    """``get_all_statuses`` takes no arguments."""

    model_config = ConfigDict(extra="ignore")


_STATUS_DESCRIPTION = (
    "Current status: idle (not working), working (actively coding), "
    "waiting (needs user input), done (task completed), error (encountered an error)"
)

_TOOLS: dict[ToolName, Tool] = {
    ToolName.REPORT_STATUS: Tool(
        name=ToolName.REPORT_STATUS.value,
        description=(
            "Report current working status to the Project Dashboard. Call this when "
            "starting a task, making progress, or completing work."
        ),
        inputSchema={
            "type": "object",
            "properties": {
                "project_path": {
                    "type": "string",
                    "description": "The absolute path to the project directory",
                },
                "status": {
                    "type": "string",
                    "enum": [status.value for status in AgentStatus],
                    "description": _STATUS_DESCRIPTION,
                },
                "message": {
                    "type": "string",
                    "description": "Short description of what you are doing",
                },
                "task": {
                    "type": "string",
                    "description": "The current task or feature being worked on",
                },
                "progress": {
                    "type": "number",
                    "minimum": 0,
                    "maximum": 100,
                    "description": "Optional progress percentage (0-100)",
                },
            },
            "required": ["project_path", "status"],
        },
    ),
    ToolName.GET_ALL_STATUSES: Tool(
        name=ToolName.GET_ALL_STATUSES.value,
        description="Get status of all tracked projects",
        inputSchema={"type": "object", "properties": {}},
    ),
}


def list_tools() -> list[Tool]:
    """Return the fixed tool catalog."""

    return [_TOOLS[name] for name in ToolName]


def _text_result(text: str) -> CallToolResult:
    return CallToolResult(content=[TextContent(type="text", text=text)])


def _report_status(store: StatusStore, arguments: Mapping[str, Any]) -> CallToolResult:
    if not arguments.get("project_path") or not arguments.get("status"):
        raise ToolInvocationError(
            INVALID_PARAMS, "Missing required parameters: project_path and status"
        )
    try:
        args = ReportStatusArguments.model_validate(dict(arguments))
    except ValidationError as exc:
        problems = "; ".join(
            f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}"
            for error in exc.errors()
        )
        raise ToolInvocationError(INVALID_PARAMS, f"Invalid parameters: {problems}") from exc

    record = store.upsert(
        args.project_path,
        status=args.status,
        message=args.message,
        task=args.task,
        progress=None if args.progress is None else int(round(args.progress)),
    )
    text = f"Status updated: {record.status.value}"
    if record.message:
        text += f" - {record.message}"
    return _text_result(text)


def _get_all_statuses(store: StatusStore, arguments: Mapping[str, Any]) -> CallToolResult:
    GetAllStatusesArguments.model_validate(dict(arguments))
    statuses = {path: record.to_json() for path, record in store.get_all().items()}
    return _text_result(json.dumps(statuses, indent=2))


_HANDLERS: dict[ToolName, Callable[[StatusStore, Mapping[str, Any]], CallToolResult]] = {
    ToolName.REPORT_STATUS: _report_status,
    ToolName.GET_ALL_STATUSES: _get_all_statuses,
}

_missing = set(ToolName) - set(_HANDLERS) | set(ToolName) - set(_TOOLS)
if _missing:  # pragma: no cover - import-time guard
    raise RuntimeError(f"Tools without a handler or descriptor: {sorted(t.value for t in _missing)}")


def dispatch_tool(store: StatusStore, name: Any, arguments: Any) -> CallToolResult:
    """Invoke the tool called ``name`` against ``store``."""

    try:
        tool = ToolName(name)
    except ValueError:
        raise ToolInvocationError(METHOD_NOT_FOUND, f"Unknown tool: {name}") from None

    if arguments is None:
        arguments = {}
    if not isinstance(arguments, Mapping):
        raise ToolInvocationError(INVALID_PARAMS, "Tool arguments must be an object")

    logger.debug("Dispatching tool %s", tool.value)
    return _HANDLERS[tool](store, arguments)


__all__ = [
    "GetAllStatusesArguments",
    "ReportStatusArguments",
    "ToolInvocationError",
    "ToolName",
    "dispatch_tool",
    "list_tools",
]

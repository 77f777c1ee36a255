"""Line-oriented status reporting server for coding agents."""

from __future__ import annotations

import json
import logging
import signal
import sys
from typing import Any, Iterable, Optional, TextIO

from mcp.types import (
    INTERNAL_ERROR,
    METHOD_NOT_FOUND,
    Implementation,
    InitializeResult,
    ListToolsResult,
    ServerCapabilities,
    ToolsCapability,
)

from . import __version__
from .config import DashboardSettings, get_settings
from .status import StatusStore, StatusStoreError
from .tools import ToolInvocationError, dispatch_tool, list_tools

logger = logging.getLogger(__name__)

PROTOCOL_VERSION = "2024-11-05"
SERVER_NAME = "project-dashboard-mcp"
SERVER_INSTRUCTIONS = (
    "Report your working status for the current repository with report_status "
    "whenever you start a task, make progress, need input, or finish."
)


def configure_logging(level: str) -> None:
    """Configure root logging on stderr; stdout carries the protocol."""

    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="[%(asctime)s] [%(levelname)s] %(name)s: %(message)s",
        stream=sys.stderr,
    )


def _dump(model) -> dict[str, Any]:
    return model.model_dump(mode="json", by_alias=True, exclude_none=True)


class StatusServer:
    """Handles newline-delimited JSON-RPC requests one at a time."""

    def __init__(self, store: StatusStore) -> None:
        self._store = store

    @property
    def store(self) -> StatusStore:
        return self._store

    def initialize_result(self) -> dict[str, Any]:
        return _dump(
            InitializeResult(
                protocolVersion=PROTOCOL_VERSION,
                capabilities=ServerCapabilities(tools=ToolsCapability(listChanged=False)),
                serverInfo=Implementation(name=SERVER_NAME, version=__version__),
                instructions=SERVER_INSTRUCTIONS,
            )
        )

    def handle_line(self, line: str) -> Optional[dict[str, Any]]:
        """Parse and handle one input line; return the response, if any."""

        text = line.strip()
        if not text:
            return None
        try:
            message = json.loads(text)
        except ValueError:
            logger.debug("Dropping non-protocol line: %.80s", text)
            return None
        if not isinstance(message, dict) or not isinstance(message.get("method"), str):
            logger.debug("Dropping line without a method: %.80s", text)
            return None
        return self.handle_message(message)

    def handle_message(self, message: dict[str, Any]) -> Optional[dict[str, Any]]:
        """Handle a decoded request; notifications (no ``id``) get no response."""

        request_id = message.get("id")
        method = message["method"]
        params = message.get("params") or {}
        expects_reply = request_id is not None

        try:
            if method == "initialize":
                result: Any = self.initialize_result()
            elif method == "notifications/initialized":
                return None
            elif method == "ping":
                result = {}
            elif method == "tools/list":
                result = _dump(ListToolsResult(tools=list_tools()))
            elif method == "tools/call":
                if not isinstance(params, dict):
                    params = {}
                result = _dump(
                    dispatch_tool(self._store, params.get("name"), params.get("arguments"))
                )
            else:
                if not expects_reply:
                    return None
                return self._error(request_id, METHOD_NOT_FOUND, f"Method not found: {method}")
        except ToolInvocationError as exc:
            logger.info("Tool call failed: %s", exc.message)
            return self._error(request_id, exc.code, exc.message) if expects_reply else None
        except Exception as exc:
            logger.exception("Unhandled error while serving %s", method)
            return self._error(request_id, INTERNAL_ERROR, str(exc)) if expects_reply else None

        if not expects_reply:
            return None
        return {"jsonrpc": "2.0", "id": request_id, "result": result}

    @staticmethod
    def _error(request_id: Any, code: int, message: str) -> dict[str, Any]:
        return {"jsonrpc": "2.0", "id": request_id, "error": {"code": code, "message": message}}

    def serve(self, input_stream: Iterable[str], output_stream: TextIO) -> None:
        """Serve requests until ``input_stream`` is exhausted."""

        for line in input_stream:
            response = self.handle_line(line)
            if response is None:
                continue
            output_stream.write(json.dumps(response) + "\n")
            output_stream.flush()


def _exit_on_signal(signum, _frame) -> None:
    logger.info("Received signal %s, shutting down", signum)
    raise SystemExit(0)


def install_signal_handlers() -> None:
    signal.signal(signal.SIGINT, _exit_on_signal)
    signal.signal(signal.SIGTERM, _exit_on_signal)


def create_server(settings: Optional[DashboardSettings] = None) -> StatusServer:
    """Build a server over the status document named by ``settings``."""

    settings = settings or get_settings()
    store = StatusStore(settings.status_file)
    store.ensure_initialized()
    return StatusServer(store)


def main() -> None:
    """Entry point for running the status server over stdio."""

    settings = get_settings()
    configure_logging(settings.log_level)

    try:
        server = create_server(settings)
    except StatusStoreError as exc:
        logger.error("Cannot start status server: %s", exc)
        raise SystemExit(1) from exc

    install_signal_handlers()
    logger.info(
        "Launching Project Dashboard status server",
        extra={"version": __version__, "status_file": str(settings.status_file)},
    )
    server.serve(sys.stdin, sys.stdout)


if __name__ == "__main__":
    main()

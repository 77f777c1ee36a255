from __future__ import annotations

import json
from pathlib import Path

import pytest

from project_dashboard.status import AgentStatus, StatusStore
from project_dashboard.tools import ToolInvocationError, ToolName, dispatch_tool, list_tools


@pytest.fixture
def store(tmp_path: Path) -> StatusStore:
    store = StatusStore(tmp_path / "status.json")
    store.ensure_initialized()
    return store


def _text(result) -> str:
    return result.content[0].text


def test_catalog_lists_exactly_two_tools() -> None:
    tools = list_tools()

    assert [tool.name for tool in tools] == ["report_status", "get_all_statuses"]
    report = tools[0]
    assert report.inputSchema["required"] == ["project_path", "status"]
    assert report.inputSchema["properties"]["status"]["enum"] == [
        "idle",
        "working",
        "waiting",
        "done",
        "error",
    ]
    assert tools[1].inputSchema == {"type": "object", "properties": {}}


def test_report_status_confirms_with_message(store: StatusStore) -> None:
    result = dispatch_tool(
        store,
        "report_status",
        {"project_path": "/p", "status": "working", "message": "Updating login", "progress": 42},
    )

    assert _text(result) == "Status updated: working - Updating login"
    record = store.get("/p")
    assert record is not None
    assert record.progress == 42
    assert record.message == "Updating login"


def test_report_status_confirmation_without_message(store: StatusStore) -> None:
    result = dispatch_tool(store, ToolName.REPORT_STATUS.value, {"project_path": "/p", "status": "done"})

    assert _text(result) == "Status updated: done"


def test_report_status_rounds_fractional_progress(store: StatusStore) -> None:
    dispatch_tool(store, "report_status", {"project_path": "/p", "status": "working", "progress": 33.6})

    assert store.get("/p").progress == 34


@pytest.mark.parametrize(
    "arguments",
    [
        {"status": "working"},
        {"project_path": "/p"},
        {"project_path": "", "status": "working"},
        {},
    ],
)
def test_report_status_missing_arguments_is_invalid_params(
    store: StatusStore, arguments: dict
) -> None:
    with pytest.raises(ToolInvocationError) as excinfo:
        dispatch_tool(store, "report_status", arguments)

    assert excinfo.value.code == -32602
    assert store.get_all() == {}


@pytest.mark.parametrize(
    "arguments",
    [
        {"project_path": "/p", "status": "sleeping"},
        {"project_path": "/p", "status": "working", "progress": 150},
        {"project_path": "   ", "status": "working"},
    ],
)
def test_report_status_rejects_invalid_values(store: StatusStore, arguments: dict) -> None:
    with pytest.raises(ToolInvocationError) as excinfo:
        dispatch_tool(store, "report_status", arguments)

    assert excinfo.value.code == -32602
    assert store.get_all() == {}


def test_non_object_arguments_are_invalid_params(store: StatusStore) -> None:
    with pytest.raises(ToolInvocationError) as excinfo:
        dispatch_tool(store, "report_status", ["/p", "working"])

    assert excinfo.value.code == -32602


def test_get_all_statuses_serializes_mapping(store: StatusStore) -> None:
    dispatch_tool(store, "report_status", {"project_path": "/a", "status": "working"})
    dispatch_tool(store, "report_status", {"project_path": "/a", "status": "done"})
    dispatch_tool(store, "report_status", {"project_path": "/b", "status": "waiting", "task": "review"})

    payload = json.loads(_text(dispatch_tool(store, "get_all_statuses", None)))

    assert payload["/a"]["status"] == "done"
    assert payload["/b"]["task"] == "review"
    assert payload["/b"]["name"] == "b"


def test_unknown_tool_is_method_not_found(store: StatusStore) -> None:
    with pytest.raises(ToolInvocationError) as excinfo:
        dispatch_tool(store, "delete_everything", {})

    assert excinfo.value.code == -32601
    assert "delete_everything" in excinfo.value.message


def test_report_status_stores_enum(store: StatusStore) -> None:
    dispatch_tool(store, "report_status", {"project_path": "/a", "status": "error", "message": "boom"})

    assert store.get("/a").status is AgentStatus.ERROR

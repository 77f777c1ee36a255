from __future__ import annotations

import json
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from project_dashboard.status import AgentStatus, StatusDocument, StatusStore, StatusStoreError


class StepClock:
    def __init__(self) -> None:
        self.current = datetime(2025, 1, 1, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        self.current += timedelta(seconds=1)
        return self.current


def make_store(tmp_path: Path) -> StatusStore:
    return StatusStore(tmp_path / ".project-dashboard" / "status.json", clock=StepClock())


def test_ensure_initialized_creates_empty_document(tmp_path: Path) -> None:
    store = make_store(tmp_path)
    store.ensure_initialized()

    payload = json.loads(store.path.read_text(encoding="utf-8"))
    assert payload == {"projects": {}}


def test_ensure_initialized_keeps_existing_document(tmp_path: Path) -> None:
    store = make_store(tmp_path)
    store.upsert("/work/api", status="working")
    store.ensure_initialized()

    assert "/work/api" in store.get_all()


def test_ensure_initialized_fails_when_directory_cannot_be_created(tmp_path: Path) -> None:
    blocker = tmp_path / "blocker"
    blocker.write_text("not a directory", encoding="utf-8")
    store = StatusStore(blocker / "nested" / "status.json")

    with pytest.raises(StatusStoreError):
        store.ensure_initialized()


@pytest.mark.parametrize(
    "content",
    ["", "{not json", "[]", '{"other": 1}', '{"projects": []}'],
)
def test_load_treats_unusable_documents_as_empty(tmp_path: Path, content: str) -> None:
    store = make_store(tmp_path)
    store.path.parent.mkdir(parents=True)
    store.path.write_text(content, encoding="utf-8")

    assert store.load() == StatusDocument()


def test_load_missing_file_is_empty(tmp_path: Path) -> None:
    assert make_store(tmp_path).get_all() == {}


def test_load_skips_invalid_entries(tmp_path: Path) -> None:
    store = make_store(tmp_path)
    store.path.parent.mkdir(parents=True)
    store.path.write_text(
        json.dumps(
            {
                "projects": {
                    "/ok": {"status": "done", "updatedAt": "2025-01-01T00:00:00+00:00"},
                    "/bad": {"status": "sleeping"},
                    "/junk": "text",
                }
            }
        ),
        encoding="utf-8",
    )

    records = store.get_all()

    assert list(records) == ["/ok"]
    assert records["/ok"].name == "ok"
    assert records["/ok"].status is AgentStatus.DONE


def test_writes_preserve_entries_that_fail_validation(tmp_path: Path) -> None:
    store = make_store(tmp_path)
    store.path.parent.mkdir(parents=True)
    foreign = {"status": "working", "progress": 150, "updatedAt": "2025-01-01T00:00:00Z"}
    store.path.write_text(
        json.dumps({"projects": {"/b": foreign, "/junk": "text"}}),
        encoding="utf-8",
    )

    store.upsert("/a", status="working")
    store.clear("/a")

    on_disk = json.loads(store.path.read_text(encoding="utf-8"))["projects"]
    assert set(on_disk) == {"/a", "/b", "/junk"}
    assert on_disk["/b"] == foreign
    assert on_disk["/junk"] == "text"
    assert list(store.get_all()) == ["/a"]


def test_upsert_replaces_invalid_entry_for_same_path(tmp_path: Path) -> None:
    store = make_store(tmp_path)
    store.path.parent.mkdir(parents=True)
    store.path.write_text(
        json.dumps({"projects": {"/b": {"status": "sleeping"}}}),
        encoding="utf-8",
    )

    store.upsert("/b", status="done")

    on_disk = json.loads(store.path.read_text(encoding="utf-8"))["projects"]
    assert on_disk["/b"]["status"] == "done"
    assert store.get("/b").status is AgentStatus.DONE


def test_upsert_creates_record_with_defaults(tmp_path: Path) -> None:
    store = make_store(tmp_path)

    record = store.upsert("/home/dev/projects/api", status="working")

    assert record.name == "api"
    assert record.path == "/home/dev/projects/api"
    assert record.status is AgentStatus.WORKING
    assert record.message == ""
    assert record.task == ""
    assert record.progress is None
    assert record.updatedAt == "2025-01-01T00:00:01+00:00"


def test_upsert_replaces_fields_from_last_call(tmp_path: Path) -> None:
    store = make_store(tmp_path)
    store.upsert("/a", status="working", message="writing tests", task="auth", progress=40)
    store.upsert("/a", status="done")

    record = store.get("/a")
    assert record is not None
    assert record.status is AgentStatus.DONE
    assert record.message == ""
    assert record.task == ""
    assert record.progress is None


def test_upsert_leaves_other_paths_untouched(tmp_path: Path) -> None:
    store = make_store(tmp_path)
    store.upsert("/a", status="working", message="first")
    store.upsert("/b", status="waiting", message="needs review")
    store.upsert("/a", status="error", message="tests failing")

    records = store.get_all()
    assert records["/b"].status is AgentStatus.WAITING
    assert records["/b"].message == "needs review"
    assert records["/a"].status is AgentStatus.ERROR


def test_upsert_refreshes_updated_at(tmp_path: Path) -> None:
    store = make_store(tmp_path)
    first = store.upsert("/a", status="working")
    second = store.upsert("/a", status="working")

    assert second.updatedAt > first.updatedAt


def test_persisted_document_shape(tmp_path: Path) -> None:
    store = make_store(tmp_path)
    store.upsert("/a", status="working", message="m", task="t", progress=42)

    payload = json.loads(store.path.read_text(encoding="utf-8"))
    assert payload["projects"]["/a"] == {
        "name": "a",
        "path": "/a",
        "status": "working",
        "message": "m",
        "task": "t",
        "progress": 42,
        "updatedAt": "2025-01-01T00:00:01+00:00",
    }
    assert not list(store.path.parent.glob(".status-*.tmp"))


def test_clear_resets_status_but_keeps_entry(tmp_path: Path) -> None:
    store = make_store(tmp_path)
    store.upsert("/a", status="working", message="busy", task="feature", progress=70)

    cleared = store.clear("/a")

    assert cleared is not None
    assert cleared.status is AgentStatus.IDLE
    assert cleared.message == ""
    assert cleared.task == ""
    assert cleared.progress == 70
    assert store.get("/a") == cleared


def test_clear_unknown_path_is_noop(tmp_path: Path) -> None:
    store = make_store(tmp_path)
    store.upsert("/a", status="working")

    assert store.clear("/missing") is None
    assert list(store.get_all()) == ["/a"]


def test_last_full_write_wins(tmp_path: Path) -> None:
    writer_a = make_store(tmp_path)
    writer_b = make_store(tmp_path)

    stale = writer_a.load()
    writer_b.upsert("/b", status="working")
    writer_a.save(stale)

    assert "/b" not in writer_b.get_all()

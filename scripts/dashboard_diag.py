"""Project Dashboard status diagnostics CLI."""

from __future__ import annotations

import argparse
import json

from project_dashboard.config import DashboardSettings
from project_dashboard.status import StatusStore, StatusStoreError


def load_store(settings: DashboardSettings) -> StatusStore:
    store = StatusStore(settings.status_file)
    try:
        store.ensure_initialized()
    except StatusStoreError as exc:
        print(f"Status store unavailable: {exc}")
        raise SystemExit(1)
    return store


def cmd_statuses(args: argparse.Namespace) -> None:
    store = load_store(DashboardSettings())
    records = store.get_all()
    if args.json:
        print(json.dumps({path: record.to_json() for path, record in records.items()}, indent=2))
        return
    for path, record in sorted(records.items()):
        line = f"{record.name} [{record.status.value}] {path}"
        if record.message:
            line += f" - {record.message}"
        if record.progress is not None:
            line += f" ({record.progress}%)"
        print(line)


def cmd_clear(args: argparse.Namespace) -> None:
    store = load_store(DashboardSettings())
    record = store.clear(args.path)
    if record is None:
        print(f"No status recorded for {args.path}")
        raise SystemExit(1)
    print(f"Cleared status for {record.name}")


def cmd_summary(args: argparse.Namespace) -> None:
    store = load_store(DashboardSettings())
    records = store.get_all()

    status_counts: dict[str, int] = {}
    for record in records.values():
        status = record.status.value
        status_counts[status] = status_counts.get(status, 0) + 1

    latest = max((record.updatedAt for record in records.values()), default=None)
    summary = {
        "projects_total": len(records),
        "status_counts": status_counts,
        "last_update": latest,
    }
    print(json.dumps(summary, indent=2))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Project Dashboard status diagnostics")
    sub = parser.add_subparsers(dest="cmd")

    p_statuses = sub.add_parser("statuses", help="List reported project statuses")
    p_statuses.add_argument("--json", action="store_true", help="Output JSON")
    p_statuses.set_defaults(func=cmd_statuses)

    p_clear = sub.add_parser("clear", help="Reset a project's status to idle")
    p_clear.add_argument("path", help="Project path as reported by the agent")
    p_clear.set_defaults(func=cmd_clear)

    p_summary = sub.add_parser("summary", help="Show counts per status")
    p_summary.set_defaults(func=cmd_summary)

    return parser


def main(argv: list[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    if not hasattr(args, "func"):
        parser.print_help()
        return
    args.func(args)


if __name__ == "__main__":
    main()

"""Reactive store deriving dashboard views from project records."""

from __future__ import annotations

import logging
from collections import OrderedDict
from datetime import datetime, timezone
from typing import Any, Callable, Iterable, Mapping, Protocol, Sequence

from pydantic import ValidationError

from .health import calculate_health_score
from .models import (
    EPOCH,
    Direction,
    ProjectFilter,
    ProjectRecord,
    SortKey,
    TimelineDay,
    TimelineEntry,
    ViewMode,
    parse_timestamp,
)

logger = logging.getLogger(__name__)

Listener = Callable[["ProjectEngine"], None]


class ProjectDataSource(Protocol):
    """Supplies raw project records to the engine."""

    async def fetch(self) -> Sequence[Mapping[str, Any] | ProjectRecord]:
        ...


def _payload_records(payload: Any) -> list[Any]:
    """Unwrap a fetch result into a list of raw records."""

    if payload is None:
        return []
    if isinstance(payload, Mapping):
        payload = payload.get("projects") or []
    if isinstance(payload, (str, bytes)) or not isinstance(payload, Iterable):
        raise TypeError(f"Unexpected project payload of type {type(payload).__name__}")
    return list(payload)


def _matches_search(project: ProjectRecord, query: str) -> bool:
    fields = (project.name, project.summary, project.category, project.branch)
    return any(query in value.lower() for value in fields if value)


def _matches_filter(project: ProjectRecord, active_filter: ProjectFilter) -> bool:
    if active_filter is ProjectFilter.HAS_CHANGES:
        return project.uncommittedChanges > 0
    if active_filter is ProjectFilter.HAS_TASKS:
        return bool(project.remainingTasks)
    if active_filter is ProjectFilter.CLAUDE_ACTIVE:
        return project.claudeLive is not None and project.claudeLive.is_active
    return True


def sort_projects(projects: Iterable[ProjectRecord], sort_key: SortKey) -> list[ProjectRecord]:
    """Stable sort; ties keep their input order."""

    if sort_key is SortKey.ACTIVITY:
        return sorted(projects, key=lambda p: p.lastActivity or EPOCH, reverse=True)
    if sort_key is SortKey.NAME:
        return sorted(projects, key=lambda p: (p.name.casefold(), p.name))
    if sort_key is SortKey.HEALTH:
        return sorted(projects, key=lambda p: 100 if p.healthScore is None else p.healthScore)
    if sort_key is SortKey.CHANGES:
        return sorted(projects, key=lambda p: p.uncommittedChanges, reverse=True)
    return list(projects)


class ProjectEngine:
    """Owns the project collection and view state for a dashboard consumer.

    Reads are pure computations over the current state. Every mutation
    notifies subscribers synchronously. ``refresh`` is the only coroutine;
    overlapping refreshes are resolved by generation, so only the most recent
    call may change state.
    """

    def __init__(
        self,
        data_source: ProjectDataSource | None = None,
        *,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._data_source = data_source
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._listeners: list[Listener] = []
        self._generation = 0

        self._projects: list[ProjectRecord] = []
        self._loading = data_source is not None
        self._error: str | None = None
        self._last_refresh: datetime | None = None

        self._view_mode = ViewMode.LIST
        self._sort_key = SortKey.ACTIVITY
        self._active_filter = ProjectFilter.ALL
        self._search_query = ""
        self._selected_index = -1
        self._selected_project_path: str | None = None

    # -- subscription -------------------------------------------------

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register ``listener``; returns a callable that unregisters it."""

        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self) -> None:
        for listener in list(self._listeners):
            try:
                listener(self)
            except Exception:
                logger.exception("Project engine listener failed")

    # -- state accessors ----------------------------------------------

    @property
    def projects(self) -> list[ProjectRecord]:
        return list(self._projects)

    @property
    def loading(self) -> bool:
        return self._loading

    @property
    def error(self) -> str | None:
        return self._error

    @property
    def last_refresh(self) -> datetime | None:
        return self._last_refresh

    @property
    def view_mode(self) -> ViewMode:
        return self._view_mode

    @property
    def sort_key(self) -> SortKey:
        return self._sort_key

    @property
    def active_filter(self) -> ProjectFilter:
        return self._active_filter

    @property
    def search_query(self) -> str:
        return self._search_query

    @property
    def selected_index(self) -> int:
        return self._selected_index

    @property
    def selected_project_path(self) -> str | None:
        return self._selected_project_path

    # -- mutations ----------------------------------------------------

    def set_projects(self, records: Iterable[Mapping[str, Any] | ProjectRecord]) -> None:
        """Replace the whole collection and recompute every health score."""

        now = self._clock()
        enriched: list[ProjectRecord] = []
        for raw in records:
            try:
                record = (
                    raw.model_copy()
                    if isinstance(raw, ProjectRecord)
                    else ProjectRecord.model_validate(raw)
                )
            except ValidationError as exc:
                logger.warning("Skipping malformed project record: %s", exc)
                continue
            record.healthScore = calculate_health_score(record, now)
            enriched.append(record)

        self._projects = enriched
        self._loading = False
        self._last_refresh = now
        if self._selected_index >= len(self.filtered_projects()):
            self._selected_index = -1
        self._notify()

    def set_loading(self, loading: bool) -> None:
        self._loading = loading
        self._notify()

    def set_error(self, error: str | None) -> None:
        self._error = error
        self._notify()

    def set_view_mode(self, mode: ViewMode | str) -> None:
        self._view_mode = ViewMode(mode)
        self._selected_index = -1
        self._notify()

    def set_sort_key(self, key: SortKey | str) -> None:
        self._sort_key = SortKey(key)
        self._notify()

    def set_filter(self, active_filter: ProjectFilter | str) -> None:
        self._active_filter = ProjectFilter(active_filter)
        self._selected_index = -1
        self._notify()

    def set_search_query(self, query: str) -> None:
        self._search_query = query
        self._selected_index = -1
        self._notify()

    def set_selected_index(self, index: int) -> None:
        upper = len(self.filtered_projects()) - 1
        self._selected_index = max(-1, min(index, upper))
        self._notify()

    def select_project(self, path: str | None) -> None:
        self._selected_project_path = path
        self._notify()

    def move_selection(self, direction: Direction | str) -> None:
        """Move the selection through the current projection, wrapping at both ends."""

        direction = Direction(direction)
        max_index = len(self.filtered_projects()) - 1
        if max_index < 0:
            return

        current = self._selected_index
        if direction is Direction.DOWN:
            new_index = 0 if current >= max_index else current + 1
        else:
            new_index = max_index if current <= 0 else current - 1
        self._selected_index = new_index
        self._notify()

    async def refresh(self) -> bool:
        """Fetch fresh records; returns True when this call's result was applied."""

        if self._data_source is None:
            logger.warning("Project refresh requested without a data source")
            self._error = "No data source configured"
            self._loading = False
            self._notify()
            return False

        self._generation += 1
        generation = self._generation
        self._loading = True
        self._notify()

        try:
            records = await self._data_source.fetch()
        except Exception as exc:
            if generation != self._generation:
                logger.debug("Discarding failure from superseded refresh %s", generation)
                return False
            logger.warning("Project refresh failed: %s", exc)
            self._error = str(exc) or exc.__class__.__name__
            self._loading = False
            self._notify()
            return False

        if generation != self._generation:
            logger.debug("Discarding result from superseded refresh %s", generation)
            return False

        try:
            records = _payload_records(records)
        except TypeError as exc:
            logger.warning("Project refresh returned an unusable payload: %s", exc)
            self._error = str(exc)
            self._loading = False
            self._notify()
            return False

        self._error = None
        self.set_projects(records)
        return True

    # -- derived views ------------------------------------------------

    def filtered_projects(self) -> list[ProjectRecord]:
        """Search, filter and sort the collection for display."""

        projects: Iterable[ProjectRecord] = self._projects
        if self._search_query.strip():
            query = self._search_query.lower()
            projects = [p for p in projects if _matches_search(p, query)]
        projects = [p for p in projects if _matches_filter(p, self._active_filter)]
        return sort_projects(projects, self._sort_key)

    def selected_project(self) -> ProjectRecord | None:
        projection = self.filtered_projects()
        if 0 <= self._selected_index < len(projection):
            return projection[self._selected_index]
        return None

    def timeline_entries(self) -> list[TimelineEntry]:
        """Merge commits and live agent sessions across projects, newest first."""

        entries: list[TimelineEntry] = []
        for project in self._projects:
            for commit in project.recentCommits:
                entries.append(
                    TimelineEntry(
                        id=f"{project.path}-{commit.hash or commit.date}",
                        type="commit",
                        project=project.name,
                        projectPath=project.path,
                        message=commit.message,
                        date=commit.date,
                        metadata={"hash": commit.hash, "author": commit.author},
                    )
                )

            live = project.claudeLive
            if live is not None:
                # Without detectedAt the id changes on every recomputation.
                entries.append(
                    TimelineEntry(
                        id=f"{project.path}-claude-{live.detectedAt or 'now'}",
                        type="claude_session",
                        project=project.name,
                        projectPath=project.path,
                        message=live.message or f"Claude {live.status.value}",
                        date=live.detectedAt or self._clock().isoformat(),
                        metadata={"status": live.status.value},
                    )
                )

        entries.sort(key=lambda entry: parse_timestamp(entry.date) or EPOCH, reverse=True)
        return entries

    def timeline_by_day(self) -> list[TimelineDay]:
        """Group the timeline into calendar days, newest day first."""

        today = self._clock().date()
        days: OrderedDict[str, TimelineDay] = OrderedDict()
        for entry in self.timeline_entries():
            moment = parse_timestamp(entry.date) or EPOCH
            day = moment.date()
            key = day.isoformat()
            if key not in days:
                days[key] = TimelineDay(date=key, label=_day_label(today, day))
            days[key].entries.append(entry)
        return list(days.values())

    def active_sessions(self) -> list[ProjectRecord]:
        return [p for p in self._projects if p.claudeLive is not None and p.claudeLive.is_active]

    def projects_needing_attention(self) -> list[ProjectRecord]:
        return [
            p
            for p in self._projects
            if p.uncommittedChanges > 5
            or len(p.remainingTasks) > 5
            or (100 if p.healthScore is None else p.healthScore) < 40
        ]

    def project_by_path(self, path: str) -> ProjectRecord | None:
        return next((p for p in self._projects if p.path == path), None)

    def project_by_name(self, name: str) -> ProjectRecord | None:
        return next((p for p in self._projects if p.name == name), None)


def _day_label(today, day) -> str:
    delta = (today - day).days
    if delta == 0:
        return "today"
    if delta == 1:
        return "yesterday"
    if 1 < delta < 7:
        return "this_week"
    if 7 <= delta < 30:
        return "this_month"
    return day.isoformat()


__all__ = ["ProjectDataSource", "ProjectEngine", "sort_projects"]

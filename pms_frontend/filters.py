"""
List filtering and debounced search.

Filtering is a pure, synchronous predicate: a case-insensitive "contains"
on the title (tasks) or name (projects) combined with exact matches on
status, priority, project id, and team id. Every term is optional; the
``"all"`` sentinel or an empty value disables it, and the enabled terms
are combined conjunctively.

Search text typed by the user goes through :class:`DebouncedValue`, which
only commits a new value once a quiet period has passed with no further
input. Time comes from an injectable clock so the behaviour can be driven
deterministically.
"""

from __future__ import annotations

import time
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, replace
from typing import Any

from .models import ALL, entity_id, task_team_id

DEFAULT_QUIET_PERIOD = 0.15


def _term(value: Any) -> str:
    """Normalise a filter term; empty and ``"all"`` both mean disabled."""
    if value is None:
        return ALL
    value = str(value).strip()
    return value or ALL


def _id_matches(term: str, value: int | None) -> bool:
    return term == ALL or (value is not None and str(value) == term)


def _text_matches(term: str, text: Any) -> bool:
    if not term:
        return True
    return term.lower() in str(text or "").lower()


@dataclass(frozen=True)
class TaskFilters:
    """Filter state for the task board."""

    search: str = ""
    status: str = ALL
    priority: str = ALL
    project: str = ALL
    team: str = ALL

    @classmethod
    def from_args(cls, args: Mapping[str, Any]) -> TaskFilters:
        """Build filters from query-string arguments (``q``, ``status``, ...)."""
        return cls(
            search=str(args.get("q") or "").strip(),
            status=_term(args.get("status")),
            priority=_term(args.get("priority")),
            project=_term(args.get("project")),
            team=_term(args.get("team")),
        )

    def matches(self, task: Mapping[str, Any]) -> bool:
        if not _text_matches(self.search, task.get("title")):
            return False
        if self.status != ALL and task.get("status") != self.status:
            return False
        if self.priority != ALL and task.get("priority") != self.priority:
            return False
        if not _id_matches(self.project, entity_id(task.get("project"))):
            return False
        # A task whose project has no team never matches a concrete team.
        if not _id_matches(self.team, task_team_id(task)):
            return False
        return True

    def apply(self, tasks: Iterable[Mapping[str, Any]]) -> list[Mapping[str, Any]]:
        return [task for task in tasks if self.matches(task)]


@dataclass(frozen=True)
class ProjectFilters:
    """Filter state for the project list."""

    search: str = ""
    status: str = ALL
    team: str = ALL

    @classmethod
    def from_args(cls, args: Mapping[str, Any]) -> ProjectFilters:
        return cls(
            search=str(args.get("q") or "").strip(),
            status=_term(args.get("status")),
            team=_term(args.get("team")),
        )

    def matches(self, project: Mapping[str, Any]) -> bool:
        if not _text_matches(self.search, project.get("name")):
            return False
        if self.status != ALL and project.get("status") != self.status:
            return False
        return _id_matches(self.team, entity_id(project.get("team")))

    def apply(self, projects: Iterable[Mapping[str, Any]]) -> list[Mapping[str, Any]]:
        return [project for project in projects if self.matches(project)]


class DebouncedValue:
    """
    A fast-changing input paired with a slow-changing committed value.

    :meth:`set` records input and restarts the quiet period. The committed
    value only picks the input up once ``quiet_period`` seconds have
    elapsed since the last :meth:`set`; intermediate inputs are never
    committed.

    Args:
        initial: Starting value for both input and committed value.
        quiet_period: Seconds of inactivity required before committing.
        clock: Monotonic time source.
        on_commit: Optional callback invoked with each newly committed
            value.
    """

    def __init__(
        self,
        initial: str = "",
        *,
        quiet_period: float = DEFAULT_QUIET_PERIOD,
        clock: Callable[[], float] = time.monotonic,
        on_commit: Callable[[str], None] | None = None,
    ):
        self.quiet_period = quiet_period
        self._clock = clock
        self._on_commit = on_commit
        self._input = initial
        self._committed = initial
        self._last_input_at: float | None = None

    @property
    def input(self) -> str:
        return self._input

    @property
    def pending(self) -> bool:
        return self._last_input_at is not None

    def set(self, value: str) -> None:
        self._input = value
        self._last_input_at = self._clock()

    def poll(self) -> str:
        """Commit the input if the quiet period elapsed; return the committed value."""
        if self._last_input_at is None:
            return self._committed
        if self._clock() - self._last_input_at < self.quiet_period:
            return self._committed
        self._last_input_at = None
        if self._input != self._committed:
            self._committed = self._input
            if self._on_commit is not None:
                self._on_commit(self._committed)
        return self._committed

    @property
    def committed(self) -> str:
        return self.poll()


class TaskSearch:
    """
    Task board filter state with a debounced search box.

    Select-style terms (status, priority, project, team) take effect
    immediately; the search text only takes effect through the debounce.
    """

    def __init__(
        self,
        filters: TaskFilters | None = None,
        *,
        quiet_period: float = DEFAULT_QUIET_PERIOD,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._filters = filters or TaskFilters()
        self.search = DebouncedValue(
            self._filters.search, quiet_period=quiet_period, clock=clock
        )

    def type(self, text: str) -> None:
        self.search.set(text)

    def select(self, **terms: Any) -> None:
        """Change select terms, e.g. ``select(status="TODO", project="7")``."""
        self._filters = replace(
            self._filters, **{name: _term(value) for name, value in terms.items()}
        )

    @property
    def filters(self) -> TaskFilters:
        return replace(self._filters, search=self.search.committed.strip())

    def apply(self, tasks: Iterable[Mapping[str, Any]]) -> list[Mapping[str, Any]]:
        return self.filters.apply(tasks)

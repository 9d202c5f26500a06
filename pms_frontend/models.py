"""
PMS frontend data models.

Defines the closed enumerations that mirror the backend's data contract,
plus small helpers for turning raw JSON entities and form/drag input into
values the rest of the frontend can trust.

Entities themselves stay as the backend's JSON dictionaries (camelCase
keys). The cache is only a projection of server state, so there is no
benefit in re-modelling them as classes here.

The enums inherit from ``str`` as well as ``Enum`` so that their values
serialise naturally to JSON strings and compare directly against plain
strings returned by the API without explicit ``.value`` access.
"""

from __future__ import annotations

import logging
from datetime import date, datetime
from enum import Enum
from typing import Any

logger = logging.getLogger(__name__)

# Filter value that disables a predicate term.
ALL = "all"


class UserRole(str, Enum):
    """Role tags assigned to users by the backend."""

    ADMIN = "ADMIN"
    TEAM_LEAD = "TEAM_LEAD"
    MEMBER = "MEMBER"
    GUEST = "GUEST"
    USER = "USER"


class ProjectStatus(str, Enum):
    """
    Project lifecycle statuses.

    Attributes:
        PLANNING: Scoped but not started.
        ACTIVE: Work in progress.
        ON_HOLD: Paused.
        COMPLETED: Finished.
        CANCELLED: Abandoned.
    """

    PLANNING = "PLANNING"
    ACTIVE = "ACTIVE"
    ON_HOLD = "ON_HOLD"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class TaskStatus(str, Enum):
    """
    Task board columns, in display order.

    Attributes:
        TODO: Not started.
        IN_PROGRESS: Being worked on.
        REVIEW: Waiting for review.
        DONE: Finished.
    """

    TODO = "TODO"
    IN_PROGRESS = "IN_PROGRESS"
    REVIEW = "REVIEW"
    DONE = "DONE"


class TaskPriority(str, Enum):
    """Task priority levels, lowest first."""

    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    URGENT = "URGENT"


def coerce_enum(enum_cls: type[Enum], value: Any) -> Enum | None:
    """
    Return the member of *enum_cls* whose value equals *value*.

    Returns:
        The matching member, or ``None`` when *value* is not one of the
        enumeration's values.
    """
    try:
        return enum_cls(value)
    except ValueError:
        return None


def parse_entity_id(raw: Any) -> int | None:
    """
    Parse an entity identifier carried as a string (form field, drag payload).

    Returns:
        A positive ``int``, or ``None`` if *raw* is empty, non-numeric, or
        not positive.
    """
    if isinstance(raw, bool):
        return None
    if isinstance(raw, int):
        return raw if raw > 0 else None
    if not isinstance(raw, str):
        return None
    raw = raw.strip()
    if not raw:
        return None
    try:
        value = int(raw)
    except ValueError:
        logger.debug("Ignoring non-numeric entity id %r", raw)
        return None
    return value if value > 0 else None


def parse_id_list(raw: str | None) -> list[int]:
    """
    Parse a comma-separated list of ids, silently dropping invalid entries.

    ``"1, 2,x,,3"`` becomes ``[1, 2, 3]``.
    """
    if not raw:
        return []
    ids = []
    for part in raw.split(","):
        value = parse_entity_id(part)
        if value is not None:
            ids.append(value)
    return ids


def parse_iso_date(value: str | None) -> date | None:
    """
    Parse an ISO-8601 date or datetime string returned by the API.

    Returns:
        A :class:`date`, or ``None`` if the input was empty or could not be
        parsed.
    """
    if not value:
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00")).date()
    except ValueError:
        try:
            return date.fromisoformat(value)
        except ValueError:
            logger.debug("Ignoring unparseable date %r", value)
            return None


def entity_id(entity: dict[str, Any] | None) -> int | None:
    """Return the numeric id of a nested entity reference, if any."""
    if not entity:
        return None
    return parse_entity_id(entity.get("id"))


def tag_name(tag: Any) -> str:
    """Return a tag's name; tags arrive as entities or as bare strings."""
    if isinstance(tag, dict):
        tag = tag.get("name")
    return tag if isinstance(tag, str) else ""


def task_team_id(task: dict[str, Any]) -> int | None:
    """Return the id of the team owning the task's project, if any."""
    project = task.get("project") or {}
    return entity_id(project.get("team"))


def display_name(user: dict[str, Any] | None) -> str:
    """Best-effort label for a user reference."""
    if not user:
        return "-"
    full_name = " ".join(
        part for part in (user.get("firstName"), user.get("lastName")) if part
    )
    return full_name or user.get("username") or user.get("email") or "-"

"""
Optimistic status changes for board drag-and-drop.

When a card is dropped on a new status column the board must reflect the
move immediately, persist it durably, and never keep showing a state the
server rejected. :class:`StatusMover` does this in seven steps:

1. Snapshot the cached collection (``("tasks",)`` or ``("projects",)``).
2. Speculatively set the dropped entity's status in the cache.
3. Fetch the authoritative entity, so the update payload carries every
   required field even if the cached copy was partial or stale.
4. Build a full update payload from it plus the new status.
5. Submit the payload through the update mutation hook.
6. On success, invalidate the collection so the next read refetches it.
7. On failure, put the entity's snapshot back and report the error.

Each move takes a per-entity sequence number from the cache before it
touches anything. If a newer move of the same entity starts while this one
is in flight, this move's rollback is skipped: the newer move owns the
cached state from then on.

Key Concepts Demonstrated:
- Optimistic update with snapshot rollback
- Read-before-write to build complete PUT payloads
- Out-of-order response protection via monotonic sequences
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any

from .api_client import ApiClient
from .cache import QueryCache, QueryKey, QueryKeys
from .errors import ApiError, AuthenticationError
from .models import (
    ProjectStatus,
    TaskStatus,
    coerce_enum,
    entity_id,
    parse_entity_id,
    tag_name,
)
from .mutations import Mutations
from .notifications import Notifier

logger = logging.getLogger(__name__)


@dataclass
class MoveResult:
    """
    Outcome of one drag-and-drop move.

    Attributes:
        applied: ``True`` when the backend accepted the new status.
        entity_id: Parsed id of the moved entity, ``None`` for bad input.
        status: Target status that was applied.
        error: Reason the move failed, ``None`` on success or no-op.
    """

    applied: bool
    entity_id: int | None = None
    status: str | None = None
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def _normalize_tags(tags: Any) -> list[str]:
    # Tags come back as entities ({"id", "name", "color"}) but are sent as names.
    return [name for name in map(tag_name, tags or []) if name]


def build_task_payload(task: dict[str, Any], status: TaskStatus) -> dict[str, Any]:
    """
    Build a complete ``TaskRequest`` body from an authoritative task.

    Every field is taken from *task* except ``status``. Missing optional
    fields are sent as explicit empty values so the backend's PUT does not
    treat them as unchanged-but-required.
    """
    return {
        "title": task.get("title"),
        "description": task.get("description") or "",
        "status": TaskStatus(status).value,
        "priority": task.get("priority"),
        "dueDate": task.get("dueDate"),
        "projectId": entity_id(task.get("project")),
        "assigneeId": entity_id(task.get("assignee")),
        "tags": _normalize_tags(task.get("tags")),
    }


def build_project_payload(project: dict[str, Any], status: ProjectStatus) -> dict[str, Any]:
    """Build a complete ``ProjectRequest`` body from an authoritative project."""
    return {
        "name": project.get("name"),
        "description": project.get("description") or "",
        "status": ProjectStatus(status).value,
        "startDate": project.get("startDate"),
        "endDate": project.get("endDate"),
        "teamId": entity_id(project.get("team")),
    }


def _find(items: Any, target_id: int) -> dict[str, Any] | None:
    for item in items or []:
        if parse_entity_id(item.get("id")) == target_id:
            return item
    return None


def _replace(items: Any, target_id: int, make: Callable[[dict], dict]) -> Any:
    if items is None:
        return None
    return [
        make(item) if parse_entity_id(item.get("id")) == target_id else item
        for item in items
    ]


class StatusMover:
    """
    Applies drag-and-drop status changes with optimistic cache updates.

    Args:
        client: API client used for the authoritative read.
        cache: Cache holding the board collections.
        mutations: Hooks used for the write, so the usual cache policy and
            notifications apply.
        notifier: Receives errors that happen outside the mutation hook.
    """

    def __init__(
        self,
        client: ApiClient,
        cache: QueryCache,
        mutations: Mutations,
        notifier: Notifier,
    ):
        self.client = client
        self.cache = cache
        self.mutations = mutations
        self.notifier = notifier

    def move_task(self, raw_id: Any, new_status: Any) -> MoveResult:
        """Move a task card to *new_status*; ``raw_id`` is the drag payload."""
        return self._move(
            raw_id,
            new_status,
            status_enum=TaskStatus,
            collection_key=QueryKeys.TASKS,
            entity_key=QueryKeys.task,
            fetch=self.client.get_task,
            build_payload=build_task_payload,
            update=self.mutations.update_task,
            label="task",
        )

    def move_project(self, raw_id: Any, new_status: Any) -> MoveResult:
        """Move a project card to *new_status*; ``raw_id`` is the drag payload."""
        return self._move(
            raw_id,
            new_status,
            status_enum=ProjectStatus,
            collection_key=QueryKeys.PROJECTS,
            entity_key=QueryKeys.project,
            fetch=self.client.get_project,
            build_payload=build_project_payload,
            update=self.mutations.update_project,
            label="project",
        )

    def _move(
        self,
        raw_id: Any,
        new_status: Any,
        *,
        status_enum: type[Enum],
        collection_key: QueryKey,
        entity_key: Callable[[int], QueryKey],
        fetch: Callable[[int], dict[str, Any]],
        build_payload: Callable[[dict[str, Any], Any], dict[str, Any]],
        update: Callable[[int, dict[str, Any]], Any],
        label: str,
    ) -> MoveResult:
        target_id = parse_entity_id(raw_id)
        if target_id is None:
            logger.debug("Ignoring %s drop with invalid id %r", label, raw_id)
            return MoveResult(applied=False)

        status = coerce_enum(status_enum, new_status)
        if status is None:
            logger.debug("Ignoring %s drop with unknown status %r", label, new_status)
            return MoveResult(applied=False, entity_id=target_id)

        key = entity_key(target_id)
        sequence = self.cache.next_sequence(key)
        previous = self.cache.snapshot(collection_key)
        self.cache.update(
            collection_key,
            lambda items: _replace(
                items, target_id, lambda item: {**item, "status": status.value}
            ),
        )

        try:
            authoritative = fetch(target_id)
        except ApiError as exc:
            self._rollback(collection_key, key, sequence, previous, target_id)
            if isinstance(exc, AuthenticationError):
                raise
            message = f"Failed to move {label}: {exc.message}"
            logger.warning(message)
            self.notifier.error(message)
            return MoveResult(False, target_id, status.value, exc.message)

        payload = build_payload(authoritative, status)
        try:
            update(target_id, payload)
        except ApiError as exc:
            # The mutation hook already raised the user-visible notification.
            self._rollback(collection_key, key, sequence, previous, target_id)
            if isinstance(exc, AuthenticationError):
                raise
            return MoveResult(False, target_id, status.value, exc.detail or exc.message)

        self.cache.invalidate(collection_key)
        logger.info("Moved %s %s to %s", label, target_id, status.value)
        return MoveResult(True, target_id, status.value)

    def _rollback(
        self,
        collection_key: QueryKey,
        key: QueryKey,
        sequence: int,
        previous: Any,
        target_id: int,
    ) -> None:
        if not self.cache.is_latest(key, sequence):
            logger.info("Skipping rollback of %s: a newer move is in flight", key)
            return
        if previous is None:
            return
        if collection_key not in self.cache:
            self.cache.set(collection_key, previous)
            return
        original = _find(previous, target_id)
        if original is None:
            return
        self.cache.update(
            collection_key, lambda items: _replace(items, target_id, lambda _: original)
        )

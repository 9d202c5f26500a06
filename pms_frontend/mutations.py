"""
Data-mutation hooks.

One method per create/update/delete operation on projects, tasks, and
teams, plus team membership, profile updates, login, and registration.
Every hook follows the same single-attempt, fail-visible contract:

1. Call the API client exactly once.
2. On success, apply the hook's cache policy (invalidate collections,
   store the returned entity) and raise a success notification.
3. On failure, raise an error notification (preferring the backend's own
   message) and re-raise the :class:`~pms_frontend.errors.ApiError`.

No retries and no backoff: a failed mutation is reported and left to the
user.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from .api_client import ApiClient
from .cache import QueryCache, QueryKeys
from .errors import ApiError
from .notifications import Notifier

logger = logging.getLogger(__name__)


class Mutations:
    """
    Mutation hooks bound to one API client, cache, and notifier.

    Args:
        client: The API client used for the single backend call.
        cache: Cache whose entries are invalidated or updated on success.
        notifier: Receives success and error notifications.
    """

    def __init__(self, client: ApiClient, cache: QueryCache, notifier: Notifier):
        self.client = client
        self.cache = cache
        self.notifier = notifier

    def _run(
        self,
        call: Callable[[], Any],
        *,
        error_message: str,
        success_message: str | None = None,
        on_success: Callable[[Any], None] | None = None,
    ) -> Any:
        try:
            result = call()
        except ApiError as exc:
            logger.warning("%s: %s", error_message, exc)
            self.notifier.error(exc.detail or error_message)
            raise
        if on_success is not None:
            on_success(result)
        if success_message:
            self.notifier.success(success_message)
        return result

    # ------------------------------------------------------------------
    # Auth
    # ------------------------------------------------------------------

    def login(self, username: str, password: str) -> dict[str, Any]:
        return self._run(
            lambda: self.client.login(username, password),
            error_message="Login failed",
            success_message="Logged in successfully",
        )

    def register(self, data: dict[str, Any]) -> dict[str, Any]:
        return self._run(
            lambda: self.client.register(data),
            error_message="Registration failed",
            success_message="Account created successfully",
        )

    # ------------------------------------------------------------------
    # Projects
    # ------------------------------------------------------------------

    def create_project(self, data: dict[str, Any]) -> dict[str, Any]:
        return self._run(
            lambda: self.client.create_project(data),
            error_message="Failed to create project",
            success_message="Project created successfully",
            on_success=lambda _: self.cache.invalidate(QueryKeys.PROJECTS),
        )

    def update_project(self, project_id: int, data: dict[str, Any]) -> dict[str, Any]:
        def apply(updated):
            self.cache.invalidate(QueryKeys.PROJECTS)
            if isinstance(updated, dict):
                self.cache.set(QueryKeys.project(project_id), updated)

        return self._run(
            lambda: self.client.update_project(project_id, data),
            error_message="Failed to update project",
            success_message="Project updated successfully",
            on_success=apply,
        )

    def delete_project(self, project_id: int) -> None:
        def apply(_):
            self.cache.remove(QueryKeys.project(project_id))
            self.cache.invalidate(QueryKeys.PROJECTS)
            # Tasks embed their project, so they go stale too.
            self.cache.invalidate(QueryKeys.TASKS)

        self._run(
            lambda: self.client.delete_project(project_id),
            error_message="Failed to delete project",
            success_message="Project deleted successfully",
            on_success=apply,
        )

    # ------------------------------------------------------------------
    # Tasks
    # ------------------------------------------------------------------

    def create_task(self, data: dict[str, Any]) -> dict[str, Any]:
        return self._run(
            lambda: self.client.create_task(data),
            error_message="Failed to create task",
            success_message="Task created successfully",
            on_success=lambda _: self.cache.invalidate(QueryKeys.TASKS),
        )

    def update_task(self, task_id: int, data: dict[str, Any]) -> dict[str, Any]:
        def apply(updated):
            self.cache.invalidate(QueryKeys.TASKS)
            if isinstance(updated, dict):
                self.cache.set(QueryKeys.task(task_id), updated)

        return self._run(
            lambda: self.client.update_task(task_id, data),
            error_message="Failed to update task",
            success_message="Task updated successfully",
            on_success=apply,
        )

    def delete_task(self, task_id: int) -> None:
        def apply(_):
            self.cache.remove(QueryKeys.task(task_id))
            self.cache.invalidate(QueryKeys.TASKS)

        self._run(
            lambda: self.client.delete_task(task_id),
            error_message="Failed to delete task",
            success_message="Task deleted successfully",
            on_success=apply,
        )

    # ------------------------------------------------------------------
    # Teams
    # ------------------------------------------------------------------

    def create_team(self, data: dict[str, Any]) -> dict[str, Any]:
        return self._run(
            lambda: self.client.create_team(data),
            error_message="Failed to create team",
            success_message="Team created successfully",
            on_success=lambda _: self.cache.invalidate(QueryKeys.TEAMS),
        )

    def update_team(self, team_id: int, data: dict[str, Any]) -> dict[str, Any]:
        def apply(updated):
            self.cache.invalidate(QueryKeys.TEAMS)
            if isinstance(updated, dict):
                self.cache.set(QueryKeys.team(team_id), updated)

        return self._run(
            lambda: self.client.update_team(team_id, data),
            error_message="Failed to update team",
            success_message="Team updated successfully",
            on_success=apply,
        )

    def delete_team(self, team_id: int) -> None:
        def apply(_):
            self.cache.remove(QueryKeys.team(team_id))
            self.cache.invalidate(QueryKeys.TEAMS)
            # Projects embed their team reference.
            self.cache.invalidate(QueryKeys.PROJECTS)

        self._run(
            lambda: self.client.delete_team(team_id),
            error_message="Failed to delete team",
            success_message="Team deleted successfully",
            on_success=apply,
        )

    def update_team_members(self, team_id: int, member_ids: list[int]) -> dict[str, Any]:
        return self._run(
            lambda: self.client.update_team_members(team_id, member_ids),
            error_message="Failed to update team members",
            success_message="Team members updated",
            on_success=lambda _: self.cache.invalidate(QueryKeys.TEAMS),
        )

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------

    def update_user(self, user_id: int, data: dict[str, Any]) -> dict[str, Any]:
        """
        Update the user profile.

        The backend answers with the user, or with ``{"user", "token"}``
        when the username changed and a new token was issued. The cached
        current user is replaced either way; storing the new token is the
        caller's job.
        """

        def apply(result):
            if isinstance(result, dict) and "user" in result and "token" in result:
                self.cache.set(QueryKeys.USER, result["user"])
            elif isinstance(result, dict):
                self.cache.set(QueryKeys.USER, result)

        return self._run(
            lambda: self.client.update_user(user_id, data),
            error_message="Failed to update profile",
            success_message="Profile updated successfully",
            on_success=apply,
        )

"""Cached reads: serve from the query cache inside the staleness window."""

from __future__ import annotations

from typing import Any

from .api_client import ApiClient
from .cache import QueryCache, QueryKeys
from .models import TaskStatus


class Queries:
    """Read-through accessors for every resource the views display."""

    def __init__(self, client: ApiClient, cache: QueryCache):
        self.client = client
        self.cache = cache

    def current_user(self) -> dict[str, Any]:
        return self.cache.fetch(QueryKeys.USER, self.client.get_current_user)

    def projects(self) -> list[dict[str, Any]]:
        return self.cache.fetch(QueryKeys.PROJECTS, self.client.get_projects)

    def project(self, project_id: int) -> dict[str, Any]:
        return self.cache.fetch(
            QueryKeys.project(project_id), lambda: self.client.get_project(project_id)
        )

    def tasks(self) -> list[dict[str, Any]]:
        return self.cache.fetch(QueryKeys.TASKS, self.client.get_tasks)

    def task(self, task_id: int) -> dict[str, Any]:
        return self.cache.fetch(
            QueryKeys.task(task_id), lambda: self.client.get_task(task_id)
        )

    def task_count(self, status: TaskStatus) -> int:
        return self.cache.fetch(
            QueryKeys.task_stats(TaskStatus(status).value),
            lambda: self.client.get_task_count_by_status(status),
        )

    def task_counts(self) -> dict[str, int]:
        """Task totals for every board column, in column order."""
        return {status.value: self.task_count(status) for status in TaskStatus}

    def teams(self) -> list[dict[str, Any]]:
        return self.cache.fetch(QueryKeys.TEAMS, self.client.get_teams)

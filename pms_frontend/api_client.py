"""
HTTP client for the PMS REST API.

Centralises every call the frontend makes to the backend so that each
request automatically carries the bearer token, the correlation id of the
inbound request, and the configured timeout. Responses are translated
into parsed JSON on success and into :mod:`pms_frontend.errors` exceptions
on failure.

A 401 response invokes the ``on_unauthorized`` callback (the Flask layer
uses it to drop the stored token) before :class:`AuthenticationError` is
raised, so every caller forces a re-login the same way.

Key Concepts Demonstrated:
- One choke point for auth headers, timeouts, and error translation
- Injectable token and correlation-id providers (no Flask import here)
- Backend error bodies that may be JSON objects or plain strings
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

import requests

from .errors import (
    ApiError,
    AuthenticationError,
    NotFoundError,
    ServiceUnavailableError,
    ValidationError,
)
from .models import TaskStatus

logger = logging.getLogger(__name__)

CORRELATION_ID_HEADER = "X-Correlation-Id"


def response_error_message(
    response: requests.Response, default: str | None
) -> str | None:
    """
    Extract an error message from a backend response if possible.

    The PMS backend answers failures either with a JSON object carrying a
    ``message`` (or ``error``) field, or with the exception text as a bare
    string body. Falls back to *default* when neither is usable.

    Args:
        response: The :class:`requests.Response` from the backend.
        default: Fallback message returned when extraction fails.

    Returns:
        The extracted error string, or *default*.
    """
    try:
        payload = response.json()
    except ValueError:
        payload = getattr(response, "text", None)

    if isinstance(payload, dict):
        for field in ("message", "error"):
            message = payload.get(field)
            if isinstance(message, str) and message.strip():
                return message
        return default
    if isinstance(payload, str) and payload.strip():
        return payload.strip()
    return default


class ApiClient:
    """
    Thin wrapper over :func:`requests.request` bound to one backend.

    Args:
        base_url: API root, e.g. ``"http://localhost:8080/api"``.
        timeout: Per-request timeout in seconds.
        token_provider: Returns the current bearer token, or ``None``.
        on_unauthorized: Called once when the backend answers 401.
        correlation_id_provider: Returns the id to forward in
            ``X-Correlation-Id``, or ``None`` to omit the header.
    """

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 10,
        token_provider: Callable[[], str | None] | None = None,
        on_unauthorized: Callable[[], None] | None = None,
        correlation_id_provider: Callable[[], str | None] | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._token_provider = token_provider or (lambda: None)
        self._on_unauthorized = on_unauthorized or (lambda: None)
        self._correlation_id_provider = correlation_id_provider or (lambda: None)

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    def url(self, path: str) -> str:
        """Join *path* onto the base URL without doubling slashes."""
        return f"{self.base_url}/{path.lstrip('/')}"

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json", "Accept": "application/json"}
        token = self._token_provider()
        if token:
            headers["Authorization"] = f"Bearer {token}"
        correlation_id = self._correlation_id_provider()
        if correlation_id:
            headers[CORRELATION_ID_HEADER] = correlation_id
        return headers

    def request(self, method: str, path: str, **kwargs) -> Any:
        """
        Send one request and return the parsed JSON body.

        Args:
            method: HTTP method (``"GET"``, ``"POST"``, ``"PUT"``, ...).
            path: Path relative to the API root (e.g. ``"/tasks/42"``).
            **kwargs: Forwarded to :func:`requests.request` (``json``,
                ``params``).

        Returns:
            The decoded JSON body, or ``None`` for empty responses.

        Raises:
            ServiceUnavailableError: On timeouts or network failures.
            AuthenticationError: On 401, after ``on_unauthorized`` ran.
            ValidationError: On 400.
            NotFoundError: On 404.
            ApiError: On any other non-2xx status.
        """
        extra_headers = kwargs.pop("headers", {})
        headers = {**self._headers(), **extra_headers}
        try:
            response = requests.request(
                method=method,
                url=self.url(path),
                headers=headers,
                timeout=self.timeout,
                **kwargs,
            )
        except requests.Timeout as exc:
            logger.warning("%s %s timed out after %ss", method, path, self.timeout)
            raise ServiceUnavailableError("Service timed out. Please try again.") from exc
        except requests.RequestException as exc:
            logger.warning("%s %s failed: %s", method, path, exc)
            raise ServiceUnavailableError(
                "Service unavailable. Please try again later."
            ) from exc

        status_code = response.status_code
        logger.debug("%s %s -> %s", method, path, status_code)

        if 200 <= status_code < 300:
            if status_code == 204:
                return None
            try:
                return response.json()
            except ValueError:
                return None

        detail = response_error_message(response, None)
        if status_code == 401:
            self._on_unauthorized()
            raise AuthenticationError(
                "Session expired. Please log in again.", status_code, detail
            )
        if status_code == 400:
            raise ValidationError(detail or "Invalid request data", status_code, detail)
        if status_code == 404:
            raise NotFoundError(detail or "Not found", status_code, detail)
        raise ApiError(detail or "Unexpected service error", status_code, detail)

    # ------------------------------------------------------------------
    # Auth
    # ------------------------------------------------------------------

    def login(self, username: str, password: str) -> dict[str, Any]:
        return self.request(
            "POST", "/auth/login", json={"username": username, "password": password}
        )

    def register(self, data: dict[str, Any]) -> dict[str, Any]:
        return self.request("POST", "/auth/register", json=data)

    def get_current_user(self) -> dict[str, Any]:
        """Return the authenticated user, trying ``/auth/me`` then ``/users/me``."""
        try:
            return self.request("GET", "/auth/me")
        except NotFoundError:
            return self.request("GET", "/users/me")

    # ------------------------------------------------------------------
    # Projects
    # ------------------------------------------------------------------

    def get_projects(self) -> list[dict[str, Any]]:
        return self.request("GET", "/projects") or []

    def get_project(self, project_id: int) -> dict[str, Any]:
        return self.request("GET", f"/projects/{project_id}")

    def create_project(self, data: dict[str, Any]) -> dict[str, Any]:
        return self.request("POST", "/projects", json=data)

    def update_project(self, project_id: int, data: dict[str, Any]) -> dict[str, Any]:
        return self.request("PUT", f"/projects/{project_id}", json=data)

    def delete_project(self, project_id: int) -> None:
        self.request("DELETE", f"/projects/{project_id}")

    # ------------------------------------------------------------------
    # Tasks
    # ------------------------------------------------------------------

    def get_tasks(self) -> list[dict[str, Any]]:
        return self.request("GET", "/tasks") or []

    def get_task(self, task_id: int) -> dict[str, Any]:
        return self.request("GET", f"/tasks/{task_id}")

    def create_task(self, data: dict[str, Any]) -> dict[str, Any]:
        return self.request("POST", "/tasks", json=data)

    def update_task(self, task_id: int, data: dict[str, Any]) -> dict[str, Any]:
        return self.request("PUT", f"/tasks/{task_id}", json=data)

    def delete_task(self, task_id: int) -> None:
        self.request("DELETE", f"/tasks/{task_id}")

    def get_task_count_by_status(self, status: TaskStatus) -> int:
        count = self.request("GET", f"/tasks/stats/{TaskStatus(status).value}")
        return int(count or 0)

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------

    def update_user(self, user_id: int, data: dict[str, Any]) -> dict[str, Any]:
        return self.request("PUT", f"/users/{user_id}", json=data)

    # ------------------------------------------------------------------
    # Teams
    # ------------------------------------------------------------------

    def get_teams(self) -> list[dict[str, Any]]:
        return self.request("GET", "/teams") or []

    def create_team(self, data: dict[str, Any]) -> dict[str, Any]:
        return self.request("POST", "/teams", json=data)

    def update_team(self, team_id: int, data: dict[str, Any]) -> dict[str, Any]:
        return self.request("PUT", f"/teams/{team_id}", json=data)

    def delete_team(self, team_id: int) -> None:
        self.request("DELETE", f"/teams/{team_id}")

    def update_team_members(self, team_id: int, member_ids: list[int]) -> dict[str, Any]:
        return self.request(
            "PUT", f"/teams/{team_id}/members", json={"memberIds": list(member_ids)}
        )

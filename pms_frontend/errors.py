"""
Error types raised by the PMS API client.

Every failure talking to the backend is translated into one of these
exceptions so that views, mutation hooks, and the board reconciler can
react by category (force re-login, roll back, or simply report) without
inspecting raw HTTP responses.
"""

from __future__ import annotations


class ApiError(Exception):
    """
    Base class for failed backend calls.

    Attributes:
        message: Human-readable reason, suitable for a flash notification.
        status_code: HTTP status returned by the backend, or ``None`` when
            no response was received.
        detail: The message the backend itself put in the error body, if
            any. Mutation hooks prefer it over their own default text.
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        detail: str | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.detail = detail


class ValidationError(ApiError):
    """The backend rejected the request payload (HTTP 400)."""


class AuthenticationError(ApiError):
    """The bearer token is missing, expired, or rejected (HTTP 401)."""


class NotFoundError(ApiError):
    """The requested entity does not exist (HTTP 404)."""


class ServiceUnavailableError(ApiError):
    """The backend timed out or could not be reached."""

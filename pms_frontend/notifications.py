"""
Transient, dismissible notifications.

Mutation hooks and the board reconciler report outcomes through a
notifier instead of calling :func:`flask.flash` directly, so the same code
can drive HTML pages (flash messages) and JSON endpoints (a list returned
in the response body).
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass

from flask import flash

logger = logging.getLogger(__name__)

SUCCESS = "success"
ERROR = "error"


@dataclass(frozen=True)
class Notification:
    category: str
    message: str

    def to_dict(self) -> dict[str, str]:
        return asdict(self)


class Notifier:
    """Base notifier; subclasses decide where messages go."""

    def notify(self, category: str, message: str) -> None:
        raise NotImplementedError

    def success(self, message: str) -> None:
        self.notify(SUCCESS, message)

    def error(self, message: str) -> None:
        self.notify(ERROR, message)


class FlashNotifier(Notifier):
    """Sends notifications to the Flask flash queue of the current session."""

    def notify(self, category: str, message: str) -> None:
        flash(message, category)


class RecordingNotifier(Notifier):
    """Keeps notifications in memory, in the order they were raised."""

    def __init__(self):
        self.notifications: list[Notification] = []

    def notify(self, category: str, message: str) -> None:
        if category == ERROR:
            logger.info("Notification (%s): %s", category, message)
        self.notifications.append(Notification(category, message))

    @property
    def errors(self) -> list[str]:
        return [n.message for n in self.notifications if n.category == ERROR]

    def to_list(self) -> list[dict[str, str]]:
        return [n.to_dict() for n in self.notifications]

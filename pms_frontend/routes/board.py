"""
JSON endpoints for board drag-and-drop.

The board page posts ``{"id": "<card id>", "status": "<column>"}`` when a
card is dropped on a column. The id arrives as the string carried by the
drag payload; anything that does not parse to a valid id, or a status
outside the entity's enumeration, is answered as a no-op rather than an
error.

Responses always include the notifications raised while the move was
processed. Errors are also flashed: the board script reverts the card and
reloads after a failed move, and the reloaded page shows them like any
other flash message.
"""

from __future__ import annotations

import logging
from functools import wraps

from flask import Blueprint, flash, g, jsonify, request

from ..context import clear_session_token, get_status_mover, session_claims, use_notifier
from ..errors import AuthenticationError
from ..notifications import ERROR, RecordingNotifier

logger = logging.getLogger(__name__)

board_bp = Blueprint("board", __name__)


def _unauthorized():
    return jsonify({"error": "Authentication required"}), 401


def api_login_required(view_func):
    """JSON flavour of ``login_required``: answers 401 instead of redirecting."""

    @wraps(view_func)
    def wrapper(*args, **kwargs):
        claims = session_claims()
        if claims is None:
            clear_session_token()
            return _unauthorized()
        g.username = claims["sub"]
        try:
            return view_func(*args, **kwargs)
        except AuthenticationError:
            clear_session_token()
            return _unauthorized()

    return wrapper


def _move_response(result, notifier: RecordingNotifier):
    for message in notifier.errors:
        flash(message, ERROR)
    return jsonify({**result.to_dict(), "notifications": notifier.to_list()}), 200


def _drop_payload() -> tuple[object, object]:
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        return None, None
    return payload.get("id"), payload.get("status")


@board_bp.route("/tasks/move", methods=["POST"])
@api_login_required
def move_task():
    """Apply a task card drop; see :meth:`StatusMover.move_task`."""
    notifier = use_notifier(RecordingNotifier())
    raw_id, new_status = _drop_payload()
    result = get_status_mover().move_task(raw_id, new_status)
    return _move_response(result, notifier)


@board_bp.route("/projects/move", methods=["POST"])
@api_login_required
def move_project():
    """Apply a project card drop; see :meth:`StatusMover.move_project`."""
    notifier = use_notifier(RecordingNotifier())
    raw_id, new_status = _drop_payload()
    result = get_status_mover().move_project(raw_id, new_status)
    return _move_response(result, notifier)

"""
HTML view routes for the PMS frontend.

Implements every user-facing page of the project management UI. Each
route renders a Jinja template and reads or writes backend data through
the query and mutation hooks from :mod:`pms_frontend.context`. The module
is organised into four sections:

1. **Helper functions** -- form parsing, the ``login_required`` decorator,
   and shared error handling.
2. **Authentication routes** -- login, registration, logout, and profile.
3. **Dashboard and task routes** -- status counts, the task board with
   filters, and task create/update/delete.
4. **Project and team routes** -- project list with filters, team
   management, and membership updates.

Mutation hooks raise their own flash notifications, so a view only has to
decide where to redirect after an :class:`~pms_frontend.errors.ApiError`.
A 401 from the backend always ends with the session cleared and a
redirect to the login page.
"""

from __future__ import annotations

import logging
from datetime import date
from functools import wraps
from typing import Any

from flask import (
    Blueprint,
    current_app,
    flash,
    g,
    redirect,
    render_template,
    request,
    url_for,
)

from ..context import (
    cache_registry,
    clear_session_token,
    get_mutations,
    get_queries,
    session_claims,
    store_session_token,
)
from ..errors import ApiError, AuthenticationError
from ..filters import ProjectFilters, TaskFilters
from ..models import (
    ProjectStatus,
    TaskPriority,
    TaskStatus,
    coerce_enum,
    display_name,
    parse_entity_id,
    parse_id_list,
    tag_name,
)

logger = logging.getLogger(__name__)

views_bp = Blueprint("views", __name__)

MAX_TITLE_LENGTH = 200


class FormError(ValueError):
    """A submitted form failed client-side validation."""


# =====================================================================
# Helper Functions
# =====================================================================


def _session_expired():
    """Clear the session and send the user back to the login page."""
    clear_session_token()
    flash("Session expired. Please log in again.", "error")
    return redirect(url_for("views.login"))


def login_required(view_func):
    """
    Decorator that requires a live bearer token in the session.

    On success the token's subject is stored on ``g.username`` so the
    request uses that user's query cache. On failure the session is
    cleared and the user is redirected to the login page. An
    :class:`AuthenticationError` escaping the view (backend answered 401)
    is handled the same way.
    """

    @wraps(view_func)
    def wrapper(*args, **kwargs):
        claims = session_claims()
        if claims is None:
            clear_session_token()
            return redirect(url_for("views.login"))

        g.username = claims["sub"]
        try:
            return view_func(*args, **kwargs)
        except AuthenticationError:
            return _session_expired()

    return wrapper


def _optional_date(field: str) -> str | None:
    raw = request.form.get(field, "").strip()
    if not raw:
        return None
    try:
        return date.fromisoformat(raw).isoformat()
    except ValueError:
        raise FormError("Invalid date format") from None


def _task_payload_from_form() -> dict[str, Any]:
    """
    Validate the task form and build a ``TaskRequest`` body.

    Raises:
        FormError: When a required field is missing or a value is invalid.
    """
    title = request.form.get("title", "").strip()
    if not title:
        raise FormError("Title is required")
    if len(title) > MAX_TITLE_LENGTH:
        raise FormError(f"Title must be {MAX_TITLE_LENGTH} characters or less")

    status = coerce_enum(TaskStatus, request.form.get("status", TaskStatus.TODO.value))
    if status is None:
        raise FormError("Invalid status")
    priority = coerce_enum(
        TaskPriority, request.form.get("priority", TaskPriority.MEDIUM.value)
    )
    if priority is None:
        raise FormError("Invalid priority")

    project_id = parse_entity_id(request.form.get("projectId"))
    if project_id is None:
        raise FormError("Project is required")

    tags = [tag.strip() for tag in request.form.get("tags", "").split(",") if tag.strip()]
    return {
        "title": title,
        "description": request.form.get("description", "").strip(),
        "status": status.value,
        "priority": priority.value,
        "dueDate": _optional_date("dueDate"),
        "projectId": project_id,
        "assigneeId": parse_entity_id(request.form.get("assigneeId")),
        "tags": tags,
    }


def _project_payload_from_form() -> dict[str, Any]:
    """Validate the project form and build a ``ProjectRequest`` body."""
    name = request.form.get("name", "").strip()
    if not name:
        raise FormError("Name is required")
    status = coerce_enum(
        ProjectStatus, request.form.get("status", ProjectStatus.PLANNING.value)
    )
    if status is None:
        raise FormError("Invalid status")

    start_date = _optional_date("startDate")
    end_date = _optional_date("endDate")
    if start_date and end_date and end_date < start_date:
        raise FormError("End date must not be before start date")

    return {
        "name": name,
        "description": request.form.get("description", "").strip(),
        "status": status.value,
        "startDate": start_date,
        "endDate": end_date,
        "teamId": parse_entity_id(request.form.get("teamId")),
    }


def _team_payload_from_form() -> dict[str, Any]:
    name = request.form.get("name", "").strip()
    if not name:
        raise FormError("Team name is required")
    return {"name": name, "description": request.form.get("description", "").strip()}


def _load(loader, default):
    """
    Run a read query for a page, degrading to *default* on failure.

    Returns:
        ``(value, status_code)`` where the status code is 200 on success
        and 502/503 when the backend failed.
    """
    try:
        return loader(), 200
    except AuthenticationError:
        raise
    except ApiError as exc:
        flash(exc.message, "error")
        status_code = 503 if exc.status_code is None else 502
        return default, status_code


@views_bp.app_template_filter("display_name")
def _display_name_filter(user):
    return display_name(user)


@views_bp.app_template_filter("tag_name")
def _tag_name_filter(tag):
    return tag_name(tag)


# =====================================================================
# Authentication Routes
# =====================================================================


@views_bp.route("/health", methods=["GET"])
def health_check():
    """
    Return service health status.

    Public endpoint for load-balancer and orchestrator liveness probes.
    """
    return {"status": "healthy", "service": "pms-frontend"}, 200


@views_bp.route("/login", methods=["GET"])
def login():
    """Render the login page, or skip it when the session is still live."""
    if session_claims() is not None:
        return redirect(url_for("views.dashboard"))
    return render_template("login.html")


@views_bp.route("/login", methods=["POST"])
def login_submit():
    """
    Handle login form submission.

    Forwards the credentials to ``/auth/login`` and stores the returned
    token in the session cookie.
    """
    username = request.form.get("username", "").strip()
    password = request.form.get("password", "")
    if not username or not password:
        flash("Username and password are required.", "error")
        return render_template("login.html"), 400

    try:
        response = get_mutations().login(username, password)
    except ApiError as exc:
        return render_template("login.html"), exc.status_code or 503

    token = (response or {}).get("token")
    if not token:
        flash("Invalid login response received.", "error")
        return render_template("login.html"), 502

    store_session_token(token)
    return redirect(url_for("views.dashboard"))


@views_bp.route("/register", methods=["GET"])
def register():
    if session_claims() is not None:
        return redirect(url_for("views.dashboard"))
    return render_template("register.html")


@views_bp.route("/register", methods=["POST"])
def register_submit():
    """
    Handle registration form submission.

    When the backend answers with a token the new user is signed in
    directly; otherwise they are sent to the login page.
    """
    username = request.form.get("username", "").strip()
    email = request.form.get("email", "").strip()
    password = request.form.get("password", "")
    if not username or not email or not password:
        flash("Username, email, and password are required.", "error")
        return render_template("register.html"), 400

    data = {"username": username, "email": email, "password": password}
    for field in ("firstName", "lastName"):
        value = request.form.get(field, "").strip()
        if value:
            data[field] = value

    try:
        response = get_mutations().register(data)
    except ApiError as exc:
        return render_template("register.html"), exc.status_code or 503

    token = (response or {}).get("token")
    if token:
        store_session_token(token)
        return redirect(url_for("views.dashboard"))
    return redirect(url_for("views.login"))


@views_bp.route("/logout", methods=["POST"])
def logout():
    """Clear the session token and the user's cached data."""
    claims = session_claims()
    if claims is not None:
        cache_registry().drop(claims["sub"])
    clear_session_token()
    flash("Logged out. Session cleared.", "success")
    return redirect(url_for("views.login"))


@views_bp.route("/profile", methods=["GET"])
@login_required
def profile():
    user, status_code = _load(get_queries().current_user, {})
    return render_template("profile.html", user=user), status_code


@views_bp.route("/profile", methods=["POST"])
@login_required
def update_profile():
    """
    Update the current user's profile.

    Blank fields are left out of the request. When the username changes
    the backend issues a new token, which replaces the stored one; the
    cache kept under the old username is dropped.
    """
    try:
        user = get_queries().current_user()
    except AuthenticationError:
        raise
    except ApiError as exc:
        flash(exc.message, "error")
        return redirect(url_for("views.profile"))

    data = {}
    for field in ("firstName", "lastName", "username", "password"):
        value = request.form.get(field, "")
        value = value if field == "password" else value.strip()
        if value:
            data[field] = value
    if not data:
        flash("Nothing to update.", "error")
        return redirect(url_for("views.profile"))

    try:
        result = get_mutations().update_user(user["id"], data)
    except ApiError:
        return redirect(url_for("views.profile"))

    if isinstance(result, dict) and result.get("token"):
        cache_registry().drop(g.username)
        store_session_token(result["token"])
    return redirect(url_for("views.profile"))


# =====================================================================
# Dashboard and Task Routes
# =====================================================================


@views_bp.route("/")
@login_required
def dashboard():
    """Render project summaries and per-status task counts."""
    queries = get_queries()
    projects, projects_status = _load(queries.projects, [])
    counts, counts_status = _load(queries.task_counts, {})
    return (
        render_template(
            "dashboard.html",
            projects=projects,
            counts=counts,
            statuses=TaskStatus,
            current_username=g.username,
        ),
        max(projects_status, counts_status),
    )


@views_bp.route("/tasks", methods=["GET"])
@login_required
def tasks():
    """
    Render the task board grouped by status.

    Query-string filters: ``q`` (title contains), ``status``, ``priority``,
    ``project``, and ``team``; ``all`` or an empty value disables a term.
    """
    filters = TaskFilters.from_args(request.args)
    queries = get_queries()
    all_tasks, status_code = _load(queries.tasks, [])
    projects, _ = _load(queries.projects, [])
    teams, _ = _load(queries.teams, [])

    visible = filters.apply(all_tasks)
    columns = {
        status.value: [task for task in visible if task.get("status") == status.value]
        for status in TaskStatus
    }
    return (
        render_template(
            "tasks.html",
            columns=columns,
            filters=filters,
            projects=projects,
            teams=teams,
            statuses=TaskStatus,
            priorities=TaskPriority,
            debounce_ms=current_app.config["SEARCH_DEBOUNCE_MS"],
            current_username=g.username,
        ),
        status_code,
    )


@views_bp.route("/tasks", methods=["POST"])
@login_required
def create_task():
    try:
        payload = _task_payload_from_form()
    except FormError as error:
        flash(str(error), "error")
        return redirect(url_for("views.tasks"))

    try:
        get_mutations().create_task(payload)
    except AuthenticationError:
        raise
    except ApiError:
        pass
    return redirect(url_for("views.tasks"))


@views_bp.route("/tasks/<int:task_id>/update", methods=["POST"])
@login_required
def update_task(task_id: int):
    try:
        payload = _task_payload_from_form()
    except FormError as error:
        flash(str(error), "error")
        return redirect(url_for("views.tasks"))

    try:
        get_mutations().update_task(task_id, payload)
    except AuthenticationError:
        raise
    except ApiError:
        pass
    return redirect(url_for("views.tasks"))


@views_bp.route("/tasks/<int:task_id>/delete", methods=["POST"])
@login_required
def delete_task(task_id: int):
    try:
        get_mutations().delete_task(task_id)
    except AuthenticationError:
        raise
    except ApiError:
        pass
    return redirect(url_for("views.tasks"))


# =====================================================================
# Project and Team Routes
# =====================================================================


@views_bp.route("/projects", methods=["GET"])
@login_required
def projects():
    """Render the project board grouped by status, filtered by ``q``, ``status``, and ``team``."""
    filters = ProjectFilters.from_args(request.args)
    queries = get_queries()
    all_projects, status_code = _load(queries.projects, [])
    teams, _ = _load(queries.teams, [])
    visible = filters.apply(all_projects)
    columns = {
        status.value: [p for p in visible if p.get("status") == status.value]
        for status in ProjectStatus
    }
    return (
        render_template(
            "projects.html",
            projects=visible,
            columns=columns,
            filters=filters,
            teams=teams,
            statuses=ProjectStatus,
            current_username=g.username,
        ),
        status_code,
    )


@views_bp.route("/projects", methods=["POST"])
@login_required
def create_project():
    try:
        payload = _project_payload_from_form()
    except FormError as error:
        flash(str(error), "error")
        return redirect(url_for("views.projects"))

    try:
        get_mutations().create_project(payload)
    except AuthenticationError:
        raise
    except ApiError:
        pass
    return redirect(url_for("views.projects"))


@views_bp.route("/projects/<int:project_id>/update", methods=["POST"])
@login_required
def update_project(project_id: int):
    try:
        payload = _project_payload_from_form()
    except FormError as error:
        flash(str(error), "error")
        return redirect(url_for("views.projects"))

    try:
        get_mutations().update_project(project_id, payload)
    except AuthenticationError:
        raise
    except ApiError:
        pass
    return redirect(url_for("views.projects"))


@views_bp.route("/projects/<int:project_id>/delete", methods=["POST"])
@login_required
def delete_project(project_id: int):
    try:
        get_mutations().delete_project(project_id)
    except AuthenticationError:
        raise
    except ApiError:
        pass
    return redirect(url_for("views.projects"))


@views_bp.route("/teams", methods=["GET"])
@login_required
def teams():
    teams_data, status_code = _load(get_queries().teams, [])
    return (
        render_template("teams.html", teams=teams_data, current_username=g.username),
        status_code,
    )


@views_bp.route("/teams", methods=["POST"])
@login_required
def create_team():
    try:
        payload = _team_payload_from_form()
    except FormError as error:
        flash(str(error), "error")
        return redirect(url_for("views.teams"))

    try:
        get_mutations().create_team(payload)
    except AuthenticationError:
        raise
    except ApiError:
        pass
    return redirect(url_for("views.teams"))


@views_bp.route("/teams/<int:team_id>/update", methods=["POST"])
@login_required
def update_team(team_id: int):
    try:
        payload = _team_payload_from_form()
    except FormError as error:
        flash(str(error), "error")
        return redirect(url_for("views.teams"))

    try:
        get_mutations().update_team(team_id, payload)
    except AuthenticationError:
        raise
    except ApiError:
        pass
    return redirect(url_for("views.teams"))


@views_bp.route("/teams/<int:team_id>/delete", methods=["POST"])
@login_required
def delete_team(team_id: int):
    try:
        get_mutations().delete_team(team_id)
    except AuthenticationError:
        raise
    except ApiError:
        pass
    return redirect(url_for("views.teams"))


@views_bp.route("/teams/<int:team_id>/members", methods=["POST"])
@login_required
def update_team_members(team_id: int):
    """
    Replace a team's member list.

    ``memberIds`` is a comma-separated list; non-numeric entries are
    dropped rather than rejected.
    """
    member_ids = parse_id_list(request.form.get("memberIds"))
    try:
        get_mutations().update_team_members(team_id, member_ids)
    except AuthenticationError:
        raise
    except ApiError:
        pass
    return redirect(url_for("views.teams"))

"""
Integration tests for the HTML pages.

Covers the dashboard, the task board and its filters, form validation,
team membership updates, profile updates, correlation ids, and how pages
degrade when the PMS API is unreachable.

Key Concepts Demonstrated:
- Asserting on the exact payloads sent to the backend
- Cache behaviour observed through backend call counts
- Flash messages read back from the session
"""

from __future__ import annotations

import pytest
import requests

from pms_frontend.api_client import CORRELATION_ID_HEADER
from pms_frontend.cache import QueryKeys
from pms_frontend.context import cache_registry
from shared.test_helpers import FakeResponse, create_test_token

pytestmark = pytest.mark.integration


def _flashes(client):
    with client.session_transaction() as sess:
        return sess.get("_flashes", [])


@pytest.fixture
def board_backend(backend, project_factory, task_factory):
    """Backend with one project on one team and three tasks."""
    project = project_factory(id=7, name="Website", team={"id": 3, "name": "Core"})
    other = project_factory(id=8, name="Mobile", team=None)
    tasks = [
        task_factory(id=1, title="Alpha card", status="TODO", project=project),
        task_factory(id=2, title="Beta card", status="DONE", project=project),
        task_factory(id=3, title="Gamma card", status="TODO", priority="HIGH", project=other),
    ]
    backend.add("GET", "/tasks", FakeResponse(200, tasks))
    backend.add("GET", "/projects", FakeResponse(200, [project, other]))
    backend.add("GET", "/teams", FakeResponse(200, [{"id": 3, "name": "Core"}]))
    return backend


def test_health_is_public(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.get_json() == {"status": "healthy", "service": "pms-frontend"}


class TestDashboard:
    def test_shows_counts_per_status(self, logged_in_client, backend, project_factory):
        # Arrange
        backend.add("GET", "/projects", FakeResponse(200, [project_factory(name="Website")]))
        for status, count in (("TODO", 4), ("IN_PROGRESS", 2), ("REVIEW", 1), ("DONE", 9)):
            backend.add("GET", f"/tasks/stats/{status}", FakeResponse(200, count))

        # Act
        response = logged_in_client.get("/")

        # Assert
        assert response.status_code == 200
        html = response.get_data(as_text=True)
        assert "TODO: <strong>4</strong>" in html
        assert "IN PROGRESS: <strong>2</strong>" in html
        assert "DONE: <strong>9</strong>" in html
        assert "Website" in html

    def test_counts_are_cached_between_requests(self, logged_in_client, backend):
        backend.add("GET", "/projects", FakeResponse(200, []))
        for status in ("TODO", "IN_PROGRESS", "REVIEW", "DONE"):
            backend.add("GET", f"/tasks/stats/{status}", FakeResponse(200, 0))

        logged_in_client.get("/")
        logged_in_client.get("/")

        assert len(backend.calls_to("GET", "/tasks/stats/TODO")) == 1
        assert len(backend.calls_to("GET", "/projects")) == 1

    def test_backend_outage_degrades_to_503(self, logged_in_client, backend):
        backend.add("GET", "/projects", requests.ConnectionError("refused"))
        for status in ("TODO", "IN_PROGRESS", "REVIEW", "DONE"):
            backend.add("GET", f"/tasks/stats/{status}", FakeResponse(200, 0))

        response = logged_in_client.get("/")

        assert response.status_code == 503
        assert b"Service unavailable. Please try again later." in response.data
        assert b"No projects yet." in response.data


class TestTaskBoard:
    def test_groups_tasks_into_status_columns(self, logged_in_client, board_backend):
        response = logged_in_client.get("/tasks")

        html = response.get_data(as_text=True)
        assert response.status_code == 200
        for status in ("TODO", "IN_PROGRESS", "REVIEW", "DONE"):
            assert f'data-status="{status}"' in html
        assert "Alpha card" in html
        assert "Beta card" in html

    def test_filters_are_combined(self, logged_in_client, board_backend):
        response = logged_in_client.get("/tasks?status=TODO&project=7&q=gamma")

        html = response.get_data(as_text=True)
        assert "Alpha card" not in html
        assert "Beta card" not in html
        assert "Gamma card" not in html

    def test_team_filter_uses_project_team(self, logged_in_client, board_backend):
        response = logged_in_client.get("/tasks?team=3&status=all")

        html = response.get_data(as_text=True)
        assert "Alpha card" in html
        assert "Beta card" in html
        assert "Gamma card" not in html

    def test_search_is_case_insensitive(self, logged_in_client, board_backend):
        response = logged_in_client.get("/tasks?q=ALPHA")

        html = response.get_data(as_text=True)
        assert "Alpha card" in html
        assert "Beta card" not in html

    def test_page_carries_debounce_setting(self, logged_in_client, board_backend):
        response = logged_in_client.get("/tasks")

        assert b'data-debounce-ms="150"' in response.data

    def test_backend_outage_degrades_to_503(self, logged_in_client, backend):
        backend.add("GET", "/tasks", requests.Timeout())

        response = logged_in_client.get("/tasks")

        assert response.status_code == 503
        assert b"Service timed out. Please try again." in response.data

    def test_cards_carry_prefilled_edit_forms(self, logged_in_client, board_backend):
        response = logged_in_client.get("/tasks")

        html = response.get_data(as_text=True)
        assert 'action="/tasks/1/update"' in html
        assert 'value="Alpha card"' in html
        assert 'data-move-url="/board/tasks/move"' in html

    def test_edit_form_lists_tag_names(self, logged_in_client, backend, task_factory):
        task = task_factory(id=4, tags=[{"id": 1, "name": "backend"}, "ui"])
        backend.add("GET", "/tasks", FakeResponse(200, [task]))
        backend.add("GET", "/projects", FakeResponse(200, []))
        backend.add("GET", "/teams", FakeResponse(200, []))

        response = logged_in_client.get("/tasks")

        assert b'name="tags" value="backend, ui"' in response.data


class TestTaskForms:
    def test_create_task_sends_payload_and_invalidates(self, app, logged_in_client, backend):
        # Arrange
        with app.app_context():
            cache_registry().for_user("demo").set(QueryKeys.TASKS, [])
        backend.add("POST", "/tasks", FakeResponse(201, {"id": 99, "title": "Ship it"}))

        # Act
        response = logged_in_client.post(
            "/tasks",
            data={
                "title": "  Ship it ",
                "description": "Release build",
                "status": "IN_PROGRESS",
                "priority": "HIGH",
                "projectId": "7",
                "dueDate": "2025-06-30",
                "assigneeId": "",
                "tags": "release, , backend",
            },
            follow_redirects=False,
        )

        # Assert
        assert response.status_code == 302
        assert backend.calls_to("POST", "/tasks")[0]["json"] == {
            "title": "Ship it",
            "description": "Release build",
            "status": "IN_PROGRESS",
            "priority": "HIGH",
            "dueDate": "2025-06-30",
            "projectId": 7,
            "assigneeId": None,
            "tags": ["release", "backend"],
        }
        assert ("success", "Task created successfully") in _flashes(logged_in_client)
        with app.app_context():
            assert not cache_registry().for_user("demo").is_fresh(QueryKeys.TASKS)

    @pytest.mark.parametrize(
        "form, message",
        [
            ({"title": "", "projectId": "7"}, "Title is required"),
            ({"title": "x" * 201, "projectId": "7"}, "Title must be 200 characters or less"),
            ({"title": "Valid", "projectId": ""}, "Project is required"),
            ({"title": "Valid", "projectId": "7", "status": "BLOCKED"}, "Invalid status"),
            ({"title": "Valid", "projectId": "7", "dueDate": "30/06/2025"}, "Invalid date format"),
        ],
    )
    def test_invalid_form_never_reaches_backend(self, logged_in_client, backend, form, message):
        response = logged_in_client.post("/tasks", data=form, follow_redirects=False)

        assert response.status_code == 302
        assert backend.calls == []
        assert ("error", message) in _flashes(logged_in_client)

    def test_backend_rejection_is_flashed(self, logged_in_client, backend):
        backend.add("PUT", "/tasks/5", FakeResponse(400, {"message": "Due date is in the past"}))

        logged_in_client.post(
            "/tasks/5/update",
            data={"title": "Late", "projectId": "7", "dueDate": "2020-01-01"},
        )

        assert ("error", "Due date is in the past") in _flashes(logged_in_client)

    def test_delete_task(self, logged_in_client, backend):
        backend.add("DELETE", "/tasks/5", FakeResponse(204))

        response = logged_in_client.post("/tasks/5/delete", follow_redirects=False)

        assert response.status_code == 302
        assert len(backend.calls_to("DELETE", "/tasks/5")) == 1
        assert ("success", "Task deleted successfully") in _flashes(logged_in_client)


class TestProjects:
    def test_list_filters_by_status_and_team(self, logged_in_client, backend, project_factory):
        backend.add(
            "GET",
            "/projects",
            FakeResponse(
                200,
                [
                    project_factory(name="Website", status="ACTIVE", team={"id": 3}),
                    project_factory(name="Mobile", status="ACTIVE", team=None),
                    project_factory(name="Archive", status="COMPLETED", team={"id": 3}),
                ],
            ),
        )
        backend.add("GET", "/teams", FakeResponse(200, []))

        response = logged_in_client.get("/projects?status=ACTIVE&team=3")

        html = response.get_data(as_text=True)
        assert "Website" in html
        assert "Mobile" not in html
        assert "Archive" not in html

    def test_end_date_before_start_date_is_rejected(self, logged_in_client, backend):
        logged_in_client.post(
            "/projects",
            data={"name": "Backwards", "startDate": "2025-06-01", "endDate": "2025-05-01"},
        )

        assert backend.calls == []
        assert ("error", "End date must not be before start date") in _flashes(logged_in_client)

    def test_delete_project_invalidates_tasks_too(self, app, logged_in_client, backend):
        with app.app_context():
            cache = cache_registry().for_user("demo")
            cache.set(QueryKeys.PROJECTS, [{"id": 7}])
            cache.set(QueryKeys.TASKS, [{"id": 1, "project": {"id": 7}}])
        backend.add("DELETE", "/projects/7", FakeResponse(204))

        logged_in_client.post("/projects/7/delete")

        with app.app_context():
            cache = cache_registry().for_user("demo")
            assert not cache.is_fresh(QueryKeys.PROJECTS)
            assert not cache.is_fresh(QueryKeys.TASKS)

    def test_board_groups_projects_into_status_columns(self, logged_in_client, backend, project_factory):
        # Arrange
        backend.add(
            "GET",
            "/projects",
            FakeResponse(200, [project_factory(id=7, name="Website", status="ON_HOLD", team={"id": 3})]),
        )
        backend.add("GET", "/teams", FakeResponse(200, [{"id": 3, "name": "Core"}]))

        # Act
        response = logged_in_client.get("/projects")

        # Assert
        html = response.get_data(as_text=True)
        for status in ("PLANNING", "ACTIVE", "ON_HOLD", "COMPLETED", "CANCELLED"):
            assert f'data-status="{status}"' in html
        on_hold = html.split('data-status="ON_HOLD"')[1].split('data-status="COMPLETED"')[0]
        assert "Website" in on_hold
        assert 'data-move-url="/board/projects/move"' in html
        assert 'action="/projects/7/update"' in html
        assert '<option value="3" selected>Core</option>' in html

    def test_update_project_sends_form(self, logged_in_client, backend):
        backend.add("PUT", "/projects/7", FakeResponse(200, {"id": 7}))

        logged_in_client.post(
            "/projects/7/update",
            data={"name": "Website v2", "status": "ACTIVE", "teamId": "3"},
        )

        assert backend.calls_to("PUT", "/projects/7")[0]["json"] == {
            "name": "Website v2",
            "description": "",
            "status": "ACTIVE",
            "startDate": None,
            "endDate": None,
            "teamId": 3,
        }


class TestTeams:
    def test_member_ids_drop_non_numeric_entries(self, logged_in_client, backend):
        # Arrange
        backend.add("PUT", "/teams/3/members", FakeResponse(200, {"id": 3, "members": []}))

        # Act
        logged_in_client.post("/teams/3/members", data={"memberIds": "1, 2,x,,3"})

        # Assert
        assert backend.calls_to("PUT", "/teams/3/members")[0]["json"] == {"memberIds": [1, 2, 3]}
        assert ("success", "Team members updated") in _flashes(logged_in_client)

    def test_create_team_requires_name(self, logged_in_client, backend):
        logged_in_client.post("/teams", data={"name": "  "})

        assert backend.calls == []
        assert ("error", "Team name is required") in _flashes(logged_in_client)

    def test_delete_team_failure_uses_default_message(self, logged_in_client, backend):
        backend.add("DELETE", "/teams/3", FakeResponse(500, payload=None))

        logged_in_client.post("/teams/3/delete")

        assert ("error", "Failed to delete team") in _flashes(logged_in_client)

    def test_cards_carry_edit_and_member_forms(self, logged_in_client, backend):
        backend.add(
            "GET",
            "/teams",
            FakeResponse(200, [{"id": 3, "name": "Core", "members": [{"id": 1}, {"id": 2}]}]),
        )

        response = logged_in_client.get("/teams")

        html = response.get_data(as_text=True)
        assert 'action="/teams/3/update"' in html
        assert 'value="Core"' in html
        assert 'name="memberIds" value="1, 2"' in html

    def test_update_team_sends_form(self, logged_in_client, backend):
        backend.add("PUT", "/teams/3", FakeResponse(200, {"id": 3, "name": "Platform"}))

        logged_in_client.post("/teams/3/update", data={"name": " Platform ", "description": "Infra"})

        assert backend.calls_to("PUT", "/teams/3")[0]["json"] == {"name": "Platform", "description": "Infra"}
        assert ("success", "Team updated successfully") in _flashes(logged_in_client)


class TestProfile:
    def test_username_change_replaces_token_and_drops_old_cache(self, app, logged_in_client, backend):
        # Arrange
        new_token = create_test_token(username="demo2")
        with app.app_context():
            cache_registry().for_user("demo").set(QueryKeys.PROJECTS, [{"id": 1}])
        backend.add("GET", "/auth/me", FakeResponse(200, {"id": 1, "username": "demo"}))
        backend.add(
            "PUT",
            "/users/1",
            FakeResponse(200, {"user": {"id": 1, "username": "demo2"}, "token": new_token}),
        )

        # Act
        response = logged_in_client.post(
            "/profile",
            data={"username": "demo2", "firstName": "", "password": ""},
            follow_redirects=False,
        )

        # Assert
        assert response.status_code == 302
        assert backend.calls_to("PUT", "/users/1")[0]["json"] == {"username": "demo2"}
        with logged_in_client.session_transaction() as sess:
            assert sess["auth_token"] == new_token
        with app.app_context():
            assert QueryKeys.PROJECTS not in cache_registry().for_user("demo")

    def test_current_user_falls_back_to_users_me(self, logged_in_client, backend):
        backend.add("GET", "/auth/me", FakeResponse(404, payload=None))
        backend.add("GET", "/users/me", FakeResponse(200, {"id": 1, "username": "demo"}))

        response = logged_in_client.get("/profile")

        assert response.status_code == 200
        assert len(backend.calls_to("GET", "/users/me")) == 1

    def test_empty_update_is_not_sent(self, logged_in_client, backend):
        backend.add("GET", "/auth/me", FakeResponse(200, {"id": 1, "username": "demo"}))

        logged_in_client.post("/profile", data={"firstName": " ", "lastName": ""})

        assert backend.calls_to("PUT", "/users/1") == []
        assert ("error", "Nothing to update.") in _flashes(logged_in_client)


class TestCorrelationId:
    def test_inbound_id_is_echoed(self, client):
        response = client.get("/health", headers={CORRELATION_ID_HEADER: "req-123"})

        assert response.headers[CORRELATION_ID_HEADER] == "req-123"

    def test_id_is_generated_when_missing(self, client):
        response = client.get("/health")

        assert response.headers[CORRELATION_ID_HEADER]

    def test_id_is_forwarded_to_backend(self, logged_in_client, backend):
        backend.add("GET", "/teams", FakeResponse(200, []))

        logged_in_client.get("/teams", headers={CORRELATION_ID_HEADER: "req-456"})

        assert backend.calls_to("GET", "/teams")[0]["headers"][CORRELATION_ID_HEADER] == "req-456"

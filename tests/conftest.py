"""
Shared pytest fixtures for the PMS frontend test suite.

Provides the Flask app and client, a scripted fake of the PMS REST API
that replaces :func:`requests.request`, signed-in clients, and factories
for the backend's JSON entities.

Key Concepts Demonstrated:
- Fixture scoping (session vs. function) for speed and isolation
- Monkeypatching the HTTP layer instead of running the backend
- Test data factories built on Faker
"""

from __future__ import annotations

import os
from itertools import count
from typing import Any

import pytest
from faker import Faker

from shared.test_helpers import FakeBackend, create_test_token

os.environ["FLASK_ENV"] = "testing"

from pms_frontend import create_app
from pms_frontend.cache import CacheRegistry
from pms_frontend.context import CACHE_EXTENSION

fake = Faker()

API_BASE_URL = "http://pms-api"


# -----------------------------------------------------------------------------
# Application Fixtures
# -----------------------------------------------------------------------------


@pytest.fixture(scope="session")
def app():
    """Create the Flask app once with the 'testing' config."""
    application = create_app("testing")
    yield application


@pytest.fixture(autouse=True)
def fresh_cache_registry(app):
    """Give every test empty per-user caches so no data leaks between tests."""
    app.extensions[CACHE_EXTENSION] = CacheRegistry(
        stale_after=app.config["CACHE_STALE_SECONDS"],
        idle_after=app.config["CACHE_IDLE_SECONDS"],
    )


@pytest.fixture(scope="function")
def client(app):
    """Flask test client scoped to a single test function."""
    with app.test_client() as test_client:
        yield test_client


@pytest.fixture
def backend(monkeypatch):
    """
    Replace :func:`requests.request` in the API client with a fake backend.

    Register responses with ``backend.add(method, path, FakeResponse(...))``
    and inspect ``backend.calls`` afterwards.
    """
    fake_backend = FakeBackend(API_BASE_URL)
    monkeypatch.setattr("pms_frontend.api_client.requests.request", fake_backend)
    return fake_backend


@pytest.fixture
def auth_token() -> str:
    return create_test_token(username="demo")


@pytest.fixture
def logged_in_client(client, auth_token):
    """A test client whose session already holds a live token for ``demo``."""
    with client.session_transaction() as sess:
        sess["auth_token"] = auth_token
    return client


# -----------------------------------------------------------------------------
# Test Data Factory Fixtures
# -----------------------------------------------------------------------------


_ids = count(1000)


@pytest.fixture
def user_factory():
    def _create_user(**overrides: Any) -> dict[str, Any]:
        user = {
            "id": next(_ids),
            "username": fake.user_name(),
            "email": fake.email(),
            "firstName": fake.first_name(),
            "lastName": fake.last_name(),
            "role": "MEMBER",
        }
        user.update(overrides)
        return user

    return _create_user


@pytest.fixture
def project_factory(user_factory):
    """
    Factory for backend project payloads.

    Example:
        def test_something(project_factory):
            project = project_factory(status="ACTIVE", team={"id": 3, "name": "Core"})
    """

    def _create_project(**overrides: Any) -> dict[str, Any]:
        project = {
            "id": next(_ids),
            "name": fake.catch_phrase(),
            "description": fake.sentence(),
            "status": "PLANNING",
            "startDate": None,
            "endDate": None,
            "owner": user_factory(),
            "team": None,
            "createdAt": "2025-01-01T10:00:00",
            "updatedAt": "2025-01-01T10:00:00",
        }
        project.update(overrides)
        return project

    return _create_project


@pytest.fixture
def task_factory(project_factory):
    """Factory for backend task payloads; every task embeds its project."""

    def _create_task(**overrides: Any) -> dict[str, Any]:
        task = {
            "id": next(_ids),
            "title": fake.sentence(nb_words=4),
            "description": fake.paragraph(),
            "status": "TODO",
            "priority": "MEDIUM",
            "dueDate": None,
            "project": project_factory(),
            "assignee": None,
            "tags": [],
            "createdAt": "2025-01-01T10:00:00",
            "updatedAt": "2025-01-01T10:00:00",
        }
        task.update(overrides)
        return task

    return _create_task

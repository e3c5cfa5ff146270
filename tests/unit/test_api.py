"""Unit tests for the HTTP interface."""

import logging

import httpx
import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from taskflow.backends.remote import RemoteBackend
from taskflow.core.kv_store import InMemoryKeyValueStore
from taskflow.domain.user import User
from taskflow.main import build_services, register_exception_handlers, register_routes
from tests.unit.mocks import BrokenKeyValueStore, FakePocketBase


def _build_app(fake: FakePocketBase, store=None) -> FastAPI:
    app = FastAPI()
    register_exception_handlers(app)
    register_routes(app)
    remote = RemoteBackend(client=fake.client())
    app.state.task_service, app.state.auth_service = build_services(
        store=store or InMemoryKeyValueStore(),
        remote=remote,
    )
    return app


@pytest.fixture
def fake():
    return FakePocketBase()


@pytest.fixture
def client(fake):
    with TestClient(_build_app(fake)) as test_client:
        yield test_client


@pytest.fixture
def logged_in_client(client):
    response = client.post("/auth/signup", json={"email": "jack@example.com", "password": "secret123"})
    assert response.status_code == 201
    return client


def _task_body(title: str = "Renew library card", **overrides) -> dict:
    return {"title": title, "due_date": "2025-03-01T00:00:00Z", **overrides}


@pytest.mark.unit
class TestAuthEndpoints:
    """Tests for /auth routes."""

    def test_signup(self, client):
        """Test that signup returns the new user and the remote auth flag."""
        response = client.post("/auth/signup", json={"email": "jack@example.com", "password": "secret123"})

        assert response.status_code == 201
        payload = response.json()
        assert payload["user"]["email"] == "jack@example.com"
        assert payload["user"]["display_name"] == "jack"
        assert payload["is_using_local_storage"] is False

    def test_signup_validation_error(self, client):
        """Test that a too-short signup password is a 400 with the classifier code."""
        response = client.post("/auth/signup", json={"email": "jack@example.com", "password": "123"})

        assert response.status_code == 400
        assert response.json()["code"] == "ERR_VALIDATION"
        assert "at least 6" in response.json()["message"]

    def test_login_falls_back_to_local(self, client, fake):
        """Test that login succeeds locally when PocketBase is unreachable."""
        fake.fail_with = httpx.ConnectError("Connection refused")

        response = client.post("/auth/login", json={"email": "jack@example.com", "password": "secret123"})

        assert response.status_code == 200
        assert response.json()["is_using_local_storage"] is True

    def test_me_and_logout(self, logged_in_client):
        """Test that /auth/me reflects the session until logout."""
        assert logged_in_client.get("/auth/me").json()["user"]["email"] == "jack@example.com"

        assert logged_in_client.post("/auth/logout").status_code == 204
        assert logged_in_client.get("/auth/me").json()["user"] is None


@pytest.mark.unit
class TestTaskEndpoints:
    """Tests for /tasks routes."""

    def test_requires_login(self, client):
        """Test that task routes answer 401 without a current user."""
        response = client.get("/tasks")

        assert response.status_code == 401
        assert response.json()["code"] == "ERR_NOT_AUTHENTICATED"

    def test_create_and_list(self, logged_in_client):
        """Test that a created task shows up in the listing with pagination info."""
        created = logged_in_client.post("/tasks", json=_task_body())

        assert created.status_code == 201
        assert created.json()["storage_mode"] == "remote"

        listing = logged_in_client.get("/tasks").json()
        assert [t["id"] for t in listing["tasks"]] == [created.json()["id"]]
        assert listing["pagination"]["total_tasks"] == 1
        assert listing["pagination"]["has_next_page"] is False

    def test_list_with_filters(self, logged_in_client):
        """Test that query parameters filter the listing."""
        logged_in_client.post("/tasks", json=_task_body("Pending chore"))
        logged_in_client.post("/tasks", json=_task_body("Finished chore", status="completed"))

        listing = logged_in_client.get("/tasks", params={"status": "completed"}).json()

        assert [t["title"] for t in listing["tasks"]] == ["Finished chore"]

    def test_short_title_rejected(self, logged_in_client):
        """Test that body validation rejects titles under three characters."""
        response = logged_in_client.post("/tasks", json=_task_body("ab"))

        assert response.status_code == 422

    def test_out_of_range_due_date_rejected(self, logged_in_client):
        """Test that an unrepresentable numeric due date is a 422, not a server error."""
        response = logged_in_client.post("/tasks", json=_task_body(due_date=1e300))

        assert response.status_code == 422

    def test_page_zero_rejected(self, logged_in_client):
        """Test that page 0 is a 400 validation error."""
        response = logged_in_client.get("/tasks", params={"page": 0})

        assert response.status_code == 400
        assert response.json()["code"] == "ERR_VALIDATION"

    def test_update(self, logged_in_client):
        """Test that PATCH applies the status change."""
        task_id = logged_in_client.post("/tasks", json=_task_body()).json()["id"]

        response = logged_in_client.patch(f"/tasks/{task_id}", json={"status": "in-progress"})

        assert response.status_code == 204
        assert logged_in_client.get("/tasks").json()["tasks"][0]["status"] == "in-progress"

    def test_update_unknown_task(self, logged_in_client):
        """Test that patching a missing task is a 404."""
        response = logged_in_client.patch("/tasks/ghost", json={"status": "completed"})

        assert response.status_code == 404
        assert response.json()["code"] == "ERR_TASK_NOT_FOUND"

    def test_delete_is_idempotent(self, logged_in_client):
        """Test that deleting the same task twice succeeds both times."""
        task_id = logged_in_client.post("/tasks", json=_task_body()).json()["id"]

        assert logged_in_client.delete(f"/tasks/{task_id}").status_code == 204
        assert logged_in_client.delete(f"/tasks/{task_id}").status_code == 204
        assert logged_in_client.get("/tasks").json()["tasks"] == []


@pytest.mark.unit
class TestStatusEndpoints:
    """Tests for /health and /status."""

    def test_health(self, client):
        """Test the health check payload."""
        assert client.get("/health").json() == {"status": "healthy"}

    def test_status_after_remote_failure(self, logged_in_client, fake, caplog):
        """Test that /status reports the switch to local storage and its reason."""
        fake.fail_status = 502

        with caplog.at_level(logging.WARNING, logger="taskflow.main"):
            created = logged_in_client.post("/tasks", json=_task_body())

        assert created.json()["storage_mode"] == "local"
        status = logged_in_client.get("/status").json()
        assert status["storage_mode"] == "local"
        assert status["remote_enabled"] is False
        assert "502" in status["downgrade_reason"]
        assert status["is_using_local_storage"] is False
        assert any(record.getMessage() == "storage_mode_changed" for record in caplog.records)

    def test_storage_failure_returns_503(self, fake):
        """Test that failure of both stores is a 503."""
        fake.fail_with = httpx.ConnectError("Connection refused")
        app = _build_app(fake, store=BrokenKeyValueStore())
        app.state.auth_service._set_session(User(uid="local1", email="kim@example.com"), local=True)

        with TestClient(app) as test_client:
            response = test_client.post("/tasks", json=_task_body())

        assert response.status_code == 503
        assert response.json()["code"] == "ERR_STORAGE_FAILURE"

"""Pytest configuration and fixtures for unit tests."""

import pytest

from taskflow.backends.local import LocalBackend
from taskflow.backends.remote import RemoteBackend
from taskflow.core.kv_store import InMemoryKeyValueStore
from taskflow.services.auth_service import AuthService
from taskflow.services.task_service import TaskService
from tests.unit.mocks import FakePocketBase


@pytest.fixture
def kv_store():
    """Provides a fresh InMemoryKeyValueStore for each test."""
    return InMemoryKeyValueStore()


@pytest.fixture
def local_backend(kv_store):
    """Local backend on the in-memory store."""
    return LocalBackend(kv_store)


@pytest.fixture
def fake_pocketbase():
    """Fresh in-memory PocketBase server."""
    return FakePocketBase()


@pytest.fixture
async def remote_backend(fake_pocketbase):
    """Remote backend talking to the fake PocketBase server."""
    backend = RemoteBackend(client=fake_pocketbase.client())
    yield backend
    await backend.close()


@pytest.fixture
def downgrades():
    """Collects errors passed to the TaskService downgrade callback."""
    return []


@pytest.fixture
def task_service(remote_backend, local_backend, downgrades):
    """TaskService wired to the fake remote and the in-memory local backend."""
    return TaskService(remote=remote_backend, local=local_backend, on_downgrade=downgrades.append)


@pytest.fixture
def auth_service(remote_backend, local_backend):
    """AuthService wired to the fake remote and the in-memory local backend."""
    return AuthService(remote=remote_backend, local=local_backend)


@pytest.fixture
async def remote_user(remote_backend):
    """A user registered and signed in on the fake PocketBase server."""
    return await remote_backend.signup_user("alice@example.com", "secret123")

"""Unit tests for TaskService routing and one-way failover."""

from unittest.mock import patch

import httpx
import pytest

from taskflow.backends.local import LocalBackend
from taskflow.core.errors import BackendUnavailableError, StorageFailureError, TaskNotFoundError, ValidationError
from taskflow.domain.task import StorageMode, TaskFilters, TaskStatus, TaskUpdate
from taskflow.services.task_service import TaskService
from tests.unit.mocks import BrokenKeyValueStore


SCENARIO_STATUSES = [
    TaskStatus.PENDING,
    TaskStatus.PENDING,
    TaskStatus.IN_PROGRESS,
    TaskStatus.COMPLETED,
    TaskStatus.COMPLETED,
    TaskStatus.COMPLETED,
    TaskStatus.PENDING,
]


@pytest.mark.unit
class TestTaskServiceRemote:
    """Tests while the remote backend is healthy."""

    async def test_starts_on_remote(self, task_service):
        """Test the initial remote state."""
        assert task_service.storage_mode == StorageMode.REMOTE
        assert task_service.remote_enabled is True
        assert task_service.status() == {"storage_mode": "remote", "remote_enabled": True, "downgrade_reason": None}

    async def test_create_goes_to_remote(self, task_service, fake_pocketbase, task_data, kv_store):
        """Test that creates go to PocketBase while it is healthy."""
        task_id = await task_service.create_task(task_data("Pay rent"), "user1")

        assert task_id in fake_pocketbase.records("tasks")
        assert await kv_store.get("taskflow_tasks") is None

    async def test_update_missing_task_does_not_downgrade(self, task_service, downgrades):
        """Test that TaskNotFoundError does not switch storage."""
        with pytest.raises(TaskNotFoundError):
            await task_service.update_task(TaskUpdate(id="ghost", status=TaskStatus.COMPLETED))

        assert task_service.remote_enabled is True
        assert downgrades == []

    async def test_invalid_page_does_not_downgrade(self, task_service, downgrades):
        """Test that ValidationError does not switch storage."""
        with pytest.raises(ValidationError):
            await task_service.list_tasks("user1", page=0)

        assert task_service.storage_mode == StorageMode.REMOTE
        assert downgrades == []

    @pytest.mark.parametrize("remote_up", [True, False], ids=["remote", "local"])
    async def test_seven_task_scenario(self, task_service, fake_pocketbase, task_data, remote_up):
        """Test that seven tasks split into pages of six and one on either backend."""
        if not remote_up:
            fake_pocketbase.fail_with = httpx.ConnectError("Connection refused")
        for index, status in enumerate(SCENARIO_STATUSES):
            await task_service.create_task(task_data(f"Task {index}", status=status), "user1")

        first = await task_service.list_tasks("user1", page=1)
        second = await task_service.list_tasks("user1", page=2)

        assert task_service.remote_enabled is remote_up
        assert len(first.tasks) == 6
        assert first.pagination.total_tasks == 7
        assert first.pagination.total_pages == 2
        assert first.pagination.has_next_page is True
        assert first.pagination.has_prev_page is False
        assert len(second.tasks) == 1
        assert {t.id for t in first.tasks}.isdisjoint({t.id for t in second.tasks})
        assert second.pagination.has_next_page is False
        assert second.pagination.has_prev_page is True

    @pytest.mark.parametrize("remote_up", [True, False], ids=["remote", "local"])
    async def test_status_filter_scenario(self, task_service, fake_pocketbase, task_data, remote_up):
        """Test that filtering the seven tasks by completed yields three on one page."""
        if not remote_up:
            fake_pocketbase.fail_with = httpx.ConnectError("Connection refused")
        for index, status in enumerate(SCENARIO_STATUSES):
            await task_service.create_task(task_data(f"Task {index}", status=status), "user1")

        page = await task_service.list_tasks("user1", TaskFilters(status=TaskStatus.COMPLETED))

        assert sorted(t.title for t in page.tasks) == ["Task 3", "Task 4", "Task 5"]
        assert page.pagination.total_tasks == 3
        assert page.pagination.total_pages == 1
        assert page.pagination.has_next_page is False
        assert page.pagination.has_prev_page is False

    async def test_operations_open_spans(self, task_service, task_data):
        """Test that service operations open a Logfire span."""
        with patch("taskflow.services.task_service.span") as mock_span:
            await task_service.create_task(task_data(), "user1")

        mock_span.assert_called_once_with("task_service.create_task", user_id="user1")


@pytest.mark.unit
class TestTaskServiceFailover:
    """Tests for the permanent switch to local storage."""

    async def test_remote_failure_retries_locally(self, task_service, fake_pocketbase, task_data, local_backend):
        """Test that a failed remote call is retried locally."""
        fake_pocketbase.fail_with = httpx.ConnectError("Connection refused")

        task_id = await task_service.create_task(task_data("Renew passport"), "user1")

        assert task_service.storage_mode == StorageMode.LOCAL
        assert task_service.remote_enabled is False
        assert "Connection refused" in task_service.downgrade_reason
        local_page = await local_backend.list_tasks("user1")
        assert [t.id for t in local_page.tasks] == [task_id]

    async def test_switch_is_permanent(self, task_service, fake_pocketbase, task_data):
        """Test that PocketBase is never called again after the switch."""
        fake_pocketbase.fail_status = 503
        await task_service.create_task(task_data("First"), "user1")
        remote_calls = fake_pocketbase.call_count()

        fake_pocketbase.fail_status = None
        await task_service.create_task(task_data("Second"), "user1")
        await task_service.list_tasks("user1")
        await task_service.delete_task("anything")

        assert fake_pocketbase.call_count() == remote_calls
        assert task_service.storage_mode == StorageMode.LOCAL

    async def test_downgrade_callback_fires_once(self, task_service, fake_pocketbase, task_data, downgrades):
        """Test that on_downgrade runs only on the first failure."""
        fake_pocketbase.malformed = True

        await task_service.list_tasks("user1")
        await task_service.create_task(task_data(), "user1")

        assert len(downgrades) == 1
        assert isinstance(downgrades[0], BackendUnavailableError)

    async def test_reads_after_switch_do_not_see_remote_data(self, task_service, fake_pocketbase, task_data):
        """Test that reads after the switch only see local data."""
        await task_service.create_task(task_data("Stored remotely"), "user1")
        fake_pocketbase.fail_with = httpx.ReadTimeout("timed out")

        page = await task_service.list_tasks("user1")

        assert page.tasks == []
        assert task_service.storage_mode == StorageMode.LOCAL

    async def test_missing_task_after_switch_raises_not_found(self, task_service, fake_pocketbase):
        """Test that an update retried locally can raise TaskNotFoundError."""
        fake_pocketbase.fail_status = 500

        with pytest.raises(TaskNotFoundError):
            await task_service.update_task(TaskUpdate(id="rec1", title="Renamed task"))

        assert task_service.storage_mode == StorageMode.LOCAL

    async def test_both_backends_failing(self, remote_backend, fake_pocketbase, task_data):
        """Test that failure of both stores raises StorageFailureError."""
        fake_pocketbase.fail_with = httpx.ConnectError("Connection refused")
        service = TaskService(remote=remote_backend, local=LocalBackend(BrokenKeyValueStore()))

        with pytest.raises(StorageFailureError):
            await service.create_task(task_data(), "user1")

        assert service.storage_mode == StorageMode.LOCAL

    async def test_local_unavailability_becomes_storage_failure(self, local_backend, task_data):
        """Test that local unavailability surfaces as StorageFailureError."""
        class UnreachableBackend:
            mode = StorageMode.LOCAL

            async def create_task(self, data, user_id):
                raise BackendUnavailableError("unreachable")

        service = TaskService(remote=local_backend, local=UnreachableBackend())
        service._active = service._local

        with pytest.raises(StorageFailureError, match="Local create_task failed"):
            await service.create_task(task_data(), "user1")

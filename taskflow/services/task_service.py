"""Task service: one task API routed to the remote backend with a one-way local fallback."""

import logging
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from taskflow.backends.base import StorageBackend
from taskflow.core.errors import BackendUnavailableError, StorageFailureError
from taskflow.core.logging import log_with_context, log_with_user_context, span
from taskflow.domain.task import StorageMode, TaskCreate, TaskFilters, TaskPage, TaskUpdate


logger = logging.getLogger(__name__)

T = TypeVar("T")

DowngradeCallback = Callable[[BackendUnavailableError], None]


class TaskService:
    """Routes task operations to the active backend.

    Starts on the remote backend. The first remote failure swaps the active
    backend to the local one for the lifetime of this instance; the failed
    operation is retried locally and the remote error is not propagated.
    Domain errors (TaskNotFoundError, ValidationError) are surfaced unchanged
    and never cause a switch.
    """

    def __init__(
        self,
        *,
        remote: StorageBackend,
        local: StorageBackend,
        on_downgrade: DowngradeCallback | None = None,
    ) -> None:
        """Initialize the service.

        Args:
            remote: Backend tried first
            local: Backend used after the first remote failure
            on_downgrade: Called once with the remote error when the switch happens
        """
        self._remote = remote
        self._local = local
        self._active: StorageBackend = remote
        self._on_downgrade = on_downgrade
        self._downgrade_reason: str | None = None

    @property
    def remote_enabled(self) -> bool:
        """True until the first remote failure."""
        return self._active is self._remote

    @property
    def storage_mode(self) -> StorageMode:
        """Mode of the backend currently serving requests."""
        return self._active.mode

    @property
    def downgrade_reason(self) -> str | None:
        """Message of the remote error that caused the switch to local, if any."""
        return self._downgrade_reason

    def status(self) -> dict[str, Any]:
        """Snapshot of the routing state for status reporting."""
        return {
            "storage_mode": self.storage_mode.value,
            "remote_enabled": self.remote_enabled,
            "downgrade_reason": self._downgrade_reason,
        }

    def _downgrade(self, error: BackendUnavailableError, operation: str) -> None:
        """Switch permanently to the local backend."""
        self._active = self._local
        self._downgrade_reason = str(error)
        log_with_context(
            logger,
            "warning",
            "Remote storage failed, switching to local storage",
            operation=operation,
            error=str(error),
        )
        if self._on_downgrade is not None:
            self._on_downgrade(error)

    async def _run_local(self, operation: str, call: Callable[[StorageBackend], Awaitable[T]]) -> T:
        try:
            return await call(self._local)
        except BackendUnavailableError as e:
            # A local backend reporting unavailability is a storage failure for the caller
            raise StorageFailureError(f"Local {operation} failed: {e}") from e

    async def _run(self, operation: str, call: Callable[[StorageBackend], Awaitable[T]]) -> T:
        """Run ``call`` on the active backend, falling back to local on remote failure."""
        if not self.remote_enabled:
            return await self._run_local(operation, call)

        try:
            return await call(self._remote)
        except BackendUnavailableError as e:
            self._downgrade(e, operation)
            return await self._run_local(operation, call)

    async def create_task(self, data: TaskCreate, user_id: str) -> str:
        """Create a task for ``user_id`` and return its id."""
        with span("task_service.create_task", user_id=user_id):
            return await self._run("create_task", lambda backend: backend.create_task(data, user_id))

    async def list_tasks(self, user_id: str, filters: TaskFilters | None = None, page: int = 1) -> TaskPage:
        """Return one page of the user's tasks, newest first."""
        with span("task_service.list_tasks", user_id=user_id, page=page):
            result = await self._run("list_tasks", lambda backend: backend.list_tasks(user_id, filters, page))
            log_with_user_context(
                logger,
                "debug",
                "Tasks listed",
                user_id=user_id,
                page=page,
                total_tasks=result.pagination.total_tasks,
                storage_mode=self.storage_mode.value,
            )
            return result

    async def update_task(self, data: TaskUpdate) -> None:
        """Apply a patch to an existing task.

        Raises:
            TaskNotFoundError: If the active backend has no task with that id
        """
        with span("task_service.update_task", task_id=data.id):
            await self._run("update_task", lambda backend: backend.update_task(data))

    async def delete_task(self, task_id: str) -> None:
        """Delete a task; deleting an unknown id is not an error."""
        with span("task_service.delete_task", task_id=task_id):
            await self._run("delete_task", lambda backend: backend.delete_task(task_id))

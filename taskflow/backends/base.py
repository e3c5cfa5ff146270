"""StorageBackend Protocol shared by the remote and local adapters."""

from typing import Protocol

from taskflow.domain.task import StorageMode, TaskCreate, TaskFilters, TaskPage, TaskUpdate
from taskflow.domain.user import User


class StorageBackend(Protocol):
    """Task and session persistence, identical in contract for every backend.

    Infrastructure failures raise BackendUnavailableError (remote) or
    StorageFailureError (local). Domain failures raise TaskNotFoundError or
    ValidationError and are never treated as a reason to switch backends.
    """

    @property
    def mode(self) -> StorageMode:
        """Which kind of backend this is."""
        ...

    async def create_task(self, data: TaskCreate, user_id: str) -> str:
        """Persist a new task and return its backend-assigned id."""
        ...

    async def list_tasks(self, user_id: str, filters: TaskFilters | None = None, page: int = 1) -> TaskPage:
        """Return one page of the user's tasks, newest first."""
        ...

    async def update_task(self, data: TaskUpdate) -> None:
        """Apply a patch; raise TaskNotFoundError if the id is unknown."""
        ...

    async def delete_task(self, task_id: str) -> None:
        """Delete a task; unknown ids are ignored."""
        ...

    async def signup_user(self, email: str, password: str) -> User:
        """Register and return a new current user."""
        ...

    async def login_user(self, email: str, password: str) -> User:
        """Authenticate and return the current user."""
        ...

    async def logout_user(self) -> None:
        """Clear the current session."""
        ...

    async def get_current_user(self) -> User | None:
        """Return the user of the persisted session, if any."""
        ...

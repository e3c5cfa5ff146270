"""Local store adapter: tasks and the current user on the device key/value store."""

import json
import logging
import secrets
import time
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from taskflow.core import timestamps
from taskflow.core.config import Constants
from taskflow.core.errors import CorruptStateError, TaskNotFoundError
from taskflow.core.kv_store import KeyValueStore
from taskflow.core.pagination import paginate
from taskflow.domain.task import StorageMode, Task, TaskCreate, TaskFilters, TaskPage, TaskUpdate
from taskflow.domain.user import User, display_name_from_email, validate_credentials


logger = logging.getLogger(__name__)

_BASE36_DIGITS = "0123456789abcdefghijklmnopqrstuvwxyz"


def _to_base36(value: int) -> str:
    """Encode a non-negative integer in base 36."""
    if value == 0:
        return "0"
    digits = []
    while value:
        value, remainder = divmod(value, 36)
        digits.append(_BASE36_DIGITS[remainder])
    return "".join(reversed(digits))


def generate_id() -> str:
    """Generate a record id: millisecond clock in base 36 followed by a random suffix."""
    return _to_base36(time.time_ns() // 1_000_000) + secrets.token_hex(5)


def _serialize_task(task: Task) -> dict[str, Any]:
    """Convert a task to its JSON-ready stored form."""
    return {
        "id": task.id,
        "title": task.title,
        "description": task.description,
        "status": task.status.value,
        "due_date": timestamps.to_local(task.due_date),
        "created_at": timestamps.to_local(task.created_at),
        "updated_at": timestamps.to_local(task.updated_at),
        "user_id": task.user_id,
    }


def _deserialize_tasks(raw: str) -> list[Task]:
    """Parse the stored collection.

    Raises:
        CorruptStateError: If the payload or any record in it cannot be parsed
    """
    try:
        records = json.loads(raw)
        if not isinstance(records, list):
            raise CorruptStateError("Stored task collection is not a list")
        return [Task.model_validate(record) for record in records]
    except (json.JSONDecodeError, PydanticValidationError, TypeError) as e:
        raise CorruptStateError(f"Stored task collection is unreadable: {e}") from e


class LocalBackend:
    """Stores the whole task collection as one JSON document under a single key.

    Reads that hit unparseable data return an empty collection rather than
    partial results. Device I/O errors propagate as StorageFailureError.
    """

    def __init__(self, store: KeyValueStore) -> None:
        """Initialize the adapter on top of a key/value store."""
        self._store = store

    @property
    def mode(self) -> StorageMode:
        """Local backend."""
        return StorageMode.LOCAL

    async def _load_tasks(self) -> list[Task]:
        """Load every stored task, or an empty list if the stored data is corrupt."""
        raw = await self._store.get(Constants.TASKS_KEY)
        if not raw:
            return []

        try:
            return _deserialize_tasks(raw)
        except CorruptStateError as e:
            logger.warning("Discarding corrupt local task collection", extra={"error": str(e)})
            return []

    async def _save_tasks(self, tasks: list[Task]) -> None:
        """Persist the full collection."""
        payload = json.dumps([_serialize_task(task) for task in tasks])
        await self._store.set(Constants.TASKS_KEY, payload)

    async def create_task(self, data: TaskCreate, user_id: str) -> str:
        """Append a new task and return its generated id."""
        tasks = await self._load_tasks()
        now = timestamps.utc_now()

        task = Task(
            id=generate_id(),
            title=data.title,
            description=data.description,
            status=data.status,
            due_date=data.due_date,
            created_at=now,
            updated_at=now,
            user_id=user_id,
        )
        tasks.append(task)
        await self._save_tasks(tasks)

        logger.info("Created local task", extra={"task_id": task.id, "user_id": user_id})
        return task.id

    async def list_tasks(self, user_id: str, filters: TaskFilters | None = None, page: int = 1) -> TaskPage:
        """Return one page of the user's tasks."""
        tasks = await self._load_tasks()
        user_tasks = [task for task in tasks if task.user_id == user_id]
        return paginate(user_tasks, filters=filters, page=page)

    async def update_task(self, data: TaskUpdate) -> None:
        """Apply the patch fields present in ``data`` and refresh updated_at."""
        tasks = await self._load_tasks()

        for index, task in enumerate(tasks):
            if task.id == data.id:
                break
        else:
            raise TaskNotFoundError(data.id)

        changes = data.changes()
        changes["updated_at"] = timestamps.utc_now()
        tasks[index] = task.model_copy(update=changes)
        await self._save_tasks(tasks)

        logger.info("Updated local task", extra={"task_id": data.id, "fields": sorted(changes)})

    async def delete_task(self, task_id: str) -> None:
        """Remove the task if present."""
        tasks = await self._load_tasks()
        remaining = [task for task in tasks if task.id != task_id]
        if len(remaining) == len(tasks):
            logger.debug("Local task already absent", extra={"task_id": task_id})
            return

        await self._save_tasks(remaining)
        logger.info("Deleted local task", extra={"task_id": task_id})

    async def _store_user(self, email: str) -> User:
        """Fabricate a user for ``email`` and persist it as current."""
        email = email.strip()
        user = User(uid=generate_id(), email=email, display_name=display_name_from_email(email))
        await self._store.set(Constants.USER_KEY, user.model_dump_json())
        return user

    async def signup_user(self, email: str, password: str) -> User:
        """Register a placeholder identity; no password is stored."""
        validate_credentials(email, password, signup=True)
        user = await self._store_user(email)
        logger.info("Signed up local user", extra={"user_id": user.uid})
        return user

    async def login_user(self, email: str, password: str) -> User:
        """Log in with a placeholder identity; the password is not verified."""
        validate_credentials(email, password)
        user = await self._store_user(email)
        logger.info("Logged in local user", extra={"user_id": user.uid})
        return user

    async def logout_user(self) -> None:
        """Clear the current user record."""
        await self._store.remove(Constants.USER_KEY)
        logger.info("Cleared local user session")

    async def get_current_user(self) -> User | None:
        """Return the persisted current user, or None if absent or unreadable."""
        raw = await self._store.get(Constants.USER_KEY)
        if not raw:
            return None

        try:
            return User.model_validate_json(raw)
        except PydanticValidationError as e:
            logger.warning("Discarding corrupt local user record", extra={"error": str(e)})
            return None

"""Task domain models and enums."""

from datetime import datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, Field, field_validator

from taskflow.core import timestamps
from taskflow.core.config import Constants


class TaskStatus(StrEnum):
    """Task progress status."""

    PENDING = "pending"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"


class StorageMode(StrEnum):
    """Which backend currently serves reads and writes."""

    REMOTE = "remote"
    LOCAL = "local"


def _normalize_timestamp(value: Any) -> Any:
    """Coerce any accepted timestamp representation to an aware UTC datetime."""
    if value is None:
        return None
    return timestamps.parse_timestamp(value)


class Task(BaseModel):
    """Task data transfer object, identical regardless of the backend holding it."""

    id: str = Field(..., description="Unique task ID assigned by the backend that created it")
    title: str = Field(..., description="Task title")
    description: str = Field(default="", description="Detailed task description")
    status: TaskStatus = Field(default=TaskStatus.PENDING, description="Progress status")
    due_date: datetime = Field(..., description="Caller-supplied due date")
    created_at: datetime = Field(..., description="Creation timestamp, immutable")
    updated_at: datetime = Field(..., description="Last mutation timestamp")
    user_id: str = Field(..., description="Owning user ID")

    @field_validator("due_date", "created_at", "updated_at", mode="before")
    @classmethod
    def normalize_timestamps(cls, v: Any) -> Any:
        """Re-hydrate stored timestamps into aware UTC datetimes."""
        return _normalize_timestamp(v)


class TaskCreate(BaseModel):
    """Payload for creating a task."""

    title: str = Field(
        ...,
        min_length=Constants.TITLE_MIN_LENGTH,
        max_length=Constants.TITLE_MAX_LENGTH,
        description="Task title",
    )
    description: str = Field(default="", max_length=Constants.DESCRIPTION_MAX_LENGTH)
    status: TaskStatus = Field(default=TaskStatus.PENDING)
    due_date: datetime = Field(..., description="When the task is due")

    @field_validator("due_date", mode="before")
    @classmethod
    def normalize_due_date(cls, v: Any) -> Any:
        """Normalize the due date to UTC."""
        return _normalize_timestamp(v)


class TaskUpdate(BaseModel):
    """Patch for an existing task. Only fields explicitly set are applied."""

    id: str = Field(..., description="ID of the task to update")
    title: str | None = Field(
        default=None,
        min_length=Constants.TITLE_MIN_LENGTH,
        max_length=Constants.TITLE_MAX_LENGTH,
    )
    description: str | None = Field(default=None, max_length=Constants.DESCRIPTION_MAX_LENGTH)
    status: TaskStatus | None = None
    due_date: datetime | None = None

    @field_validator("due_date", mode="before")
    @classmethod
    def normalize_due_date(cls, v: Any) -> Any:
        """Normalize the due date to UTC."""
        return _normalize_timestamp(v)

    def changes(self) -> dict[str, Any]:
        """Return the fields this patch sets, keyed by field name."""
        return {
            name: getattr(self, name)
            for name in ("title", "description", "status", "due_date")
            if name in self.model_fields_set and getattr(self, name) is not None
        }


class TaskFilters(BaseModel):
    """Optional list predicates. Absent fields impose no constraint."""

    status: TaskStatus | None = None
    due_date_start: datetime | None = Field(default=None, description="Inclusive lower bound on due_date")
    due_date_end: datetime | None = Field(default=None, description="Inclusive upper bound on due_date")

    @field_validator("due_date_start", "due_date_end", mode="before")
    @classmethod
    def normalize_bounds(cls, v: Any) -> Any:
        """Normalize range bounds to UTC."""
        return _normalize_timestamp(v)

    def matches(self, task: Task) -> bool:
        """Return True if ``task`` satisfies every present filter field."""
        if self.status is not None and task.status != self.status:
            return False
        if self.due_date_start is not None and task.due_date < self.due_date_start:
            return False
        return not (self.due_date_end is not None and task.due_date > self.due_date_end)


class PaginationInfo(BaseModel):
    """Position of a page within a filtered collection. Derived, never stored."""

    current_page: int
    total_pages: int
    total_tasks: int
    has_next_page: bool
    has_prev_page: bool


class TaskPage(BaseModel):
    """One page of tasks plus its pagination metadata."""

    tasks: list[Task]
    pagination: PaginationInfo

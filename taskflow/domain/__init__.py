"""Domain models and DTOs."""

from taskflow.domain.task import (
    PaginationInfo,
    StorageMode,
    Task,
    TaskCreate,
    TaskFilters,
    TaskPage,
    TaskStatus,
    TaskUpdate,
)
from taskflow.domain.user import User


__all__ = [
    "PaginationInfo",
    "StorageMode",
    "Task",
    "TaskCreate",
    "TaskFilters",
    "TaskPage",
    "TaskStatus",
    "TaskUpdate",
    "User",
]

"""Task endpoints."""

from datetime import datetime

from fastapi import APIRouter, Query, status
from pydantic import BaseModel, Field

from taskflow.core.config import Constants
from taskflow.domain.task import TaskCreate, TaskFilters, TaskPage, TaskStatus, TaskUpdate
from taskflow.interface.dependencies import CurrentUserDep, TaskServiceDep


router = APIRouter(prefix="/tasks", tags=["tasks"])


class TaskPatchBody(BaseModel):
    """Fields a client may change on an existing task."""

    title: str | None = Field(
        default=None,
        min_length=Constants.TITLE_MIN_LENGTH,
        max_length=Constants.TITLE_MAX_LENGTH,
    )
    description: str | None = Field(default=None, max_length=Constants.DESCRIPTION_MAX_LENGTH)
    status: TaskStatus | None = None
    due_date: datetime | None = None


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_task(body: TaskCreate, user: CurrentUserDep, task_service: TaskServiceDep) -> dict[str, str]:
    """Create a task owned by the current user."""
    task_id = await task_service.create_task(body, user.uid)
    return {"id": task_id, "storage_mode": task_service.storage_mode.value}


@router.get("")
async def list_tasks(
    user: CurrentUserDep,
    task_service: TaskServiceDep,
    status_filter: TaskStatus | None = Query(default=None, alias="status"),
    due_date_start: datetime | None = None,
    due_date_end: datetime | None = None,
    page: int = 1,
) -> TaskPage:
    """List one page of the current user's tasks."""
    filters = TaskFilters(status=status_filter, due_date_start=due_date_start, due_date_end=due_date_end)
    return await task_service.list_tasks(user.uid, filters, page)


@router.patch("/{task_id}", status_code=status.HTTP_204_NO_CONTENT)
async def update_task(task_id: str, body: TaskPatchBody, _user: CurrentUserDep, task_service: TaskServiceDep) -> None:
    """Apply a partial update to a task."""
    await task_service.update_task(TaskUpdate(id=task_id, **body.model_dump(exclude_unset=True)))


@router.delete("/{task_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_task(task_id: str, _user: CurrentUserDep, task_service: TaskServiceDep) -> None:
    """Delete a task. Deleting an unknown id succeeds."""
    await task_service.delete_task(task_id)

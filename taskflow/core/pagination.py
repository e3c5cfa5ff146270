"""Pagination and filtering shared by both storage adapters."""

import math
from collections.abc import Iterable

from taskflow.core.config import Constants
from taskflow.core.errors import ValidationError
from taskflow.domain.task import PaginationInfo, Task, TaskFilters, TaskPage


def validate_page(page: int) -> None:
    """Reject page numbers below 1."""
    if page < 1:
        raise ValidationError(f"Page must be 1 or greater, got {page}")


def build_pagination_info(*, page: int, total_tasks: int, per_page: int = Constants.TASKS_PER_PAGE) -> PaginationInfo:
    """Compute pagination metadata for ``page`` over ``total_tasks`` items."""
    total_pages = math.ceil(total_tasks / per_page) if total_tasks > 0 else 0
    return PaginationInfo(
        current_page=page,
        total_pages=total_pages,
        total_tasks=total_tasks,
        has_next_page=page < total_pages,
        has_prev_page=page > 1,
    )


def filter_tasks(tasks: Iterable[Task], filters: TaskFilters | None) -> list[Task]:
    """Keep tasks satisfying every present filter field."""
    if filters is None:
        return list(tasks)
    return [task for task in tasks if filters.matches(task)]


def paginate(
    tasks: Iterable[Task],
    *,
    filters: TaskFilters | None = None,
    page: int = 1,
    per_page: int = Constants.TASKS_PER_PAGE,
) -> TaskPage:
    """Filter, order newest-first by creation time and slice out one page.

    Pages past the end are empty rather than an error.

    Raises:
        ValidationError: If page is below 1
    """
    validate_page(page)

    # sorted() is stable, so equal created_at keeps insertion order across pages
    ordered = sorted(filter_tasks(tasks, filters), key=lambda task: task.created_at, reverse=True)

    start_index = (page - 1) * per_page
    end_index = start_index + per_page

    return TaskPage(
        tasks=ordered[start_index:end_index],
        pagination=build_pagination_info(page=page, total_tasks=len(ordered), per_page=per_page),
    )

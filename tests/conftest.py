"""Pytest configuration and shared fixtures."""

from datetime import UTC, datetime, timedelta
from typing import Any

import logfire
import pytest

from taskflow.domain.task import TaskCreate, TaskStatus


BASE_DUE_DATE = datetime(2025, 1, 10, tzinfo=UTC)


@pytest.fixture(scope="session", autouse=True)
def _configure_logfire_for_tests():
    """Keep spans in-process during tests."""
    logfire.configure(send_to_logfire=False, console=False)


def make_task_create(
    title: str = "Write weekly report",
    *,
    status: TaskStatus = TaskStatus.PENDING,
    due_in_days: int = 0,
    **overrides: Any,
) -> TaskCreate:
    """Build a TaskCreate due ``due_in_days`` after BASE_DUE_DATE."""
    return TaskCreate(
        title=title,
        description=overrides.pop("description", ""),
        status=status,
        due_date=overrides.pop("due_date", BASE_DUE_DATE + timedelta(days=due_in_days)),
        **overrides,
    )


@pytest.fixture
def task_data():
    """Factory fixture producing TaskCreate payloads."""
    return make_task_create

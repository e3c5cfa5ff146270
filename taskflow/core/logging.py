"""Observability wiring: Pydantic Logfire plus stdlib logging.

Modules log through ``logging.getLogger(__name__)`` and pass structured fields
via ``extra=``. ``configure_logfire`` forwards records from the ``taskflow``
logger hierarchy into Logfire, so backend switches and storage failures show
up next to the request spans.

    logger = logging.getLogger(__name__)
    logger.warning("Remote storage failed", extra={"operation": "create_task"})
    log_with_context(logger, "info", "Task created", task_id=task_id, storage_mode="local")
"""

import logging

import logfire
from fastapi import FastAPI

from taskflow import __version__
from taskflow.core.config import settings


logger = logging.getLogger(__name__)

_ROOT_LOGGER = "taskflow"


def configure_logfire() -> None:
    """Set up Logfire for this process and route taskflow log records to it.

    Nothing leaves the process unless ``LOGFIRE_TOKEN`` is set.
    """
    logfire.configure(
        token=settings.logfire_token,
        service_name="taskflow",
        service_version=__version__,
        environment=settings.environment,
        send_to_logfire="if-token-present",
    )

    root = logging.getLogger(_ROOT_LOGGER)
    if not any(isinstance(handler, logfire.LogfireLoggingHandler) for handler in root.handlers):
        root.addHandler(logfire.LogfireLoggingHandler())
    root.setLevel(logging.INFO)

    logger.info("Logfire configured", extra={"environment": settings.environment})


def instrument_fastapi(app: FastAPI) -> None:
    """Trace every request handled by ``app``."""
    logfire.instrument_fastapi(app)
    logger.info("FastAPI instrumentation configured")


def span(name: str, **attributes: object) -> logfire.LogfireSpan:
    """Open a Logfire span around a service operation.

    Attributes become span fields, e.g. ``span("task_service.list_tasks", user_id=uid, page=2)``.
    """
    return logfire.span(name, **attributes)


def log_with_context(
    logger: logging.Logger,
    level: str,
    message: str,
    **context: object,
) -> None:
    """Emit ``message`` at ``level`` with ``context`` attached as structured fields."""
    getattr(logger, level.lower())(message, extra=context)


def log_with_user_context(
    logger: logging.Logger,
    level: str,
    message: str,
    user_id: str | None = None,
    **extra: object,
) -> None:
    """Like log_with_context, tagging the record with ``user_id`` when one is known."""
    if user_id:
        extra = {"user_id": user_id, **extra}
    log_with_context(logger, level, message, **extra)

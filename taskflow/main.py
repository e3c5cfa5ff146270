"""taskflow - personal task tracker with remote/local storage failover."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from taskflow import __version__
from taskflow.backends.local import LocalBackend
from taskflow.backends.remote import RemoteBackend
from taskflow.core.errors import (
    BackendUnavailableError,
    StorageFailureError,
    TaskNotFoundError,
    ValidationError,
    classify_error_with_response,
)
from taskflow.core.kv_store import KeyValueStore, create_kv_store
from taskflow.core.logging import configure_logfire, instrument_fastapi
from taskflow.interface.auth_router import router as auth_router
from taskflow.interface.tasks_router import router as tasks_router
from taskflow.services.auth_service import AuthService
from taskflow.services.task_service import TaskService


logger = logging.getLogger(__name__)


def build_services(*, store: KeyValueStore, remote: RemoteBackend) -> tuple[TaskService, AuthService]:
    """Wire both backends into the task and auth services."""
    local = LocalBackend(store)

    def _notify_downgrade(error: BackendUnavailableError) -> None:
        logger.warning("storage_mode_changed", extra={"storage_mode": "local", "reason": str(error)})

    task_service = TaskService(remote=remote, local=local, on_downgrade=_notify_downgrade)
    auth_service = AuthService(remote=remote, local=local)
    return task_service, auth_service


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan context manager."""
    # Startup
    configure_logfire()

    store = create_kv_store()
    remote = RemoteBackend()
    app.state.task_service, app.state.auth_service = build_services(store=store, remote=remote)

    user = await app.state.auth_service.restore_session()
    logger.info(
        "startup_complete",
        extra={"remote_configured": remote.is_configured, "session_restored": user is not None},
    )
    yield
    # Shutdown
    await remote.close()
    await store.close()


def _error_response(exc: Exception, status_code: int) -> JSONResponse:
    return JSONResponse(content=classify_error_with_response(exc).model_dump(mode="json"), status_code=status_code)


def register_exception_handlers(app: FastAPI) -> None:
    """Map service errors onto HTTP responses carrying user-facing notices."""

    @app.exception_handler(ValidationError)
    async def _validation_error(_request: Request, exc: ValidationError) -> JSONResponse:
        return _error_response(exc, 400)

    @app.exception_handler(PermissionError)
    async def _permission_error(_request: Request, exc: PermissionError) -> JSONResponse:
        return _error_response(exc, 401)

    @app.exception_handler(TaskNotFoundError)
    async def _not_found_error(_request: Request, exc: TaskNotFoundError) -> JSONResponse:
        return _error_response(exc, 404)

    @app.exception_handler(StorageFailureError)
    async def _storage_failure(_request: Request, exc: StorageFailureError) -> JSONResponse:
        logger.error("storage_failure", extra={"error": str(exc)})
        return _error_response(exc, 503)


def register_routes(app: FastAPI) -> None:
    """Attach routers and status endpoints."""
    app.include_router(auth_router)
    app.include_router(tasks_router)

    @app.get("/health")
    async def health_check() -> JSONResponse:
        """Health check endpoint."""
        return JSONResponse(content={"status": "healthy"}, status_code=200)

    @app.get("/status")
    async def storage_status(request: Request) -> JSONResponse:
        """Report which backend serves tasks and which authenticated the session."""
        task_service: TaskService = request.app.state.task_service
        auth_service: AuthService = request.app.state.auth_service
        return JSONResponse(
            content={
                **task_service.status(),
                "is_using_local_storage": auth_service.is_using_local_storage,
            },
            status_code=200,
        )


app = FastAPI(
    title="taskflow",
    description="Personal task tracker with remote/local storage failover",
    version=__version__,
    lifespan=lifespan,
)

# Instrument FastAPI with Logfire
instrument_fastapi(app)

register_exception_handlers(app)
register_routes(app)

"""Remote store adapter backed by the PocketBase REST API."""

import json
import logging
from datetime import datetime
from enum import Enum
from typing import Any
from urllib.parse import quote

import httpx
from pydantic import ValidationError as PydanticValidationError

from taskflow.core import timestamps
from taskflow.core.config import Constants, settings
from taskflow.core.errors import BackendUnavailableError, TaskNotFoundError
from taskflow.core.pagination import build_pagination_info, validate_page
from taskflow.domain.task import StorageMode, Task, TaskCreate, TaskFilters, TaskPage, TaskUpdate
from taskflow.domain.user import User, display_name_from_email


logger = logging.getLogger(__name__)

# Returned by _request when a 404 is an expected outcome for the caller
_NOT_FOUND: Any = object()


def sanitize_param(value: str | int | float | bool | None) -> str:
    """Escape a value for safe embedding in PocketBase filter strings via json.dumps."""
    return json.dumps(str(value))[1:-1]


def build_task_filter(user_id: str, filters: TaskFilters | None) -> str:
    """Build the PocketBase filter expression for a task listing.

    Only filters actually present are attached.
    """
    conditions = [f'user_id = "{sanitize_param(user_id)}"']
    if filters is not None:
        if filters.status is not None:
            conditions.append(f'status = "{sanitize_param(filters.status.value)}"')
        if filters.due_date_start is not None:
            conditions.append(f'due_date >= "{timestamps.to_remote(filters.due_date_start)}"')
        if filters.due_date_end is not None:
            conditions.append(f'due_date <= "{timestamps.to_remote(filters.due_date_end)}"')
    return " && ".join(conditions)


def _to_remote_fields(fields: dict[str, Any]) -> dict[str, Any]:
    """Serialize task fields into the shapes PocketBase stores."""
    payload: dict[str, Any] = {}
    for key, value in fields.items():
        if isinstance(value, datetime):
            payload[key] = timestamps.to_remote(value)
        elif isinstance(value, Enum):
            payload[key] = value.value
        else:
            payload[key] = value
    return payload


def _record_to_task(record: dict[str, Any]) -> Task:
    """Normalize a PocketBase record into a Task (server autodates become created_at/updated_at)."""
    return Task(
        id=record["id"],
        title=record.get("title", ""),
        description=record.get("description") or "",
        status=record.get("status"),
        due_date=record.get("due_date"),
        created_at=record.get("created"),
        updated_at=record.get("updated"),
        user_id=record.get("user_id"),
    )


def _record_to_user(record: dict[str, Any]) -> User:
    """Normalize a PocketBase auth record into a User."""
    email = record["email"]
    return User(uid=record["id"], email=email, display_name=record.get("name") or display_name_from_email(email))


def _records_path(collection: str, record_id: str | None = None) -> str:
    path = f"/api/collections/{collection}/records"
    return f"{path}/{quote(record_id, safe='')}" if record_id else path


class RemoteBackend:
    """PocketBase-backed storage.

    Ids and created/updated timestamps are assigned by the server. Every
    infrastructural failure, including timeouts, non-2xx answers and
    unparseable responses, surfaces as BackendUnavailableError.
    """

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        *,
        url: str | None = None,
        timeout_seconds: float | None = None,
    ) -> None:
        """Initialize the adapter.

        Args:
            client: Preconfigured httpx client; built from ``url`` when omitted
            url: PocketBase URL, defaults to settings.pocketbase_url
            timeout_seconds: Per-request timeout, defaults to settings.remote_timeout_seconds
        """
        base_url = url or settings.pocketbase_url
        timeout = timeout_seconds if timeout_seconds is not None else settings.remote_timeout_seconds
        if client is None and base_url:
            client = httpx.AsyncClient(base_url=base_url, timeout=timeout)
        self._client = client
        self._auth_token: str | None = None

        if self._client is None:
            logger.info("PocketBase URL not configured. Remote backend disabled.")

    @property
    def mode(self) -> StorageMode:
        """Remote backend."""
        return StorageMode.REMOTE

    @property
    def is_configured(self) -> bool:
        """Whether a PocketBase client is available."""
        return self._client is not None

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            logger.info("PocketBase client closed")

    async def _request(
        self,
        operation: str,
        method: str,
        path: str,
        *,
        json_body: dict[str, Any] | None = None,
        params: dict[str, Any] | None = None,
        allow_not_found: bool = False,
    ) -> Any:
        """Send one request and return its decoded JSON body.

        Returns _NOT_FOUND instead of raising when the server answers 404 and
        ``allow_not_found`` is set.

        Raises:
            BackendUnavailableError: On any transport, timeout, status or decoding error
        """
        if self._client is None:
            raise BackendUnavailableError("Remote backend not configured")

        headers = {"Authorization": f"Bearer {self._auth_token}"} if self._auth_token else None
        try:
            response = await self._client.request(method, path, json=json_body, params=params, headers=headers)
        except httpx.TimeoutException as e:
            logger.warning("remote_call_timeout", extra={"operation": operation, "error": str(e)})
            raise BackendUnavailableError(f"Remote {operation} timed out: {e}") from e
        except httpx.HTTPError as e:
            logger.warning("remote_call_failed", extra={"operation": operation, "error": str(e)})
            raise BackendUnavailableError(f"Remote {operation} failed: {e}") from e

        if allow_not_found and response.status_code == Constants.HTTP_NOT_FOUND:
            return _NOT_FOUND

        if not response.is_success:
            logger.warning(
                "remote_call_failed",
                extra={"operation": operation, "status": response.status_code, "body": response.text[:200]},
            )
            raise BackendUnavailableError(f"Remote {operation} failed with status {response.status_code}")

        if not response.content:
            return {}

        try:
            return response.json()
        except ValueError as e:
            logger.warning("remote_response_malformed", extra={"operation": operation, "error": str(e)})
            raise BackendUnavailableError(f"Remote {operation} returned a malformed response: {e}") from e

    async def create_task(self, data: TaskCreate, user_id: str) -> str:
        """Create a task record; PocketBase assigns id and timestamps."""
        payload = _to_remote_fields({**data.model_dump(), "user_id": user_id})
        record = await self._request(
            "create_task",
            "POST",
            _records_path(Constants.TASKS_COLLECTION),
            json_body=payload,
        )

        task_id = record.get("id") if isinstance(record, dict) else None
        if not task_id:
            raise BackendUnavailableError("Remote create_task returned no record id")

        logger.info("Created remote task", extra={"task_id": task_id, "user_id": user_id})
        return task_id

    async def list_tasks(self, user_id: str, filters: TaskFilters | None = None, page: int = 1) -> TaskPage:
        """Query one page server-side, newest first, with a server-side total."""
        validate_page(page)

        params = {
            "page": page,
            "perPage": Constants.TASKS_PER_PAGE,
            "filter": build_task_filter(user_id, filters),
            "sort": "-created",
        }
        result = await self._request("list_tasks", "GET", _records_path(Constants.TASKS_COLLECTION), params=params)

        try:
            tasks = [_record_to_task(record) for record in result["items"]]
            total_tasks = int(result["totalItems"])
        except (KeyError, TypeError, ValueError, PydanticValidationError) as e:
            logger.warning("remote_response_malformed", extra={"operation": "list_tasks", "error": str(e)})
            raise BackendUnavailableError(f"Remote list_tasks returned a malformed response: {e}") from e

        return TaskPage(tasks=tasks, pagination=build_pagination_info(page=page, total_tasks=total_tasks))

    async def update_task(self, data: TaskUpdate) -> None:
        """Patch a task record; PocketBase refreshes its updated timestamp."""
        payload = _to_remote_fields(data.changes())
        result = await self._request(
            "update_task",
            "PATCH",
            _records_path(Constants.TASKS_COLLECTION, data.id),
            json_body=payload,
            allow_not_found=True,
        )
        if result is _NOT_FOUND:
            raise TaskNotFoundError(data.id)

        logger.info("Updated remote task", extra={"task_id": data.id, "fields": sorted(payload)})

    async def delete_task(self, task_id: str) -> None:
        """Delete a task record; an already-missing record is not an error."""
        result = await self._request(
            "delete_task",
            "DELETE",
            _records_path(Constants.TASKS_COLLECTION, task_id),
            allow_not_found=True,
        )
        if result is _NOT_FOUND:
            logger.debug("Remote task already absent", extra={"task_id": task_id})
            return

        logger.info("Deleted remote task", extra={"task_id": task_id})

    def _session_from_auth_response(self, operation: str, response: Any) -> User:
        """Keep the token from an auth response and return its user."""
        try:
            user = _record_to_user(response["record"])
            token = response["token"]
        except (KeyError, TypeError, PydanticValidationError) as e:
            raise BackendUnavailableError(f"Remote {operation} returned a malformed response: {e}") from e

        self._auth_token = token
        return user

    async def signup_user(self, email: str, password: str) -> User:
        """Create an auth record, then sign in with it."""
        await self._request(
            "signup_user",
            "POST",
            _records_path(Constants.USERS_COLLECTION),
            json_body={
                "email": email,
                "password": password,
                "passwordConfirm": password,
                "name": display_name_from_email(email),
            },
        )
        return await self.login_user(email, password)

    async def login_user(self, email: str, password: str) -> User:
        """Authenticate with email and password."""
        response = await self._request(
            "login_user",
            "POST",
            f"/api/collections/{Constants.USERS_COLLECTION}/auth-with-password",
            json_body={"identity": email, "password": password},
        )
        user = self._session_from_auth_response("login_user", response)
        logger.info("Authenticated remote user", extra={"user_id": user.uid})
        return user

    async def logout_user(self) -> None:
        """Drop the auth token; PocketBase sessions are stateless on the server."""
        self._auth_token = None
        logger.info("Cleared remote user session")

    async def get_current_user(self) -> User | None:
        """Refresh the held auth token and return its user, or None without a session."""
        if self._client is None:
            raise BackendUnavailableError("Remote backend not configured")
        if not self._auth_token:
            return None

        response = await self._request(
            "get_current_user",
            "POST",
            f"/api/collections/{Constants.USERS_COLLECTION}/auth-refresh",
        )
        return self._session_from_auth_response("get_current_user", response)

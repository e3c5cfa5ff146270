"""Storage error hierarchy and user-facing error classification."""

from enum import Enum

from pydantic import BaseModel


class TaskflowError(Exception):
    """Base class for all taskflow errors."""


class ValidationError(TaskflowError, ValueError):
    """Caller-supplied data failed a precondition (empty credentials, short password, bad page)."""


class TaskNotFoundError(TaskflowError, KeyError):
    """An update targeted a task id that does not exist in the active backend."""

    def __init__(self, task_id: str) -> None:
        super().__init__(f"Task not found: {task_id}")
        self.task_id = task_id

    def __str__(self) -> str:
        return str(self.args[0])


class BackendUnavailableError(TaskflowError, ConnectionError):
    """A remote call failed for infrastructural reasons (network, timeout, permission, bad response)."""


class StorageFailureError(TaskflowError, RuntimeError):
    """The local store could not complete an operation."""


class CorruptStateError(TaskflowError):
    """Locally persisted data could not be parsed."""


class ErrorSeverity(Enum):
    """Severity levels for errors."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ErrorCode:
    """Error codes for specific error conditions."""

    ERR_VALIDATION = "ERR_VALIDATION"
    ERR_TASK_NOT_FOUND = "ERR_TASK_NOT_FOUND"
    ERR_NOT_AUTHENTICATED = "ERR_NOT_AUTHENTICATED"
    ERR_BACKEND_UNAVAILABLE = "ERR_BACKEND_UNAVAILABLE"
    ERR_STORAGE_FAILURE = "ERR_STORAGE_FAILURE"
    ERR_UNKNOWN = "ERR_UNKNOWN"


class ErrorResponse(BaseModel):
    """Structured error response with user-friendly messaging."""

    code: str
    message: str
    suggestion: str
    severity: ErrorSeverity


def classify_error_with_response(exception: Exception) -> ErrorResponse:
    """Classify an error and return a structured response with recovery suggestions.

    Args:
        exception: The exception raised by a service call

    Returns:
        ErrorResponse with code, message, suggestion, and severity
    """
    if isinstance(exception, ValidationError):
        return ErrorResponse(
            code=ErrorCode.ERR_VALIDATION,
            message=str(exception),
            suggestion="Check the highlighted fields and try again.",
            severity=ErrorSeverity.LOW,
        )

    if isinstance(exception, TaskNotFoundError):
        return ErrorResponse(
            code=ErrorCode.ERR_TASK_NOT_FOUND,
            message="That task no longer exists.",
            suggestion="Refresh your task list.",
            severity=ErrorSeverity.LOW,
        )

    if isinstance(exception, PermissionError):
        return ErrorResponse(
            code=ErrorCode.ERR_NOT_AUTHENTICATED,
            message="You need to be logged in to do that.",
            suggestion="Log in and try again.",
            severity=ErrorSeverity.MEDIUM,
        )

    if isinstance(exception, BackendUnavailableError):
        return ErrorResponse(
            code=ErrorCode.ERR_BACKEND_UNAVAILABLE,
            message="The remote service could not be reached.",
            suggestion="Your data is being kept on this device for now.",
            severity=ErrorSeverity.MEDIUM,
        )

    if isinstance(exception, StorageFailureError):
        return ErrorResponse(
            code=ErrorCode.ERR_STORAGE_FAILURE,
            message="Your tasks could not be saved.",
            suggestion="Please try again. If the problem persists, check available disk space.",
            severity=ErrorSeverity.CRITICAL,
        )

    return ErrorResponse(
        code=ErrorCode.ERR_UNKNOWN,
        message="An unexpected error occurred.",
        suggestion="Please try again later.",
        severity=ErrorSeverity.MEDIUM,
    )

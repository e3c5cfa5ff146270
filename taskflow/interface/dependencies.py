"""FastAPI dependencies resolving the services held on app state."""

from typing import Annotated

from fastapi import Depends, Request

from taskflow.domain.user import User
from taskflow.services.auth_service import AuthService
from taskflow.services.task_service import TaskService


def get_task_service(request: Request) -> TaskService:
    """Return the application's TaskService."""
    return request.app.state.task_service


def get_auth_service(request: Request) -> AuthService:
    """Return the application's AuthService."""
    return request.app.state.auth_service


def require_user(auth_service: Annotated[AuthService, Depends(get_auth_service)]) -> User:
    """Return the current user.

    Raises:
        PermissionError: If nobody is logged in
    """
    user = auth_service.current_user
    if user is None:
        raise PermissionError("Not logged in")
    return user


TaskServiceDep = Annotated[TaskService, Depends(get_task_service)]
AuthServiceDep = Annotated[AuthService, Depends(get_auth_service)]
CurrentUserDep = Annotated[User, Depends(require_user)]

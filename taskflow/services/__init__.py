from taskflow.services.auth_service import AuthService
from taskflow.services.task_service import TaskService


__all__ = [
    "AuthService",
    "TaskService",
]

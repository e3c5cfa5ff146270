"""Auth endpoints."""

from typing import Any

from fastapi import APIRouter, status
from pydantic import BaseModel

from taskflow.interface.dependencies import AuthServiceDep
from taskflow.services.auth_service import AuthService


router = APIRouter(prefix="/auth", tags=["auth"])


class Credentials(BaseModel):
    """Email/password pair."""

    email: str
    password: str


def _session_payload(auth_service: AuthService) -> dict[str, Any]:
    user = auth_service.current_user
    return {
        "user": user.model_dump() if user else None,
        "is_using_local_storage": auth_service.is_using_local_storage,
    }


@router.post("/signup", status_code=status.HTTP_201_CREATED)
async def signup(body: Credentials, auth_service: AuthServiceDep) -> dict[str, Any]:
    """Register and log in."""
    await auth_service.signup(body.email, body.password)
    return _session_payload(auth_service)


@router.post("/login")
async def login(body: Credentials, auth_service: AuthServiceDep) -> dict[str, Any]:
    """Log in."""
    await auth_service.login(body.email, body.password)
    return _session_payload(auth_service)


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
async def logout(auth_service: AuthServiceDep) -> None:
    """Log out and clear the stored session."""
    await auth_service.logout()


@router.get("/me")
async def me(auth_service: AuthServiceDep) -> dict[str, Any]:
    """Return the current session."""
    return _session_payload(auth_service)

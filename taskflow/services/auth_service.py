"""Auth service: session establishment with per-call remote-then-local fallback."""

import logging

from taskflow.backends.base import StorageBackend
from taskflow.core.errors import BackendUnavailableError
from taskflow.core.logging import span
from taskflow.domain.user import User, validate_credentials


logger = logging.getLogger(__name__)


class AuthService:
    """Tracks the current user and which backend authenticated them.

    Unlike TaskService there is no sticky mode: every call tries the remote
    backend first and falls back to the local one if it fails.
    """

    def __init__(self, *, remote: StorageBackend, local: StorageBackend) -> None:
        """Initialize with the two backends."""
        self._remote = remote
        self._local = local
        self._current_user: User | None = None
        self._using_local_storage = False

    @property
    def current_user(self) -> User | None:
        """The logged-in user, if any."""
        return self._current_user

    @property
    def is_using_local_storage(self) -> bool:
        """True when the current session was established by the local backend."""
        return self._using_local_storage

    def _set_session(self, user: User | None, *, local: bool) -> None:
        self._current_user = user
        self._using_local_storage = local and user is not None

    async def signup(self, email: str, password: str) -> User:
        """Register a new user and make them current.

        Raises:
            ValidationError: If the credentials fail validation
        """
        with span("auth_service.signup"):
            validate_credentials(email, password, signup=True)
            email = email.strip()

            try:
                user = await self._remote.signup_user(email, password)
                self._set_session(user, local=False)
            except BackendUnavailableError as e:
                logger.warning("Remote signup failed, using local storage", extra={"error": str(e)})
                user = await self._local.signup_user(email, password)
                self._set_session(user, local=True)

            logger.info("User signed up", extra={"user_id": user.uid, "local": self._using_local_storage})
            return user

    async def login(self, email: str, password: str) -> User:
        """Log a user in and make them current.

        Raises:
            ValidationError: If the credentials fail validation
        """
        with span("auth_service.login"):
            validate_credentials(email, password)
            email = email.strip()

            try:
                user = await self._remote.login_user(email, password)
                self._set_session(user, local=False)
            except BackendUnavailableError as e:
                logger.warning("Remote login failed, using local storage", extra={"error": str(e)})
                user = await self._local.login_user(email, password)
                self._set_session(user, local=True)

            logger.info("User logged in", extra={"user_id": user.uid, "local": self._using_local_storage})
            return user

    async def logout(self) -> None:
        """End the session on the backend that established it and clear the stored user."""
        with span("auth_service.logout"):
            try:
                if self._current_user is not None and not self._using_local_storage:
                    await self._remote.logout_user()
            except BackendUnavailableError as e:
                logger.warning("Remote logout failed", extra={"error": str(e)})
            finally:
                await self._local.logout_user()
                self._set_session(None, local=False)

            logger.info("User logged out")

    async def restore_session(self) -> User | None:
        """Resume a remote session if one exists, else a locally stored user."""
        with span("auth_service.restore_session"):
            try:
                user = await self._remote.get_current_user()
            except BackendUnavailableError as e:
                logger.warning("Remote session check failed, using local storage", extra={"error": str(e)})
                user = None

            if user is not None:
                self._set_session(user, local=False)
                return user

            local_user = await self._local.get_current_user()
            self._set_session(local_user, local=True)
            return local_user

"""Configuration management for taskflow."""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # PocketBase Configuration
    pocketbase_url: str | None = Field(
        default="http://127.0.0.1:8090",
        description="PocketBase server URL (unset to run on the local store only)",
    )
    pocketbase_admin_email: str | None = Field(default=None, description="PocketBase admin email for schema sync")
    pocketbase_admin_password: str | None = Field(default=None, description="PocketBase admin password for schema sync")
    remote_timeout_seconds: float = Field(
        default=10.0,
        description="Upper bound for a single remote call; exceeding it counts as a remote failure",
    )

    # Local store Configuration
    sqlite_db_path: str = Field(
        default="data/taskflow.db",
        description="SQLite file backing the on-device store (':memory:' keeps it in process memory)",
    )

    # Pydantic Logfire Configuration (optional)
    logfire_token: str | None = Field(default=None, description="Pydantic Logfire token for observability")
    environment: str = Field(default="development", description="Deployment environment name reported to Logfire")

    def require_credential(self, field_name: str, service_name: str) -> str:
        """Validate that a required credential is set, raising a clear error if missing.

        Args:
            field_name: Name of the field to check
            service_name: Human-readable service name for error message

        Returns:
            The credential value

        Raises:
            ValueError: If the credential is None or empty
        """
        value = getattr(self, field_name)
        if not value:
            raise ValueError(
                f"{service_name} credential not configured. "
                f"Set {field_name.upper()} environment variable or add to .env file."
            )
        return value


# Application Constants
class Constants:
    """Application-wide constants."""

    # Pagination
    TASKS_PER_PAGE: int = 6

    # Task field limits
    TITLE_MIN_LENGTH: int = 3
    TITLE_MAX_LENGTH: int = 100
    DESCRIPTION_MAX_LENGTH: int = 500

    # Auth
    MIN_PASSWORD_LENGTH: int = 6

    # Local store keys
    TASKS_KEY: str = "taskflow_tasks"
    USER_KEY: str = "taskflow_user"

    # Remote collections
    TASKS_COLLECTION: str = "tasks"
    USERS_COLLECTION: str = "users"

    # HTTP Status Codes
    HTTP_NOT_FOUND: int = 404


def get_settings() -> Settings:
    """Get application settings (singleton pattern)."""
    return Settings()


# Global settings instance
settings = get_settings()

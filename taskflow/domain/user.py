"""User domain models."""

import re

from pydantic import BaseModel, Field, field_validator, model_validator

from taskflow.core.config import Constants
from taskflow.core.errors import ValidationError


EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def display_name_from_email(email: str) -> str:
    """Derive a display name from the local part of an email address."""
    return email.split("@", 1)[0]


def validate_credentials(email: str, password: str, *, signup: bool = False) -> None:
    """Check credentials before any backend sees them.

    Raises:
        ValidationError: If email or password is empty, the email is malformed,
            or (on signup) the password is shorter than the minimum
    """
    if not email or not password:
        raise ValidationError("Email and password are required")

    if not EMAIL_PATTERN.match(email.strip()):
        raise ValidationError("Email must be a valid email address")

    if signup and len(password) < Constants.MIN_PASSWORD_LENGTH:
        raise ValidationError(f"Password must be at least {Constants.MIN_PASSWORD_LENGTH} characters")


class User(BaseModel):
    """Authenticated principal."""

    uid: str = Field(..., description="Unique user ID")
    email: str = Field(..., description="Email address")
    display_name: str | None = Field(default=None, description="Display name, derived from email when absent")

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        """Validate the email looks like an address."""
        v = v.strip()
        if not EMAIL_PATTERN.match(v):
            raise ValueError("Email must be a valid email address")
        return v

    @model_validator(mode="after")
    def default_display_name(self) -> "User":
        """Fill display_name from the email local part when missing."""
        if not self.display_name:
            self.display_name = display_name_from_email(self.email)
        return self

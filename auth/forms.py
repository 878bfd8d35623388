"""
auth/forms.py -- Input shapes and the result envelope for the auth use cases.

SignInForm / SignUpForm validate raw form values. Every check raises a
PydanticCustomError so the message a user sees is exactly the text given
here, with no "Value error, " prefix. field_errors() flattens a
ValidationError into the {field: [messages]} map that forms render next to
each input. Field names in that map are the form's own names (the alias
"confirmPassword", not the Python attribute).

ActionResponse is the envelope every signin/signup call returns:
  {success, message, errors?, error?}
Absent keys are dropped when serialized (to_dict), so callers can test for
their presence.
"""

from __future__ import annotations

from typing import Any

from email_validator import EmailNotValidError, validate_email
from pydantic import BaseModel, ConfigDict, Field, ValidationError, ValidationInfo, field_validator
from pydantic_core import PydanticCustomError

MIN_PASSWORD_LENGTH = 6


def _blank_if_missing(value: Any) -> Any:
    return "" if value is None else value


def normalize_email(value: str) -> str:
    """Canonical stored form of an email: surrounding whitespace removed, lower-case."""
    return value.strip().lower()


def _check_email(value: str) -> str:
    email = normalize_email(value)
    if not email:
        raise PydanticCustomError("required", "Email is required")
    try:
        # Syntax only; no DNS lookups on the signin path.
        validate_email(email, check_deliverability=False)
    except EmailNotValidError:
        raise PydanticCustomError("email_format", "Invalid email format") from None
    return email


class SignInForm(BaseModel):
    model_config = ConfigDict(validate_default=True)

    email: str = ""
    password: str = ""

    @field_validator("email", "password", mode="before")
    @classmethod
    def blank_if_missing(cls, value: Any) -> Any:
        return _blank_if_missing(value)

    @field_validator("email")
    @classmethod
    def email_shape(cls, value: str) -> str:
        return _check_email(value)

    @field_validator("password")
    @classmethod
    def password_present(cls, value: str) -> str:
        if not value:
            raise PydanticCustomError("required", "Password is required")
        return value


class SignUpForm(BaseModel):
    """Signup input.

    confirm_password is checked after password (field order matters): the
    mismatch check only runs when password itself was valid, and the error
    always lands on confirmPassword.
    """

    model_config = ConfigDict(validate_default=True, populate_by_name=True)

    email: str = ""
    password: str = ""
    confirm_password: str = Field("", alias="confirmPassword")

    @field_validator("email", "password", "confirm_password", mode="before")
    @classmethod
    def blank_if_missing(cls, value: Any) -> Any:
        return _blank_if_missing(value)

    @field_validator("email")
    @classmethod
    def email_shape(cls, value: str) -> str:
        return _check_email(value)

    @field_validator("password")
    @classmethod
    def password_length(cls, value: str) -> str:
        if len(value) < MIN_PASSWORD_LENGTH:
            raise PydanticCustomError(
                "min_length",
                "Password must be at least {min_length} characters",
                {"min_length": MIN_PASSWORD_LENGTH},
            )
        return value

    @field_validator("confirm_password")
    @classmethod
    def passwords_match(cls, value: str, info: ValidationInfo) -> str:
        if not value:
            raise PydanticCustomError("required", "Please confirm your password")
        password = info.data.get("password")
        if password is not None and value != password:
            raise PydanticCustomError("mismatch", "Passwords don't match")
        return value


def field_errors(exc: ValidationError) -> dict[str, list[str]]:
    """Flatten a ValidationError into {field: [messages]} in report order."""
    errors: dict[str, list[str]] = {}
    for err in exc.errors():
        field = str(err["loc"][0]) if err["loc"] else "form"
        errors.setdefault(field, []).append(err["msg"])
    return errors


class ActionResponse(BaseModel):
    """Result envelope of signin and signup."""

    model_config = ConfigDict(frozen=True)

    success: bool
    message: str
    errors: dict[str, list[str]] | None = None
    error: str | None = None

    @classmethod
    def validation_failed(cls, exc: ValidationError) -> "ActionResponse":
        return cls(success=False, message="Validation failed", errors=field_errors(exc))

    def to_dict(self) -> dict:
        return self.model_dump(exclude_none=True)

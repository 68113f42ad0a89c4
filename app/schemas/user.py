"""Pydantic schemas for account payloads."""

import re
from datetime import datetime

from pydantic import BaseModel, EmailStr, Field, field_validator

from app.models.user import UserRole

PASSWORD_PATTERN = re.compile(r"(?=.*[a-z])(?=.*[A-Z])(?=.*\d)(?=.*[^\da-zA-Z]).{8,}")
PASSWORD_MAX_BYTES = 72


def check_password_strength(value: str) -> str:
    """Require 8+ chars with lower, upper, digit and special character."""
    if not PASSWORD_PATTERN.fullmatch(value):
        raise ValueError(
            "Password must be at least 8 characters long and contain at least one uppercase letter, "
            "one lowercase letter, one number, and one special character"
        )
    if len(value.encode("utf-8")) > PASSWORD_MAX_BYTES:
        raise ValueError(f"Password must be at most {PASSWORD_MAX_BYTES} bytes")
    return value


class UserResponse(BaseModel):
    """Public view of an account. Never carries credential fields."""

    id: str
    email: str
    first_name: str | None
    last_name: str | None
    role: str
    is_active: bool
    created_at: datetime
    updated_at: datetime
    last_login_at: datetime | None
    password_changed_at: datetime | None
    deleted_at: datetime | None = None

    model_config = {"from_attributes": True}


class UserListResponse(BaseModel):
    results: int
    users: list[UserResponse]


class CreateUserRequest(BaseModel):
    email: EmailStr
    password: str
    first_name: str | None = Field(default=None, min_length=2, max_length=50)
    last_name: str | None = Field(default=None, min_length=2, max_length=50)
    role: UserRole | None = None

    model_config = {"extra": "forbid", "use_enum_values": True}

    @field_validator("password")
    @classmethod
    def validate_password(cls, value: str) -> str:
        return check_password_strength(value)


class UpdateUserRequest(BaseModel):
    """Admin update payload. Password changes are not accepted."""

    email: EmailStr | None = None
    first_name: str | None = Field(default=None, min_length=2, max_length=50)
    last_name: str | None = Field(default=None, min_length=2, max_length=50)
    role: UserRole | None = None
    is_active: bool | None = None

    model_config = {"extra": "forbid", "use_enum_values": True}

"""Pydantic schemas for authentication endpoints."""

from typing import Any

from pydantic import BaseModel, EmailStr, Field, field_validator, model_validator

from app.models.user import UserRole
from app.schemas.user import UserResponse, check_password_strength
from app.services.auth import PASSWORD_FIELDS


class RegisterRequest(BaseModel):
    email: EmailStr
    password: str
    first_name: str | None = Field(default=None, min_length=2, max_length=50)
    last_name: str | None = Field(default=None, min_length=2, max_length=50)
    role: UserRole | None = None

    model_config = {"use_enum_values": True}

    @field_validator("password")
    @classmethod
    def validate_password(cls, value: str) -> str:
        return check_password_strength(value)


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(min_length=1)


class ForgotPasswordRequest(BaseModel):
    email: EmailStr


class ResetPasswordRequest(BaseModel):
    password: str
    password_confirm: str

    @field_validator("password")
    @classmethod
    def validate_password(cls, value: str) -> str:
        return check_password_strength(value)

    @model_validator(mode="after")
    def passwords_match(self) -> "ResetPasswordRequest":
        if self.password != self.password_confirm:
            raise ValueError("Passwords do not match")
        return self


class UpdatePasswordRequest(BaseModel):
    current_password: str = Field(min_length=1)
    new_password: str
    password_confirm: str

    @field_validator("new_password")
    @classmethod
    def validate_password(cls, value: str) -> str:
        return check_password_strength(value)

    @model_validator(mode="after")
    def passwords_match(self) -> "UpdatePasswordRequest":
        if self.new_password != self.password_confirm:
            raise ValueError("Passwords do not match")
        return self


class UpdateMeRequest(BaseModel):
    """Self-service profile update. Only these fields may change."""

    email: EmailStr | None = None
    first_name: str | None = Field(default=None, min_length=2, max_length=50)
    last_name: str | None = Field(default=None, min_length=2, max_length=50)

    model_config = {"extra": "forbid"}

    @model_validator(mode="before")
    @classmethod
    def reject_password_fields(cls, data: Any) -> Any:
        if isinstance(data, dict) and any(field in data for field in PASSWORD_FIELDS):
            raise ValueError("This route is not for password updates. Please use /update-password.")
        return data


class AuthResponse(BaseModel):
    token: str
    user: UserResponse


class SessionResponse(BaseModel):
    authenticated: bool
    user: UserResponse | None = None


class MessageResponse(BaseModel):
    message: str

"""Pydantic schemas for authentication endpoints.

JSON on the wire is camelCase; Python attributes stay snake_case.
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator
from pydantic.alias_generators import to_camel

from app.models.user import UserRole
from app.services.validators import is_valid_email


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


def _check_email(value: str) -> str:
    value = value.strip()
    if not is_valid_email(value):
        raise ValueError("Invalid email address")
    return value


def _check_confirmation(value: str, info: ValidationInfo, password_field: str) -> str:
    password = info.data.get(password_field)
    if password is not None and value != password:
        raise ValueError("Passwords don't match")
    return value


# --- Requests ---


class CompanyAddress(CamelModel):
    street: str = Field(min_length=1)
    city: str = Field(min_length=1)
    state: str = Field(min_length=1)
    zip_code: str = Field(min_length=1)
    country: str = Field(min_length=1)


class RegisterRequest(CamelModel):
    email: str
    first_name: str = Field(min_length=1, max_length=50)
    last_name: str = Field(min_length=1, max_length=50)
    password: str = Field(min_length=1, max_length=128)
    confirm_password: str = Field(min_length=1)
    company_name: str | None = None
    company_address: CompanyAddress | None = None
    company_phone: str | None = None
    company_email: str | None = None

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        return _check_email(v)

    @field_validator("company_email")
    @classmethod
    def validate_company_email(cls, v: str | None) -> str | None:
        return _check_email(v) if v is not None else None

    @field_validator("confirm_password")
    @classmethod
    def passwords_match(cls, v: str, info: ValidationInfo) -> str:
        return _check_confirmation(v, info, "password")


class LoginRequest(CamelModel):
    email: str
    password: str = Field(min_length=1, max_length=128)

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        return _check_email(v)


class RefreshTokenRequest(CamelModel):
    refresh_token: str = Field(min_length=1)


class LogoutRequest(CamelModel):
    refresh_token: str | None = None


class ForgotPasswordRequest(CamelModel):
    email: str

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        return _check_email(v)


class ResetPasswordRequest(CamelModel):
    token: str = Field(min_length=1)
    password: str = Field(min_length=1, max_length=128)
    confirm_password: str = Field(min_length=1)

    @field_validator("confirm_password")
    @classmethod
    def passwords_match(cls, v: str, info: ValidationInfo) -> str:
        return _check_confirmation(v, info, "password")


class ChangePasswordRequest(CamelModel):
    current_password: str = Field(min_length=1)
    new_password: str = Field(min_length=1, max_length=128)
    confirm_password: str = Field(min_length=1)

    @field_validator("confirm_password")
    @classmethod
    def passwords_match(cls, v: str, info: ValidationInfo) -> str:
        return _check_confirmation(v, info, "new_password")


# --- Responses ---


class AuthTokens(CamelModel):
    access_token: str
    refresh_token: str
    expires_in: int


class AuthUser(CamelModel):
    """User fields that are safe to embed in tokens and responses."""

    id: str
    email: str
    first_name: str
    last_name: str
    role: UserRole
    company_id: str | None = None
    is_active: bool


class CompanySummary(CamelModel):
    id: str
    name: str
    address: dict[str, Any] | None = None
    phone: str | None = None
    email: str | None = None
    website: str | None = None
    logo: str | None = None


class UserResponse(AuthUser):
    created_at: datetime
    updated_at: datetime
    company: CompanySummary | None = None

"""Pydantic models for API request/response."""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from domain.model.user import MAX_PASSWORD_BYTES, password_too_long


def _check_password_length(value: str) -> str:
    if password_too_long(value):
        raise ValueError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes")
    return value


class SignupRequest(BaseModel):
    """Request model for signup initiation."""
    name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    password: str = Field(..., min_length=1, max_length=MAX_PASSWORD_BYTES)

    @field_validator('password')
    @classmethod
    def password_fits_bcrypt(cls, v: str) -> str:
        return _check_password_length(v)


class LoginRequest(BaseModel):
    """Request model for user login.

    email is a plain string so malformed input gets the same
    "Invalid email or password" answer as a wrong password.
    """
    email: str
    password: str


class LoginResponse(BaseModel):
    token: str


class MessageResponse(BaseModel):
    message: str


class ForgotPasswordRequest(BaseModel):
    email: str


class ResetTokenResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    reset_token: str = Field(..., alias="resetToken")


class ResetPasswordRequest(BaseModel):
    """Request model for setting a new password with a reset token."""
    model_config = ConfigDict(populate_by_name=True)

    email: str
    reset_token: str = Field(..., alias="resetToken")
    new_password: str = Field(..., alias="newPassword", min_length=1, max_length=MAX_PASSWORD_BYTES)

    @field_validator('new_password')
    @classmethod
    def password_fits_bcrypt(cls, v: str) -> str:
        return _check_password_length(v)


class UserResponse(BaseModel):
    """Public profile of a user (never includes the password hash)."""
    id: str
    name: str
    email: str
    role: str
    created_at: datetime
    last_login: Optional[datetime] = None

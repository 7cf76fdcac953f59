"""
Authentication schemas for request/response validation.

Covers admin (session) login and customer (JWT) registration, login,
token refresh and profile management.
"""

import re
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, EmailStr, Field, field_validator


class MessageResponse(BaseModel):
    """Generic message response."""

    message: str


# ---------------------------------------------------------------------------
# Admin
# ---------------------------------------------------------------------------


class AdminLoginRequest(BaseModel):
    """Admin credentials."""

    username: str = Field(..., min_length=1, max_length=100)
    password: str = Field(..., min_length=1, max_length=128)


class AdminResponse(BaseModel):
    """Signed-in admin."""

    id: str
    username: str
    last_login_at: Optional[datetime] = None


# ---------------------------------------------------------------------------
# Customers
# ---------------------------------------------------------------------------


def _validate_phone(value: Optional[str]) -> Optional[str]:
    if value is None:
        return value
    cleaned = re.sub(r"[\s\-\(\)]", "", value)
    if not re.match(r"^\+?\d{10,15}$", cleaned):
        raise ValueError("Phone number must contain 10-15 digits")
    return cleaned


class UserRegisterRequest(BaseModel):
    """
    Schema for customer registration.

    Passwords need at least 8 characters including a letter and a digit.
    """

    name: str = Field(..., min_length=1, max_length=100, examples=["Asha Verma"])
    email: EmailStr = Field(..., examples=["asha@example.com"])
    password: str = Field(..., min_length=8, max_length=72, examples=["Secure123"])
    phone: Optional[str] = Field(None, max_length=20, examples=["+919876543210"])

    @field_validator("name")
    @classmethod
    def strip_name(cls, value: str) -> str:
        cleaned = value.strip()
        if not cleaned:
            raise ValueError("Name cannot be empty")
        return cleaned

    @field_validator("password")
    @classmethod
    def validate_password_strength(cls, value: str) -> str:
        """
        Validate password meets the minimum strength rules.

        Raises:
            ValueError: If the password lacks a letter or a digit
        """
        if not re.search(r"[A-Za-z]", value):
            raise ValueError("Password must contain at least one letter")
        if not re.search(r"\d", value):
            raise ValueError("Password must contain at least one digit")
        return value

    @field_validator("phone")
    @classmethod
    def validate_phone_format(cls, value: Optional[str]) -> Optional[str]:
        return _validate_phone(value)


class UserLoginRequest(BaseModel):
    """Customer credentials."""

    email: EmailStr
    password: str = Field(..., min_length=1, max_length=128)


class TokenRefreshRequest(BaseModel):
    """Refresh token exchange."""

    refresh_token: str = Field(..., min_length=1)


class UserProfileUpdate(BaseModel):
    """Editable profile fields; omitted fields are unchanged."""

    name: Optional[str] = Field(None, min_length=1, max_length=100)
    phone: Optional[str] = Field(None, max_length=20)

    @field_validator("phone")
    @classmethod
    def validate_phone_format(cls, value: Optional[str]) -> Optional[str]:
        return _validate_phone(value)


class UserResponse(BaseModel):
    """Customer profile."""

    id: str
    name: str
    email: EmailStr
    phone: Optional[str] = None
    is_active: bool = True
    created_at: Optional[datetime] = None
    last_login_at: Optional[datetime] = None


class TokenResponse(BaseModel):
    """Tokens issued on register/login."""

    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    user: UserResponse


class AccessTokenResponse(BaseModel):
    """Access token issued on refresh."""

    access_token: str
    token_type: str = "bearer"

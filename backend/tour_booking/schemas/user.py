"""
Pydantic schemas for user and authentication request/response validation.
"""

import re
import uuid
from datetime import datetime
from typing import Literal, Optional

from pydantic import EmailStr, Field, field_validator

from tour_booking.schemas.common import CamelModel

_PASSWORD_RULE = re.compile(r"^(?=.*[a-z])(?=.*[A-Z])(?=.*\d)")


def _check_password_strength(value: str) -> str:
    if not _PASSWORD_RULE.match(value):
        raise ValueError(
            "Password must contain at least one uppercase letter, one lowercase letter, and one number"
        )
    return value


class UserCreate(CamelModel):
    name: str = Field(..., min_length=2, max_length=100)
    email: EmailStr
    password: str = Field(..., min_length=8, max_length=128)
    phone: Optional[str] = Field(None, max_length=32)

    @field_validator("password")
    @classmethod
    def strong_password(cls, value: str) -> str:
        return _check_password_strength(value)


class AdminUserCreate(UserCreate):
    role: Literal["USER", "ADMIN", "SUPPORT"] = "USER"


class UserLogin(CamelModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class RefreshRequest(CamelModel):
    refresh_token: Optional[str] = None


class ForgotPasswordRequest(CamelModel):
    email: EmailStr


class ResetPasswordRequest(CamelModel):
    token: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=8, max_length=128)

    @field_validator("new_password")
    @classmethod
    def strong_password(cls, value: str) -> str:
        return _check_password_strength(value)


class ChangePasswordRequest(CamelModel):
    current_password: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=8, max_length=128)

    @field_validator("new_password")
    @classmethod
    def strong_password(cls, value: str) -> str:
        return _check_password_strength(value)


class UserSummary(CamelModel):
    id: uuid.UUID
    name: str
    email: str


class UserResponse(CamelModel):
    id: uuid.UUID
    name: str
    email: str
    phone: Optional[str] = None
    role: str
    is_active: bool
    profile_photo: Optional[str] = None
    created_at: datetime


class AuthPayload(CamelModel):
    user: UserResponse
    access_token: str
    refresh_token: str
    token_type: str = "bearer"


class AccessTokenPayload(CamelModel):
    access_token: str
    token_type: str = "bearer"


class ForgotPasswordPayload(CamelModel):
    message: str
    reset_token: Optional[str] = None

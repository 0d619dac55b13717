"""User domain Pydantic schemas."""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional
import re

from pydantic import EmailStr, Field, field_validator

from clicktales.common.schemas import CamelModel
from clicktales.domains.user.models import UserRole

USERNAME_PATTERN = r"^[a-zA-Z0-9_]+$"
_PASSWORD_RULE = re.compile(r"^(?=.*[a-z])(?=.*[A-Z])(?=.*\d)")


def check_password_strength(value: str) -> str:
    if not _PASSWORD_RULE.match(value):
        raise ValueError(
            "Password must contain at least one lowercase letter, "
            "one uppercase letter, and one number"
        )
    return value


@dataclass(frozen=True)
class AuthIdentity:
    """Minimal identity attached to an authenticated request."""

    id: str
    email: str
    username: str
    name: str
    role: UserRole


class UserPublic(CamelModel):
    """Outward view of a user; never carries credential material."""

    id: str
    email: str
    username: str
    name: str
    role: UserRole
    avatar: Optional[str] = None
    is_active: bool
    is_verified: bool
    two_factor_enabled: bool
    last_login_at: Optional[datetime] = None
    created_at: Optional[datetime] = None


class RegisterRequest(CamelModel):
    email: EmailStr
    username: str = Field(..., min_length=3, max_length=30, pattern=USERNAME_PATTERN)
    name: str = Field(..., min_length=2, max_length=50)
    password: str = Field(..., min_length=6, max_length=128)

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return v.lower()

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        return v.strip()

    @field_validator("password")
    @classmethod
    def password_strength(cls, v: str) -> str:
        return check_password_strength(v)


class LoginRequest(CamelModel):
    email: EmailStr
    password: str = Field(..., min_length=1)

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return v.lower()


class ProfileUpdate(CamelModel):
    name: Optional[str] = Field(None, min_length=2, max_length=50)
    username: Optional[str] = Field(None, min_length=3, max_length=30, pattern=USERNAME_PATTERN)
    avatar: Optional[str] = Field(None, max_length=500)


class ChangePasswordRequest(CamelModel):
    current_password: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=6, max_length=128)

    @field_validator("new_password")
    @classmethod
    def password_strength(cls, v: str) -> str:
        return check_password_strength(v)

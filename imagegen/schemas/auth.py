"""Request/response schemas for auth endpoints."""

import re
from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

USERNAME_MIN_LEN = 3
USERNAME_MAX_LEN = 20
PASSWORD_MIN_LEN = 6
PASSWORD_MAX_LEN = 20

# Letters, digits, underscore and CJK ideographs.
USERNAME_RE = re.compile(r"^[A-Za-z0-9_\u4e00-\u9fa5]+$")
EMAIL_RE = re.compile(r"^[A-Za-z0-9._-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,6}$")

Role = Literal["user", "admin"]
AccountStatus = Literal["active", "inactive", "banned"]


def validate_username(v: str) -> str:
    if not (USERNAME_MIN_LEN <= len(v) <= USERNAME_MAX_LEN) or not USERNAME_RE.match(v):
        raise ValueError(
            "Username may only contain letters, digits, underscores and Chinese characters, "
            f"{USERNAME_MIN_LEN}-{USERNAME_MAX_LEN} characters long"
        )
    return v


def validate_email(v: str) -> str:
    if not EMAIL_RE.match(v):
        raise ValueError("Please enter a valid email address")
    return v


def validate_password(v: str) -> str:
    if not (PASSWORD_MIN_LEN <= len(v) <= PASSWORD_MAX_LEN):
        raise ValueError(
            f"Password must be {PASSWORD_MIN_LEN}-{PASSWORD_MAX_LEN} characters long"
        )
    return v


class LoginRequest(BaseModel):
    """Credentials for login (user or admin endpoint)."""

    username: str = Field(..., min_length=1, max_length=255, description="Username")
    password: str = Field(..., min_length=1, max_length=128, description="Password")


class RegisterRequest(BaseModel):
    """New user registration (JSON body or form fields)."""

    username: str
    email: str
    password: str

    @field_validator("username")
    @classmethod
    def check_username(cls, v: str) -> str:
        return validate_username(v.strip())

    @field_validator("email")
    @classmethod
    def check_email(cls, v: str) -> str:
        return validate_email(v.strip())

    @field_validator("password")
    @classmethod
    def check_password(cls, v: str) -> str:
        return validate_password(v)


class AccountOut(BaseModel):
    """Sanitized account returned to clients (never includes the password hash)."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    username: str
    email: str
    role: Role
    status: AccountStatus
    avatar_url: str
    created_at: datetime | None = None
    last_login: datetime | None = None


class CurrentUser(BaseModel):
    """Identity resolved from a bearer token, attached to the request by the auth dependencies."""

    id: int
    username: str
    email: str
    role: Role
    status: AccountStatus | None = Field(
        default=None,
        description="Live status; only resolved for admin requests",
    )


class LoginData(BaseModel):
    """JWT access token plus the sanitized account."""

    token: str = Field(..., description="JWT access token (send as Authorization: Bearer <token>)")
    token_type: str = Field(default="bearer", description="Token type")
    user: AccountOut


class RegisterData(BaseModel):
    user_id: int
    username: str
    email: str
    avatar_url: str


class TokenValidation(BaseModel):
    valid: bool = True
    user: AccountOut

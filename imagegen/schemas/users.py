"""Schemas for profile and admin user-management endpoints."""

from datetime import datetime

from pydantic import AliasChoices, BaseModel, Field, field_validator

from imagegen.schemas.auth import (
    AccountOut,
    AccountStatus,
    validate_email,
    validate_password,
    validate_username,
)
from imagegen.schemas.images import BATCH_DELETE_MAX

USER_PERMISSIONS = ["image:read", "image:write"]
ADMIN_PERMISSIONS = [
    "user:read",
    "user:write",
    "image:read",
    "image:write",
    "admin:read",
    "admin:write",
]


class ProfileOut(AccountOut):
    """Account plus the permissions its role grants."""

    permissions: list[str]


class UserListItem(BaseModel):
    """User entry for the admin list (no password)."""

    id: int
    username: str
    email: str
    role: str
    status: str
    avatar_url: str | None = None
    image_count: int = 0
    created_at: datetime | None = None
    last_login: datetime | None = None


class UsersPage(BaseModel):
    """Paginated response for GET /admin/users."""

    items: list[UserListItem]
    total: int
    page: int
    page_size: int
    total_pages: int


class UserUpdateRequest(BaseModel):
    """Partial update applied by an admin; omitted fields are left unchanged."""

    username: str | None = None
    email: str | None = None
    status: AccountStatus | None = None
    password: str | None = None

    @field_validator("username")
    @classmethod
    def check_username(cls, v: str | None) -> str | None:
        return None if v is None else validate_username(v.strip())

    @field_validator("email")
    @classmethod
    def check_email(cls, v: str | None) -> str | None:
        return None if v is None else validate_email(v.strip())

    @field_validator("password")
    @classmethod
    def check_password(cls, v: str | None) -> str | None:
        return None if v is None else validate_password(v)


class DeletedUser(BaseModel):
    deleted_id: int = Field(..., description="Id of the removed user")
    username: str


class UserCreateRequest(BaseModel):
    """Account created by an admin; the same rules as self-registration."""

    username: str
    email: str
    password: str
    status: AccountStatus = "active"

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


class UserBatchDeleteRequest(BaseModel):
    """Ids of users to delete; ``userIds`` is accepted as an alternative key."""

    ids: list[int] = Field(
        ...,
        min_length=1,
        max_length=BATCH_DELETE_MAX,
        validation_alias=AliasChoices("ids", "userIds"),
    )

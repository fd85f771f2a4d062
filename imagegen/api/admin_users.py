"""User management for administrators (/admin/users). Every route runs require_admin."""

import logging
import math
from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy import func, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from imagegen.api.deps import require_admin
from imagegen.core.database import get_db
from imagegen.core.errors import ConflictError, NotFoundError
from imagegen.core.responses import success
from imagegen.core.security import hash_password
from imagegen.models import Image, User
from imagegen.schemas.auth import AccountOut, AccountStatus, CurrentUser
from imagegen.schemas.common import ApiResponse
from imagegen.schemas.images import BatchDeleteData, DeleteFailure
from imagegen.schemas.users import (
    DeletedUser,
    UserBatchDeleteRequest,
    UserCreateRequest,
    UserListItem,
    UsersPage,
    UserUpdateRequest,
)
from imagegen.services.accounts import to_account_out

logger = logging.getLogger(__name__)
router = APIRouter(dependencies=[Depends(require_admin)])

PAGE_SIZE_MAX = 100


def _get_user(db: Session, user_id: int) -> User:
    user = db.query(User).filter(User.id == user_id).first()
    if user is None:
        raise NotFoundError("User does not exist")
    return user


def _ensure_unique(
    db: Session,
    *,
    username: str | None = None,
    email: str | None = None,
    exclude_id: int | None = None,
) -> None:
    """Raise ConflictError if another user already has this username or email."""
    if username is not None:
        query = db.query(User.id).filter(User.username == username)
        if exclude_id is not None:
            query = query.filter(User.id != exclude_id)
        if query.first():
            raise ConflictError("Username already exists")
    if email is not None:
        query = db.query(User.id).filter(User.email == email)
        if exclude_id is not None:
            query = query.filter(User.id != exclude_id)
        if query.first():
            raise ConflictError("Email already registered")


@router.get("", response_model=ApiResponse[UsersPage])
def list_users(
    request: Request,
    db: Annotated[Session, Depends(get_db)],
    page: Annotated[int, Query()] = 1,
    page_size: Annotated[int, Query()] = 10,
    keyword: Annotated[str | None, Query(max_length=100)] = None,
    status: Annotated[AccountStatus | None, Query()] = None,
) -> ApiResponse:
    """List users newest first, optionally filtered by username/email keyword and status."""
    page = max(1, page)
    page_size = min(max(1, page_size), PAGE_SIZE_MAX)
    query = db.query(User)
    if keyword and keyword.strip():
        pattern = f"%{keyword.strip()}%"
        query = query.filter(or_(User.username.like(pattern), User.email.like(pattern)))
    if status:
        query = query.filter(User.status == status)
    total = query.count()
    users = (
        query.order_by(User.created_at.desc(), User.id.desc())
        .offset((page - 1) * page_size)
        .limit(page_size)
        .all()
    )
    counts: dict[int, int] = {}
    if users:
        counts = dict(
            db.query(Image.user_id, func.count(Image.id))
            .filter(Image.user_id.in_([u.id for u in users]))
            .group_by(Image.user_id)
            .all()
        )
    items = [
        UserListItem(
            id=u.id,
            username=u.username,
            email=u.email,
            role="user",
            status=u.status or "active",
            avatar_url=u.avatar_url,
            image_count=counts.get(u.id, 0),
            created_at=u.created_at,
            last_login=u.last_login,
        )
        for u in users
    ]
    data = UsersPage(
        items=items,
        total=total,
        page=page,
        page_size=page_size,
        total_pages=math.ceil(total / page_size),
    )
    return success(request, data)


@router.post("", response_model=ApiResponse[AccountOut], status_code=201)
def create_user(
    request: Request,
    body: UserCreateRequest,
    db: Annotated[Session, Depends(get_db)],
    admin: Annotated[CurrentUser, Depends(require_admin)],
) -> ApiResponse:
    """Create a regular user with the given status. 409 if the username or email is taken."""
    _ensure_unique(db, username=body.username, email=body.email)
    user = User(
        username=body.username,
        email=body.email,
        password_hash=hash_password(body.password),
        role="user",
        status=body.status,
    )
    db.add(user)
    try:
        db.commit()
    except IntegrityError as e:
        db.rollback()
        raise ConflictError("Username or email already exists") from e
    db.refresh(user)
    logger.info("Admin created user", extra={"admin_id": admin.id, "user_id": user.id})
    return success(request, to_account_out(user), "User created")


@router.post("/batch-delete", response_model=ApiResponse[BatchDeleteData])
def batch_delete_users(
    request: Request,
    body: UserBatchDeleteRequest,
    db: Annotated[Session, Depends(get_db)],
    admin: Annotated[CurrentUser, Depends(require_admin)],
) -> ApiResponse:
    """Delete up to 50 users with their image history; unknown ids are reported back."""
    wanted = list(dict.fromkeys(body.ids))
    found = {u.id: u for u in db.query(User).filter(User.id.in_(wanted)).all()}
    deleted: list[int] = []
    failed: list[DeleteFailure] = []
    for user_id in wanted:
        user = found.get(user_id)
        if user is None:
            failed.append(DeleteFailure(id=user_id, reason="User does not exist"))
            continue
        db.delete(user)
        deleted.append(user_id)
    db.commit()
    logger.info(
        "Admin deleted users",
        extra={"admin_id": admin.id, "deleted": len(deleted), "failed": len(failed)},
    )
    data = BatchDeleteData(deleted_ids=deleted, failed=failed)
    return success(request, data, f"Deleted {len(deleted)} users")


@router.get("/{user_id}", response_model=ApiResponse[AccountOut])
def get_user(
    request: Request,
    user_id: int,
    db: Annotated[Session, Depends(get_db)],
) -> ApiResponse:
    return success(request, to_account_out(_get_user(db, user_id)))


@router.put("/{user_id}", response_model=ApiResponse[AccountOut])
def update_user(
    request: Request,
    user_id: int,
    body: UserUpdateRequest,
    db: Annotated[Session, Depends(get_db)],
    admin: Annotated[CurrentUser, Depends(require_admin)],
) -> ApiResponse:
    """
    Update username, email, status and/or password. A status change (e.g. to
    'banned') only blocks new logins when USER_LOGIN_REQUIRES_ACTIVE is on;
    tokens already issued to the user stay valid until they expire.
    """
    user = _get_user(db, user_id)
    if body.username is not None and body.username != user.username:
        _ensure_unique(db, username=body.username, exclude_id=user_id)
        user.username = body.username
    if body.email is not None and body.email != user.email:
        _ensure_unique(db, email=body.email, exclude_id=user_id)
        user.email = body.email
    if body.status is not None:
        user.status = body.status
    if body.password is not None:
        user.password_hash = hash_password(body.password)
    db.commit()
    db.refresh(user)
    logger.info(
        "Admin updated user",
        extra={
            "admin_id": admin.id,
            "user_id": user.id,
            "fields": ",".join(sorted(body.model_dump(exclude_none=True))),
        },
    )
    return success(request, to_account_out(user), "User updated")


@router.delete("/{user_id}", response_model=ApiResponse[DeletedUser])
def delete_user(
    request: Request,
    user_id: int,
    db: Annotated[Session, Depends(get_db)],
    admin: Annotated[CurrentUser, Depends(require_admin)],
) -> ApiResponse:
    """Delete a user and their image history."""
    user = _get_user(db, user_id)
    username = user.username
    db.delete(user)
    db.commit()
    logger.info("Admin deleted user", extra={"admin_id": admin.id, "user_id": user_id})
    return success(request, DeletedUser(deleted_id=user_id, username=username), "User deleted")

"""Registration and login for the two account kinds (users and admins).

User login and admin login are separate operations against separate tables.
Both update ``last_login`` and issue a 7-day access token; neither ever returns
the password hash.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from imagegen.core.errors import ConflictError, ForbiddenError, NotFoundError, UnauthorizedError
from imagegen.core.security import create_access_token, hash_password, verify_password
from imagegen.models import Admin, User
from imagegen.models.user import DEFAULT_AVATAR_URL
from imagegen.schemas.auth import AccountOut, RegisterRequest

if TYPE_CHECKING:
    from imagegen.core.config import Settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IssuedToken:
    """A freshly signed token and the sanitized account it was issued for."""

    token: str
    account: AccountOut


def account_role(account: User | Admin) -> str:
    """The role an account acts with. Decided by its table; users.role is never trusted."""
    return "admin" if isinstance(account, Admin) else "user"


def to_account_out(account: User | Admin) -> AccountOut:
    """Build the client-facing view of an account (no password hash, default avatar)."""
    return AccountOut(
        id=account.id,
        username=account.username,
        email=account.email,
        role=account_role(account),
        status=account.status or "active",
        avatar_url=account.avatar_url or DEFAULT_AVATAR_URL,
        created_at=account.created_at,
        last_login=account.last_login,
    )


def register_user(db: Session, body: RegisterRequest) -> User:
    """
    Create a regular user. Raises ConflictError if the username or email is taken.
    The caller owns the avatar; this only persists the account row.
    """
    existing = (
        db.query(User)
        .filter(or_(User.username == body.username, User.email == body.email))
        .first()
    )
    if existing is not None:
        if existing.username == body.username:
            raise ConflictError("Username already exists")
        raise ConflictError("Email already registered")

    user = User(
        username=body.username,
        email=body.email,
        password_hash=hash_password(body.password),
        role="user",
        status="active",
    )
    db.add(user)
    try:
        db.commit()
    except IntegrityError as e:
        # Concurrent registration won the race between the check and the insert.
        db.rollback()
        raise ConflictError("Username or email already exists") from e
    db.refresh(user)
    logger.info("User registered", extra={"user_id": user.id, "username": user.username})
    return user


def _issue(db: Session, account: User | Admin) -> IssuedToken:
    account.last_login = datetime.now(UTC)
    db.commit()
    db.refresh(account)
    token = create_access_token(
        sub=account.id,
        username=account.username,
        email=account.email,
        role=account_role(account),
    )
    return IssuedToken(token=token, account=to_account_out(account))


def authenticate_user(
    db: Session,
    username: str,
    password: str,
    settings: Settings,
) -> IssuedToken:
    """
    Log in a regular user.

    404 if the username is unknown, 401 on a wrong password. The account status
    is only checked when USER_LOGIN_REQUIRES_ACTIVE is enabled.
    """
    user = db.query(User).filter(User.username == username).first()
    if user is None:
        logger.info("Login failed: unknown user", extra={"username": username, "kind": "user"})
        raise NotFoundError("User does not exist")
    if settings.USER_LOGIN_REQUIRES_ACTIVE and user.status != "active":
        logger.info(
            "Login refused: account not active",
            extra={"username": username, "kind": "user", "status": user.status},
        )
        raise ForbiddenError("User account is disabled")
    if not verify_password(password, user.password_hash):
        logger.info("Login failed: wrong password", extra={"username": username, "kind": "user"})
        raise UnauthorizedError("Incorrect password")
    issued = _issue(db, user)
    logger.info("Login succeeded", extra={"user_id": user.id, "kind": "user"})
    return issued


def authenticate_admin(db: Session, username: str, password: str) -> IssuedToken:
    """
    Log in an administrator from the admins table.

    404 if unknown, 403 if the account is not active (checked before the
    password), 401 on a wrong password.
    """
    admin = db.query(Admin).filter(Admin.username == username).first()
    if admin is None:
        logger.info("Login failed: unknown admin", extra={"username": username, "kind": "admin"})
        raise NotFoundError("Admin account does not exist")
    if admin.status != "active":
        logger.info(
            "Login refused: admin disabled",
            extra={"username": username, "kind": "admin", "status": admin.status},
        )
        raise ForbiddenError("Admin account is disabled")
    if not verify_password(password, admin.password_hash):
        logger.info("Login failed: wrong password", extra={"username": username, "kind": "admin"})
        raise UnauthorizedError("Incorrect password")
    issued = _issue(db, admin)
    logger.info("Login succeeded", extra={"user_id": admin.id, "kind": "admin"})
    return issued


def get_account(db: Session, account_id: int, role: str) -> User | Admin | None:
    """Load the account a token refers to; the role claim selects the table."""
    model = Admin if role == "admin" else User
    return db.query(model).filter(model.id == account_id).first()

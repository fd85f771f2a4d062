"""Bearer-token auth dependencies: require_user, require_admin and optional_user.

- require_user: token must be present (401) and valid (403); no database access.
- require_admin: as require_user, then the token's subject must be an active
  row in the admins table, re-checked on every request (403 otherwise).
- optional_user: never fails; anonymous callers resolve to None.

A header without the Bearer scheme or with an empty token counts as absent.
"""

import logging
from typing import Annotated, Any

import jwt
from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import ValidationError
from sqlalchemy.orm import Session

from imagegen.core.database import get_db
from imagegen.core.errors import ForbiddenError, UnauthorizedError
from imagegen.core.security import decode_access_token
from imagegen.models import Admin
from imagegen.schemas.auth import CurrentUser

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)

BearerCredentials = Annotated[HTTPAuthorizationCredentials | None, Depends(security)]


class InvalidTokenError(Exception):
    """Token present but its signature, expiry or claims are unusable."""


def claims_to_user(payload: dict[str, Any]) -> CurrentUser:
    """Map decoded JWT claims to CurrentUser. Raises InvalidTokenError on bad claims."""
    try:
        user_id = int(payload["sub"])
        return CurrentUser(
            id=user_id,
            username=payload["username"],
            email=payload["email"],
            role=payload["role"],
        )
    except (KeyError, TypeError, ValueError, ValidationError) as e:
        raise InvalidTokenError("Invalid token payload") from e


def resolve_token(token: str) -> CurrentUser:
    """Verify signature and expiry, then map claims. Raises InvalidTokenError."""
    try:
        payload = decode_access_token(token)
    except jwt.PyJWTError as e:
        raise InvalidTokenError(str(e)) from e
    return claims_to_user(payload)


def _authenticate(credentials: HTTPAuthorizationCredentials | None) -> CurrentUser:
    if credentials is None or not credentials.credentials.strip():
        raise UnauthorizedError("Access token is missing")
    try:
        return resolve_token(credentials.credentials.strip())
    except InvalidTokenError as e:
        logger.info("Rejected access token", extra={"reason": str(e)[:200]})
        raise ForbiddenError("Access token is invalid or expired") from e


def require_user(request: Request, credentials: BearerCredentials) -> CurrentUser:
    """Dependency: require a valid bearer token. 401 if missing, 403 if invalid or expired."""
    user = _authenticate(credentials)
    request.state.user = user
    return user


def require_admin(
    request: Request,
    credentials: BearerCredentials,
    db: Annotated[Session, Depends(get_db)],
) -> CurrentUser:
    """
    Dependency: require a valid admin token whose subject is an active admin right now.
    Status is read from the database on every call, so disabling an admin takes
    effect on their next request.
    """
    claims = _authenticate(credentials)
    # User and admin ids come from different tables and can collide.
    admin = None
    if claims.role == "admin":
        admin = db.query(Admin).filter(Admin.id == claims.id).first()
    if admin is None:
        raise ForbiddenError("Insufficient privileges: admin access required")
    if admin.status != "active":
        logger.info(
            "Rejected disabled admin",
            extra={"admin_id": admin.id, "status": admin.status},
        )
        raise ForbiddenError("Admin account is disabled")
    user = claims.model_copy(update={"role": "admin", "status": admin.status})
    request.state.user = user
    return user


def optional_user(request: Request, credentials: BearerCredentials) -> CurrentUser | None:
    """Dependency: resolve the caller if a valid token is sent; otherwise None (anonymous)."""
    user: CurrentUser | None = None
    if credentials is not None and credentials.credentials.strip():
        try:
            user = resolve_token(credentials.credentials.strip())
        except InvalidTokenError:
            user = None
    request.state.user = user
    return user


def require_member(user: Annotated[CurrentUser, Depends(require_user)]) -> CurrentUser:
    """Dependency: require_user restricted to regular user tokens (routes that own user data)."""
    if user.role != "user":
        raise ForbiddenError("This endpoint is only available to user accounts")
    return user

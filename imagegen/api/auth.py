"""User registration, login and token validation (/api/auth/*)."""

import json
import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Request
from pydantic import ValidationError
from sqlalchemy.orm import Session
from starlette.datastructures import UploadFile

from imagegen.api.deps import require_user
from imagegen.core.config import get_settings
from imagegen.core.database import get_db
from imagegen.core.errors import BadRequestError, NotFoundError, UnsupportedMediaTypeError
from imagegen.core.responses import success
from imagegen.models.user import DEFAULT_AVATAR_URL
from imagegen.schemas.auth import (
    CurrentUser,
    LoginData,
    LoginRequest,
    RegisterData,
    RegisterRequest,
    TokenValidation,
)
from imagegen.schemas.common import ApiResponse
from imagegen.services.accounts import (
    authenticate_user,
    get_account,
    register_user,
    to_account_out,
)
from imagegen.services.avatars import read_avatar, store_avatar

logger = logging.getLogger(__name__)
router = APIRouter()

REGISTER_FIELDS = ("username", "email", "password")
FORM_CONTENT_TYPES = ("multipart/form-data", "application/x-www-form-urlencoded")


def _first_error_message(exc: ValidationError) -> str:
    """Human-readable message of the first failed field."""
    errors = exc.errors()
    if not errors:
        return "Invalid registration data"
    msg = str(errors[0].get("msg", "Invalid registration data"))
    return msg.removeprefix("Value error, ")


async def _read_registration(request: Request) -> tuple[RegisterRequest, UploadFile | None]:
    """Read registration fields from a JSON body or a (multipart) form with an optional avatar."""
    content_type = request.headers.get("content-type", "").split(";")[0].strip().lower()
    avatar: UploadFile | None = None
    if content_type in FORM_CONTENT_TYPES:
        form = await request.form()
        raw = {name: form.get(name) for name in REGISTER_FIELDS}
        candidate = form.get("avatar")
        if isinstance(candidate, UploadFile) and candidate.filename:
            avatar = candidate
    elif content_type in ("application/json", ""):
        try:
            raw = await request.json()
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise BadRequestError(f"Invalid JSON: {e!s}") from e
        if not isinstance(raw, dict):
            raise BadRequestError("JSON body must be an object.")
    else:
        raise UnsupportedMediaTypeError(
            "Content-Type must be application/json or multipart/form-data."
        )

    if any(not isinstance(raw.get(name), str) or not raw.get(name) for name in REGISTER_FIELDS):
        raise BadRequestError("Username, email and password are required")
    try:
        body = RegisterRequest.model_validate({name: raw[name] for name in REGISTER_FIELDS})
    except ValidationError as e:
        raise BadRequestError(_first_error_message(e)) from e
    return body, avatar


@router.post("/register", response_model=ApiResponse[RegisterData], status_code=201)
async def register(
    request: Request,
    db: Annotated[Session, Depends(get_db)],
) -> ApiResponse:
    """
    Register a regular user.

    - **JSON body**: `{"username", "email", "password"}`.
    - **Form upload**: the same fields as `multipart/form-data`, plus an
      optional `avatar` image file (JPG/PNG/GIF/WEBP/SVG, 5 MB by default).

    409 if the username or email is already taken.
    """
    settings = get_settings()
    body, avatar = await _read_registration(request)
    # Validate the avatar before creating the account so a bad file leaves no row behind.
    avatar_content = await read_avatar(avatar, settings) if avatar is not None else None

    user = register_user(db, body)
    avatar_url = DEFAULT_AVATAR_URL
    if avatar_content is not None:
        content, suffix = avatar_content
        try:
            user.avatar_url = store_avatar(user.id, content, suffix, settings)
            db.commit()
            avatar_url = user.avatar_url
        except OSError:
            # The account stays usable with the default avatar.
            db.rollback()
            logger.exception("Failed to store avatar", extra={"user_id": user.id})

    data = RegisterData(
        user_id=user.id,
        username=user.username,
        email=user.email,
        avatar_url=avatar_url,
    )
    return success(request, data, "Registration successful")


@router.post("/login", response_model=ApiResponse[LoginData])
def login(
    request: Request,
    body: LoginRequest,
    db: Annotated[Session, Depends(get_db)],
) -> ApiResponse:
    """
    Authenticate with username and password; returns a JWT access token valid for 7 days.
    Include the token in the Authorization header as: Bearer <token>
    """
    issued = authenticate_user(db, body.username, body.password, get_settings())
    return success(request, LoginData(token=issued.token, user=issued.account), "Login successful")


@router.post("/validate-token", response_model=ApiResponse[TokenValidation])
def validate_token(
    request: Request,
    current_user: Annotated[CurrentUser, Depends(require_user)],
    db: Annotated[Session, Depends(get_db)],
) -> ApiResponse:
    """Confirm the bearer token is valid and return the current account (404 if it was deleted)."""
    account = get_account(db, current_user.id, current_user.role)
    if account is None:
        raise NotFoundError("User does not exist")
    return success(request, TokenValidation(valid=True, user=to_account_out(account)), "Token is valid")

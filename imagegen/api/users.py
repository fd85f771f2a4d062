"""Profile of the logged-in user (/api/user/*)."""

from typing import Annotated

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from imagegen.api.deps import require_member
from imagegen.core.database import get_db
from imagegen.core.errors import NotFoundError
from imagegen.core.responses import success
from imagegen.models import User
from imagegen.schemas.auth import CurrentUser
from imagegen.schemas.common import ApiResponse
from imagegen.schemas.users import USER_PERMISSIONS, ProfileOut
from imagegen.services.accounts import to_account_out

router = APIRouter()


@router.get("/profile", response_model=ApiResponse[ProfileOut])
def get_profile(
    request: Request,
    current_user: Annotated[CurrentUser, Depends(require_member)],
    db: Annotated[Session, Depends(get_db)],
) -> ApiResponse:
    """Return the caller's account, read fresh from the database."""
    user = db.query(User).filter(User.id == current_user.id).first()
    if user is None:
        raise NotFoundError("User does not exist")
    profile = ProfileOut(**to_account_out(user).model_dump(), permissions=USER_PERMISSIONS)
    return success(request, profile)

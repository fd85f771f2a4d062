"""Admin login, token validation and profile (/auth/*), backed by the admins table."""

from typing import Annotated

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from imagegen.api.deps import require_admin
from imagegen.core.database import get_db
from imagegen.core.errors import NotFoundError
from imagegen.core.responses import success
from imagegen.models import Admin
from imagegen.schemas.auth import CurrentUser, LoginData, LoginRequest, TokenValidation
from imagegen.schemas.common import ApiResponse
from imagegen.schemas.users import ADMIN_PERMISSIONS, ProfileOut
from imagegen.services.accounts import authenticate_admin, to_account_out

router = APIRouter()


def _load_admin(db: Session, admin_id: int) -> Admin:
    admin = db.query(Admin).filter(Admin.id == admin_id).first()
    if admin is None:
        raise NotFoundError("Admin account does not exist")
    return admin


@router.post("/login", response_model=ApiResponse[LoginData])
def admin_login(
    request: Request,
    body: LoginRequest,
    db: Annotated[Session, Depends(get_db)],
) -> ApiResponse:
    """Authenticate an administrator. 403 if the admin account is not active."""
    issued = authenticate_admin(db, body.username, body.password)
    return success(request, LoginData(token=issued.token, user=issued.account), "Login successful")


@router.post("/validate-token", response_model=ApiResponse[TokenValidation])
def admin_validate_token(
    request: Request,
    admin: Annotated[CurrentUser, Depends(require_admin)],
    db: Annotated[Session, Depends(get_db)],
) -> ApiResponse:
    account = to_account_out(_load_admin(db, admin.id))
    return success(request, TokenValidation(valid=True, user=account), "Token is valid")


@router.get("/profile", response_model=ApiResponse[ProfileOut])
def admin_profile(
    request: Request,
    admin: Annotated[CurrentUser, Depends(require_admin)],
    db: Annotated[Session, Depends(get_db)],
) -> ApiResponse:
    account = to_account_out(_load_admin(db, admin.id))
    profile = ProfileOut(**account.model_dump(), permissions=ADMIN_PERMISSIONS)
    return success(request, profile)

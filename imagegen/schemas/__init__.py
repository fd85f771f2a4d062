"""Pydantic request/response schemas."""

from imagegen.schemas.auth import (
    AccountOut,
    CurrentUser,
    LoginData,
    LoginRequest,
    RegisterData,
    RegisterRequest,
    TokenValidation,
)
from imagegen.schemas.common import ApiResponse, ErrorBody, ErrorResponse
from imagegen.schemas.health import HealthResponse
from imagegen.schemas.images import (
    BatchDeleteData,
    BatchDeleteRequest,
    GenerateImageData,
    GenerateImageRequest,
    HistoryPage,
)
from imagegen.schemas.users import ProfileOut, UsersPage, UserUpdateRequest

__all__ = [
    "AccountOut",
    "ApiResponse",
    "BatchDeleteData",
    "BatchDeleteRequest",
    "CurrentUser",
    "ErrorBody",
    "ErrorResponse",
    "GenerateImageData",
    "GenerateImageRequest",
    "HealthResponse",
    "HistoryPage",
    "LoginData",
    "LoginRequest",
    "ProfileOut",
    "RegisterData",
    "RegisterRequest",
    "TokenValidation",
    "UserUpdateRequest",
    "UsersPage",
]

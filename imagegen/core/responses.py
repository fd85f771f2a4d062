"""Response envelope helpers shared by routes and exception handlers."""

from typing import Any

from fastapi import Request

from imagegen.schemas.common import ApiResponse, ErrorBody, ErrorResponse


def get_request_id(request: Request) -> str:
    rid = getattr(request.state, "request_id", None)
    return str(rid) if rid else "-"


def success(request: Request, data: Any, message: str = "") -> ApiResponse:
    return ApiResponse(data=data, message=message, request_id=get_request_id(request))


def error_payload(
    request: Request,
    *,
    status: int,
    code: str,
    message: str,
    details: Any = None,
) -> dict[str, Any]:
    return ErrorResponse(
        message=message,
        error=ErrorBody(code=code, status=status, details=details),
        request_id=get_request_id(request),
    ).model_dump(mode="json")

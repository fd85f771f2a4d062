"""Response envelope shared by every endpoint."""

from typing import Any, Generic, Literal, TypeVar

from pydantic import BaseModel, Field

DataT = TypeVar("DataT")


class ApiResponse(BaseModel, Generic[DataT]):
    """Successful response: ok is always True and data carries the payload."""

    ok: Literal[True] = True
    message: str = Field(default="", description="Human-readable outcome")
    data: DataT
    request_id: str = Field(default="-", description="Correlation id (X-Request-ID)")


class ErrorBody(BaseModel):
    code: str = Field(..., description="Machine-readable error code")
    status: int = Field(..., description="HTTP status code")
    details: Any = None


class ErrorResponse(BaseModel):
    """Failed response: ok is always False and error describes the failure."""

    ok: Literal[False] = False
    message: str
    error: ErrorBody
    request_id: str = "-"

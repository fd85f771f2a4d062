"""Health check endpoint with database connectivity check."""

from typing import Annotated

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from imagegen.core.config import get_settings
from imagegen.core.database import check_db_connected, get_db
from imagegen.core.responses import success
from imagegen.schemas.common import ApiResponse
from imagegen.schemas.health import HealthResponse

router = APIRouter()


@router.get("/health", response_model=ApiResponse[HealthResponse])
def get_health(request: Request, db: Annotated[Session, Depends(get_db)]) -> ApiResponse:
    """
    Return service health status and database connectivity.
    Used by load balancers and monitoring.
    """
    settings = get_settings()
    api_key = settings.IMAGE_API_KEY
    data = HealthResponse(
        status="ok",
        environment=settings.APP_ENV,
        database="connected" if check_db_connected(db) else "disconnected",
        image_service_configured=bool(api_key and api_key.get_secret_value().strip()),
    )
    return success(request, data)

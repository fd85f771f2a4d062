"""FastAPI application entrypoint. No business logic; only wiring, middleware and error handlers."""

from dotenv import load_dotenv

load_dotenv()

import logging
import time
from contextlib import asynccontextmanager
from pathlib import Path
from uuid import uuid4

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException

from imagegen.api import admin_router, api_router
from imagegen.core.config import settings
from imagegen.core.cors import OriginPolicy, OriginPolicyCORSMiddleware
from imagegen.core.database import SessionLocal
from imagegen.core.errors import AppError
from imagegen.core.responses import error_payload, get_request_id
from imagegen.services.bootstrap import ensure_admin

logger = logging.getLogger(__name__)
if not logging.getLogger().handlers:
    logging.basicConfig(
        level=settings.LOG_LEVEL.upper(),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )

HTTP_ERROR_CODES = {
    400: "bad_request",
    401: "unauthorized",
    403: "forbidden",
    404: "not_found",
    405: "method_not_allowed",
    409: "conflict",
}


@asynccontextmanager
async def lifespan(_: FastAPI):
    Path(settings.UPLOAD_DIR).mkdir(parents=True, exist_ok=True)
    if settings.bootstrap_admin_configured:
        db = SessionLocal()
        try:
            ensure_admin(
                db,
                settings.BOOTSTRAP_ADMIN_USERNAME,
                settings.BOOTSTRAP_ADMIN_EMAIL,
                settings.BOOTSTRAP_ADMIN_PASSWORD.get_secret_value(),
            )
        finally:
            db.close()
    yield


app = FastAPI(
    title="ImageGen API",
    version="0.1.0",
    docs_url="/docs" if settings.is_development else None,
    redoc_url="/redoc" if settings.is_development else None,
    lifespan=lifespan,
)

app.include_router(api_router)
app.include_router(admin_router)
app.mount(
    "/uploads",
    StaticFiles(directory=settings.UPLOAD_DIR, check_dir=False),
    name="uploads",
)


def _internal_error_response(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error request_id=%s", get_request_id(request), exc_info=exc)
    return JSONResponse(
        status_code=500,
        content=error_payload(
            request,
            status=500,
            code="internal_error",
            message="Internal server error",
        ),
    )


@app.middleware("http")
async def request_context_middleware(request: Request, call_next):
    request_id = request.headers.get("X-Request-ID") or uuid4().hex
    request.state.request_id = request_id
    started_at = time.perf_counter()
    try:
        response = await call_next(request)
    except Exception as exc:
        # Rendered here, inside the CORS middleware, so browsers can read the 500 body.
        response = _internal_error_response(request, exc)
    duration_ms = (time.perf_counter() - started_at) * 1000
    response.headers["X-Request-ID"] = request_id
    logger.info(
        "http_request request_id=%s method=%s path=%s status=%s duration_ms=%.2f",
        request_id,
        request.method,
        request.url.path,
        response.status_code,
        duration_ms,
    )
    return response


# Added last so it wraps everything, including error responses.
app.add_middleware(OriginPolicyCORSMiddleware, policy=OriginPolicy.from_settings(settings))


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    if isinstance(exc, AppError):
        code, message, details = exc.code, exc.message, exc.details
    else:
        code = HTTP_ERROR_CODES.get(exc.status_code, f"http_{exc.status_code}")
        message = exc.detail if isinstance(exc.detail, str) else "Request failed"
        details = None
    return JSONResponse(
        status_code=exc.status_code,
        content=error_payload(
            request,
            status=exc.status_code,
            code=code,
            message=message,
            details=details,
        ),
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    details = [
        {"loc": [str(part) for part in err.get("loc", ())], "msg": str(err.get("msg", ""))}
        for err in exc.errors()
    ]
    message = details[0]["msg"] if details else "Validation error"
    return JSONResponse(
        status_code=400,
        content=error_payload(
            request,
            status=400,
            code="validation_error",
            message=message,
            details=details,
        ),
    )


@app.get("/")
def root() -> dict[str, str]:
    """Root route; minimal payload for discovery."""
    return {"message": "ImageGen API"}

"""Browser origin policy and the CORS middleware that enforces it.

Denied origins are never rejected outright: the response simply carries no
Access-Control-Allow-Origin header, so the browser refuses to expose it to the
calling page.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable
from dataclasses import dataclass
from typing import TYPE_CHECKING

from starlette.datastructures import Headers
from starlette.middleware.cors import CORSMiddleware
from starlette.responses import PlainTextResponse, Response
from starlette.types import ASGIApp

if TYPE_CHECKING:
    from imagegen.core.config import Settings

logger = logging.getLogger(__name__)

DEV_ORIGINS = (
    "http://localhost:4173",
    "http://localhost:5173",
    "http://localhost:5174",
    "http://localhost:5175",
    "http://localhost:5176",
    "http://localhost:5177",
    "http://localhost:5178",
    "http://127.0.0.1:5173",
    "http://127.0.0.1:5174",
    "http://127.0.0.1:5175",
    "http://127.0.0.1:5176",
    "http://127.0.0.1:5177",
    "http://127.0.0.1:5178",
)

# Used only when nothing else is configured.
PRODUCTION_FALLBACK_ORIGINS = (
    "https://imagegen.app",
    "https://www.imagegen.app",
    "https://admin.imagegen.app",
)

LOCAL_ORIGIN_RE = re.compile(r"^http://(localhost|127\.0\.0\.1):\d+$")

ALLOWED_METHODS = ("GET", "POST", "PUT", "DELETE", "OPTIONS", "PATCH")
ALLOWED_HEADERS = (
    "Content-Type",
    "Authorization",
    "X-Requested-With",
    "X-Request-ID",
    "Accept",
    "Accept-Language",
    "Content-Language",
    "DNT",
    "User-Agent",
    "If-Modified-Since",
    "Cache-Control",
    "Range",
)
EXPOSED_HEADERS = ("Content-Length", "Content-Range", "X-Total-Count", "X-Page-Count", "X-Request-ID")
PREFLIGHT_MAX_AGE = 86400


def build_allowed_origins(configured: Iterable[str], development: bool) -> tuple[str, ...]:
    """
    Merge configured origins with dev defaults; fall back to production origins if empty.

    A "*" entry is dropped: it would make Starlette allow every origin without
    consulting the policy.
    """
    origins: list[str] = []
    for origin in configured:
        origin = origin.strip()
        if origin == "*":
            logger.warning("Ignoring wildcard entry in CORS_ORIGINS")
            continue
        if origin and origin not in origins:
            origins.append(origin)
    if development:
        origins.extend(o for o in DEV_ORIGINS if o not in origins)
    if not origins:
        origins = list(PRODUCTION_FALLBACK_ORIGINS)
    return tuple(origins)


@dataclass(frozen=True)
class OriginPolicy:
    """Allow/deny decision for a request's Origin header."""

    allowed_origins: tuple[str, ...]
    development: bool = False

    @classmethod
    def from_settings(cls, settings: Settings) -> OriginPolicy:
        return cls(
            allowed_origins=build_allowed_origins(settings.cors_origin_list, settings.is_development),
            development=settings.is_development,
        )

    def is_allowed(self, origin: str | None) -> bool:
        # Non-browser clients send no Origin.
        if not origin:
            return True
        if origin in self.allowed_origins:
            return True
        return self.development and LOCAL_ORIGIN_RE.match(origin) is not None


class OriginPolicyCORSMiddleware(CORSMiddleware):
    """Starlette CORS middleware whose origin check is delegated to an OriginPolicy (fail-closed)."""

    def __init__(self, app: ASGIApp, policy: OriginPolicy) -> None:
        super().__init__(
            app,
            allow_origins=[o for o in policy.allowed_origins if o != "*"],
            allow_methods=list(ALLOWED_METHODS),
            allow_headers=list(ALLOWED_HEADERS),
            allow_credentials=True,
            expose_headers=list(EXPOSED_HEADERS),
            max_age=PREFLIGHT_MAX_AGE,
        )
        self.policy = policy

    def is_allowed_origin(self, origin: str) -> bool:
        try:
            allowed = self.policy.is_allowed(origin)
        except Exception:
            logger.exception("CORS origin policy evaluation failed; denying", extra={"origin": origin})
            return False
        if not allowed:
            logger.warning("CORS origin denied", extra={"origin": origin})
        return allowed

    def preflight_response(self, request_headers: Headers) -> Response:
        if not self.is_allowed_origin(request_headers.get("origin", "")):
            # No CORS headers: the browser blocks the actual request.
            return PlainTextResponse("OK", status_code=200)
        return super().preflight_response(request_headers)

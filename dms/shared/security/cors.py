"""
CORS origin validation.

Decides whether a cross-origin request may proceed, answers preflight
requests and attaches the ``Access-Control-*`` headers. Rejected origins
are written to the audit log.
"""

import logging
import re
from typing import Optional
from urllib.parse import urlsplit

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from starlette.types import ASGIApp

from dms.shared.errors.handlers import error_body
from dms.shared.security.audit_log import (
    AuditEventType,
    AuditLogService,
    RiskLevel,
    audit_log_service,
)

logger = logging.getLogger(__name__)

ALLOWED_METHODS = ("GET", "POST", "PUT", "DELETE", "PATCH", "OPTIONS")
ALLOWED_HEADERS = (
    "Content-Type",
    "Authorization",
    "X-Requested-With",
    "Accept",
    "Origin",
    "User-Agent",
    "X-Request-ID",
)
PREFLIGHT_MAX_AGE = 86400
EXEMPT_PATHS = ("/health", "/ready", "/live")

LOCALHOST_PATTERN = re.compile(r"^https?://(localhost|127\.0\.0\.1|0\.0\.0\.0)(:\d+)?$")


class CorsError(Exception):
    """Reason a request origin was refused."""


def is_valid_origin(origin: Optional[str]) -> bool:
    """Return True for a bare ``http(s)://host[:port]`` origin."""
    if not origin or origin != origin.strip():
        return False
    try:
        parts = urlsplit(origin)
        parts.port  # raises ValueError for a malformed port
    except ValueError:
        return False
    if parts.scheme not in ("http", "https") or not parts.hostname:
        return False
    if parts.username or parts.password:
        return False
    return not (parts.path or parts.query or parts.fragment)


def is_localhost_origin(origin: str) -> bool:
    return LOCALHOST_PATTERN.match(origin) is not None


class CorsOriginPolicy:
    """Origin allow-list evaluated in a fixed order.

    1. production without Origin: rejected and audited
    2. development/local without Origin: allowed
    3. malformed Origin: rejected
    4. Origin on the allow-list: allowed
    5. localhost Origin in development/local: allowed
    6. anything else: rejected and audited
    """

    def __init__(
        self,
        allowed_origins: list[str],
        environment: str,
        use_local_services: bool = False,
        audit: Optional[AuditLogService] = None,
    ) -> None:
        self.allowed_origins = list(allowed_origins)
        self.environment = environment
        self._is_production = environment == "production"
        self._is_development = environment == "development" or (
            environment == "local" and not use_local_services
        )
        self._audit = audit or audit_log_service

    def _violation(self, violation_type: str, **details: object) -> None:
        self._audit.log_security_event(
            AuditEventType.SECURITY_VIOLATION,
            RiskLevel.HIGH,
            details={
                "violationType": violation_type,
                "environment": self.environment,
                **details,
            },
        )

    def check(self, origin: Optional[str]) -> tuple[Optional[CorsError], bool]:
        """Evaluate an origin.

        Returns:
            ``(None, True)`` when allowed, ``(error, False)`` otherwise.
        """
        if origin is None and self._is_production:
            self._violation("cors_no_origin_production")
            return CorsError("Origin required in production"), False

        if origin is None and self._is_development:
            return None, True

        if not is_valid_origin(origin):
            return CorsError("Invalid origin"), False

        if origin in self.allowed_origins:
            return None, True

        if self._is_development and is_localhost_origin(origin):
            return None, True

        logger.warning(
            "CORS origin not allowed: origin=%s environment=%s",
            origin,
            self.environment,
        )
        self._violation(
            "cors_unauthorized_origin",
            requestedOrigin=origin,
            allowedOrigins=len(self.allowed_origins),
        )
        return CorsError("Not allowed by CORS"), False


def _is_exempt(path: str) -> bool:
    return any(path == p or path.startswith(p + "/") for p in EXEMPT_PATHS)


class CorsMiddleware(BaseHTTPMiddleware):
    """Applies a :class:`CorsOriginPolicy` to every non-probe request."""

    def __init__(self, app: ASGIApp, policy: CorsOriginPolicy) -> None:
        super().__init__(app)
        self._policy = policy

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if _is_exempt(request.url.path):
            return await call_next(request)

        origin = request.headers.get("origin")
        error, allowed = self._policy.check(origin)
        if not allowed:
            return JSONResponse(
                status_code=403,
                content=error_body("Forbidden", str(error), request),
            )

        if origin is None:
            return await call_next(request)

        cors_headers = {
            "Access-Control-Allow-Origin": origin,
            "Access-Control-Allow-Credentials": "true",
            "Vary": "Origin",
        }

        is_preflight = (
            request.method == "OPTIONS"
            and "access-control-request-method" in request.headers
        )
        if is_preflight:
            return Response(
                status_code=204,
                headers={
                    **cors_headers,
                    "Access-Control-Allow-Methods": ", ".join(ALLOWED_METHODS),
                    "Access-Control-Allow-Headers": ", ".join(ALLOWED_HEADERS),
                    "Access-Control-Max-Age": str(PREFLIGHT_MAX_AGE),
                },
            )

        response = await call_next(request)
        response.headers.update(cors_headers)
        return response

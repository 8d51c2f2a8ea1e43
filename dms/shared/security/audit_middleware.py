"""
Response auditing middleware.

Inspects the status code of every response and records client errors
in the audit log. Never alters the response.
"""

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

from dms.shared.security.audit_log import (
    AuditEventType,
    AuditLogService,
    RiskLevel,
    audit_log_service,
)


class AuditMiddleware(BaseHTTPMiddleware):
    """Writes 4xx responses to the audit log.

    - 401/403: authentication failure
    - 429: rate limit exceeded
    - any 4xx: suspicious activity (HIGH for 403, MEDIUM otherwise)
    """

    def __init__(self, app: ASGIApp, audit: AuditLogService = audit_log_service) -> None:
        super().__init__(app)
        self._audit = audit

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        response = await call_next(request)
        status_code = response.status_code

        if status_code in (401, 403):
            self._audit.log_authentication_failure(
                request, "unauthorized_access", {"statusCode": status_code}
            )

        if status_code == 429:
            self._audit.log_rate_limit_exceeded(request)

        if 400 <= status_code < 500:
            self._audit.log_request_event(
                request,
                AuditEventType.SUSPICIOUS_ACTIVITY,
                RiskLevel.HIGH if status_code == 403 else RiskLevel.MEDIUM,
                {
                    "statusCode": status_code,
                    "referer": request.headers.get("referer"),
                },
            )
        return response

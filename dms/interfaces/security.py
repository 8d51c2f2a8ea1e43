"""
Security reporting router.

Receives Content-Security-Policy violation reports from browsers and, in
development, exposes audit log statistics.
"""

import json
import logging

from fastapi import APIRouter, Depends, Request, Response, status
from fastapi.responses import JSONResponse

from dms.core.config import Settings
from dms.interfaces.portfolio.dependencies import get_settings
from dms.shared.errors.handlers import error_body
from dms.shared.security.audit_log import audit_log_service

logger = logging.getLogger(__name__)

router = APIRouter(tags=["security"])


@router.post(
    "/csp-report",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Receive a CSP violation report",
)
async def csp_report(request: Request) -> Response:
    """Browsers send ``application/csp-report`` bodies, so the JSON is read by hand."""
    raw = await request.body()
    try:
        payload = json.loads(raw) if raw else {}
    except ValueError:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content=error_body("Bad request", "Invalid CSP report", request),
        )

    report = payload.get("csp-report") if isinstance(payload, dict) else None
    if isinstance(report, dict) and report:
        details = {
            "blockedUri": report.get("blocked-uri"),
            "violatedDirective": report.get("violated-directive"),
            "originalPolicy": report.get("original-policy"),
        }
        logger.warning(
            "CSP violation: directive=%s blocked=%s",
            details["violatedDirective"],
            details["blockedUri"],
        )
        audit_log_service.log_security_violation(request, "csp_violation", details)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/security/stats", summary="Audit log statistics (development only)")
def security_stats(
    request: Request, app_settings: Settings = Depends(get_settings)
) -> JSONResponse:
    if not app_settings.is_development:
        return JSONResponse(
            status_code=status.HTTP_404_NOT_FOUND,
            content=error_body("Not found", None, request),
        )
    return JSONResponse(content={"auditLog": audit_log_service.get_stats()})

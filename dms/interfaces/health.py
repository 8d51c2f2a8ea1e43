"""
Health check router.

Liveness and readiness probes. No business logic. Probes are exempt from
CORS checks and rate limiting so that orchestrators can always reach them.
"""

import logging
import time
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from sqlalchemy import Engine
from sqlalchemy.exc import SQLAlchemyError

from dms.core.config import Settings
from dms.infrastructure.portfolio.database import check_database_health
from dms.interfaces.portfolio.dependencies import get_engine, get_settings
from dms.interfaces.portfolio.schemas import DetailedHealthResponse, HealthResponse
from dms.shared.security.rate_limiting import limiter

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])

STARTED_AT = time.monotonic()


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _database_status(engine: Engine) -> str:
    try:
        check_database_health(engine)
    except SQLAlchemyError as exc:
        logger.error("Database health check failed: %s", type(exc).__name__)
        return "error"
    return "ok"


def _unavailable(checks: dict[str, str]) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"status": "error", "timestamp": _now(), "checks": checks},
    )


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Health check",
    description="Returns application health status.",
)
@limiter.exempt
def health_check() -> HealthResponse:
    """Return current application health status."""
    return HealthResponse(status="ok", timestamp=_now())


@router.get(
    "/health/detailed",
    response_model=DetailedHealthResponse,
    responses={503: {"description": "A dependency is unavailable"}},
    summary="Detailed health check",
)
@limiter.exempt
def detailed_health_check(
    engine: Engine = Depends(get_engine),
    app_settings: Settings = Depends(get_settings),
):
    checks = {"database": _database_status(engine)}
    if checks["database"] != "ok":
        return _unavailable(checks)
    return DetailedHealthResponse(
        status="ok",
        timestamp=_now(),
        version=app_settings.version,
        environment=app_settings.environment,
        uptime_seconds=round(time.monotonic() - STARTED_AT, 3),
        checks=checks,
    )


@router.get("/health/database", response_model=HealthResponse, summary="Database check")
@limiter.exempt
def database_health_check(engine: Engine = Depends(get_engine)):
    database = _database_status(engine)
    if database != "ok":
        return _unavailable({"database": database})
    return HealthResponse(status="ok", timestamp=_now())


@router.get("/ready", response_model=HealthResponse, summary="Readiness probe")
@limiter.exempt
def readiness(engine: Engine = Depends(get_engine)):
    """Ready once the database answers."""
    database = _database_status(engine)
    if database != "ok":
        return _unavailable({"database": database})
    return HealthResponse(status="ready", timestamp=_now())


@router.get("/live", response_model=HealthResponse, summary="Liveness probe")
@limiter.exempt
def liveness() -> HealthResponse:
    return HealthResponse(status="alive", timestamp=_now())

"""
Centralized error handlers for FastAPI.

Maps domain-specific errors to HTTP responses.
No stack traces or internal details are exposed to clients.
Every error body has ``error``, ``message`` and ``timestamp`` keys, plus
``requestId`` when the client sent an ``X-Request-ID`` header.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError

from dms.domain.logs.errors import InvalidPaginationError
from dms.domain.portfolio.errors import (
    AccountNotFoundError,
    CsvFormatError,
    DivDepositNotFoundError,
    DuplicateSymbolError,
    FeatureDisabledError,
    ImportValidationError,
    InvalidMonthError,
    OpenPositionsError,
    PortfolioDomainError,
    RiskGroupNotFoundError,
    ScreenerRowNotFoundError,
    TradeNotFoundError,
    UniverseNotFoundError,
)

logger = logging.getLogger(__name__)

HTTP_400 = 400
HTTP_403 = 403
HTTP_404 = 404
HTTP_409 = 409
HTTP_422 = 422
HTTP_500 = 500

NOT_FOUND_ERRORS = (
    AccountNotFoundError,
    UniverseNotFoundError,
    RiskGroupNotFoundError,
    TradeNotFoundError,
    DivDepositNotFoundError,
    ScreenerRowNotFoundError,
)


def error_body(
    error: str, message: Optional[str] = None, request: Optional[Request] = None
) -> dict[str, Any]:
    """Build the JSON body shared by every error response."""
    body: dict[str, Any] = {
        "error": error,
        "message": message or error,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
    request_id = request.headers.get("x-request-id") if request is not None else None
    if request_id:
        body["requestId"] = request_id
    return body


def _error_response(
    request: Request, status_code: int, error: str, message: Optional[str] = None
) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=error_body(error, message, request))


def register_error_handlers(app: FastAPI) -> None:
    """Register all domain error handlers on the FastAPI application.

    Args:
        app: The FastAPI application instance.
    """

    async def handle_not_found(
        request: Request, exc: PortfolioDomainError
    ) -> JSONResponse:
        """Handle lookups of missing records."""
        logger.warning("Not found: %s", exc.message)
        return _error_response(request, HTTP_404, "Not found", exc.message)

    for error_class in NOT_FOUND_ERRORS:
        app.add_exception_handler(error_class, handle_not_found)

    @app.exception_handler(DuplicateSymbolError)
    async def handle_duplicate_symbol(
        request: Request, exc: DuplicateSymbolError
    ) -> JSONResponse:
        logger.warning("Duplicate symbol: %s", exc.symbol)
        return _error_response(request, HTTP_409, "Conflict", exc.message)

    @app.exception_handler(OpenPositionsError)
    async def handle_open_positions(
        request: Request, exc: OpenPositionsError
    ) -> JSONResponse:
        logger.warning("Refused delete of %s: open positions", exc.symbol)
        return _error_response(request, HTTP_409, "Conflict", exc.message)

    @app.exception_handler(IntegrityError)
    async def handle_integrity(request: Request, exc: IntegrityError) -> JSONResponse:
        """Unique constraint violations surface as conflicts."""
        logger.warning("Integrity error: %s", type(exc.orig).__name__)
        return _error_response(request, HTTP_409, "Conflict", "Record already exists")

    @app.exception_handler(InvalidMonthError)
    async def handle_invalid_month(
        request: Request, exc: InvalidMonthError
    ) -> JSONResponse:
        logger.warning("Invalid month: %r", exc.month)
        return _error_response(request, HTTP_422, "Validation error", exc.message)

    @app.exception_handler(CsvFormatError)
    @app.exception_handler(ImportValidationError)
    async def handle_import_error(
        request: Request, exc: PortfolioDomainError
    ) -> JSONResponse:
        logger.warning("Import rejected: %s", exc.message)
        return _error_response(request, HTTP_400, "Bad request", exc.message)

    @app.exception_handler(InvalidPaginationError)
    async def handle_invalid_pagination(
        request: Request, exc: InvalidPaginationError
    ) -> JSONResponse:
        logger.warning("Invalid pagination: page=%d limit=%d", exc.page, exc.limit)
        return _error_response(
            request, HTTP_400, "Invalid pagination parameters", exc.message
        )

    @app.exception_handler(FeatureDisabledError)
    async def handle_feature_disabled(
        request: Request, exc: FeatureDisabledError
    ) -> JSONResponse:
        logger.info("Feature disabled: %s", exc.feature)
        return _error_response(request, HTTP_403, "Forbidden", exc.message)

    @app.exception_handler(PortfolioDomainError)
    async def handle_portfolio_domain(
        request: Request, exc: PortfolioDomainError
    ) -> JSONResponse:
        """Catch-all for unhandled portfolio domain errors."""
        logger.error("Unhandled portfolio domain error: %s", exc.message)
        return _error_response(request, HTTP_500, "Internal server error")

    @app.exception_handler(Exception)
    async def handle_unexpected(request: Request, exc: Exception) -> JSONResponse:
        """Last resort for errors raised outside UnhandledErrorMiddleware."""
        logger.exception("Unexpected error: %s", type(exc).__name__)
        return _error_response(request, HTTP_500, "Internal server error")

"""
Unhandled error middleware.

Registered innermost so that an unexpected exception becomes the standard
500 body before the security header and CORS middleware see the response.
"""

import logging

from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from dms.shared.errors.handlers import HTTP_500, error_body

logger = logging.getLogger(__name__)


class UnhandledErrorMiddleware(BaseHTTPMiddleware):
    """Turns exceptions no handler claimed into ``500 Internal server error``."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        try:
            return await call_next(request)
        except Exception as exc:
            logger.exception(
                "Unexpected error on %s %s: %s",
                request.method,
                request.url.path,
                type(exc).__name__,
            )
            return JSONResponse(
                status_code=HTTP_500,
                content=error_body("Internal server error", request=request),
            )

"""
Secure HTTP headers middleware.

Adds security-related headers to every response:
- Content-Security-Policy (report-only in development)
- Strict-Transport-Security (production or https)
- X-Content-Type-Options, X-Frame-Options, X-XSS-Protection
- Referrer-Policy, Permissions-Policy

No business logic. Pure cross-cutting concern.
"""

from dataclasses import dataclass
from typing import Optional

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

CSP_REPORT_URI = "/api/csp-report"
HSTS_MAX_AGE = 31_536_000  # 1 year

SECURE_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "X-XSS-Protection": "1; mode=block",
    "Referrer-Policy": "strict-origin-when-cross-origin",
    "Permissions-Policy": "geolocation=(), microphone=(), camera=(), payment=(), usb=()",
}

REMOVED_HEADERS = ("server", "x-powered-by")


@dataclass(frozen=True)
class SecurityConfig:
    """Header policy table.

    Attributes:
        csp_directives: Directive name -> allowed sources, in header order.
        report_uri: Endpoint receiving CSP violation reports.
        report_only: Send CSP as ``Content-Security-Policy-Report-Only``.
        hsts_max_age: HSTS lifetime in seconds.
        hsts_include_subdomains: Add ``includeSubDomains`` to HSTS.
        hsts_preload: Add ``preload`` to HSTS.
    """

    csp_directives: dict[str, list[str]]
    report_uri: str = CSP_REPORT_URI
    report_only: bool = False
    hsts_max_age: int = HSTS_MAX_AGE
    hsts_include_subdomains: bool = True
    hsts_preload: bool = True

    @property
    def hsts_value(self) -> str:
        value = f"max-age={self.hsts_max_age}"
        if self.hsts_include_subdomains:
            value += "; includeSubDomains"
        if self.hsts_preload:
            value += "; preload"
        return value


def build_security_config(
    environment: str, api_base_url: Optional[str] = None
) -> SecurityConfig:
    """Build the header policy for an environment.

    Development relaxes ``script-src`` with ``'unsafe-eval'``, lets the
    client reach local https/wss endpoints and only reports CSP violations.
    """
    is_development = environment == "development"

    script_src = ["'self'", "'unsafe-inline'"]
    if is_development:
        script_src.append("'unsafe-eval'")

    connect_src = ["'self'"]
    if api_base_url:
        connect_src.append(api_base_url)
    if is_development:
        connect_src.extend(["https://localhost:*", "wss://localhost:*"])

    return SecurityConfig(
        csp_directives={
            "default-src": ["'self'"],
            "script-src": script_src,
            "style-src": ["'self'", "'unsafe-inline'", "https://fonts.googleapis.com"],
            "font-src": ["'self'", "https://fonts.gstatic.com"],
            "img-src": ["'self'", "data:", "https:"],
            "connect-src": connect_src,
            "frame-ancestors": ["'none'"],
            "form-action": ["'self'"],
            "base-uri": ["'self'"],
            "object-src": ["'none'"],
        },
        report_only=is_development,
    )


def format_csp(directives: dict[str, list[str]]) -> str:
    """Render directives as ``"name src src; name src"``."""
    return "; ".join(
        f"{name} {' '.join(sources)}" for name, sources in directives.items()
    )


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Middleware that adds secure HTTP headers to every response.

    Prevents common web vulnerabilities by setting restrictive
    default headers on all outgoing responses.
    """

    def __init__(
        self, app: ASGIApp, environment: str, api_base_url: Optional[str] = None
    ) -> None:
        super().__init__(app)
        self._environment = environment
        self._config = build_security_config(environment, api_base_url)
        self._csp_value = format_csp(self._config.csp_directives)

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        """Process request and add security headers to response."""
        response = await call_next(request)

        csp_header = (
            "Content-Security-Policy-Report-Only"
            if self._config.report_only
            else "Content-Security-Policy"
        )
        response.headers[csp_header] = self._csp_value

        if self._environment == "production" or request.url.scheme == "https":
            response.headers["Strict-Transport-Security"] = self._config.hsts_value

        for header_name, header_value in SECURE_HEADERS.items():
            response.headers[header_name] = header_value

        for header_name in REMOVED_HEADERS:
            if header_name in response.headers:
                del response.headers[header_name]
        return response

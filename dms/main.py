"""
Application entry point.

Creates the FastAPI application and wires together:
- Routers (health, feature flags, security reports, log viewer, portfolio)
- Error handlers (centralized domain-to-HTTP mapping)
- Middleware (audit, headers, CORS, rate limiting, unhandled errors)
- Logging configuration
- Database schema creation on startup

No business logic belongs here.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

from dms.core.config import Settings, settings
from dms.infrastructure.portfolio.database import init_db
from dms.interfaces.feature_flags import router as feature_flags_router
from dms.interfaces.health import router as health_router
from dms.interfaces.logs import router as logs_router
from dms.interfaces.portfolio.dependencies import get_engine
from dms.interfaces.portfolio.router import router as portfolio_router
from dms.interfaces.security import router as security_router
from dms.shared.errors.handlers import register_error_handlers
from dms.shared.errors.middleware import UnhandledErrorMiddleware
from dms.shared.logging import configure_logging
from dms.shared.security.audit_log import audit_log_service
from dms.shared.security.audit_middleware import AuditMiddleware
from dms.shared.security.cors import CorsMiddleware, CorsOriginPolicy
from dms.shared.security.headers import SecurityHeadersMiddleware
from dms.shared.security.rate_limiting import limiter, rate_limit_exceeded_handler

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create missing tables on startup; flush the audit buffer on shutdown."""
    init_db(get_engine())
    logger.info("Application started (environment=%s)", settings.environment)

    yield

    flushed = audit_log_service.flush()
    logger.info("Application stopped, %d audit entries flushed", flushed)


def create_app(app_settings: Settings = settings) -> FastAPI:
    """Create and configure the FastAPI application.

    Registers routers, error handlers, and security middleware.
    This is the composition root of the application.

    Returns:
        A fully configured FastAPI application instance.
    """
    configure_logging(
        level=app_settings.log_level,
        log_dir=app_settings.log_dir,
        environment=app_settings.environment,
    )

    app = FastAPI(
        title=app_settings.project_name,
        version=app_settings.version,
        docs_url="/docs" if app_settings.debug else None,
        redoc_url="/redoc" if app_settings.debug else None,
        lifespan=lifespan,
    )

    # --- Rate Limiting ---
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)

    # --- Security Middleware (last added runs first) ---
    app.add_middleware(UnhandledErrorMiddleware)
    app.add_middleware(SlowAPIMiddleware)
    app.add_middleware(
        CorsMiddleware,
        policy=CorsOriginPolicy(
            allowed_origins=app_settings.cors_allowed_origins(),
            environment=app_settings.environment,
            use_local_services=app_settings.use_local_services,
        ),
    )
    app.add_middleware(
        SecurityHeadersMiddleware,
        environment=app_settings.environment,
        api_base_url=app_settings.api_base_url,
    )
    app.add_middleware(AuditMiddleware)

    # --- Error Handlers ---
    register_error_handlers(app)

    # --- Routers ---
    app.include_router(health_router)
    app.include_router(feature_flags_router, prefix="/api")
    app.include_router(security_router, prefix="/api")
    app.include_router(logs_router, prefix="/api")
    app.include_router(portfolio_router, prefix="/api")

    return app


app = create_app()

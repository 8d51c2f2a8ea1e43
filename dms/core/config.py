"""
Application configuration.

Loads settings from environment variables and .env file.
All configuration is centralized here, no scattered magic strings.
"""

from typing import Optional

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_DEV_ORIGINS = ("http://localhost:4200", "http://localhost:3000")


class Settings(BaseSettings):
    """Application settings loaded from environment.

    Attributes:
        project_name: Display name for the API.
        version: Current API version string.
        debug: Enable the interactive docs. Must be False in production.
        environment: Deployment environment (``NODE_ENV``): development,
            local, test or production.
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR).
        log_dir: Directory of the JSON lines log files read by the log
            viewer. Empty disables file logging.
        database_url: SQLAlchemy URL of the portfolio database.
        cookie_secret: Secret used to sign cookies.
        allowed_origins: Comma-separated list of extra CORS origins.
        allowed_origin: One more allowed origin.
        frontend_url: URL of the web client, always allowed by CORS.
        api_base_url: Public API URL, added to the CSP ``connect-src``.
        use_screener_for_universe: Enables universe sync from the screener.
        use_local_services: Disables the development no-origin allowance.
        openfigi_api_key: Optional key raising OpenFIGI quotas.
        resolve_cusips: Translate CUSIPs to tickers during import.
        rate_limit_default: Default rate limit for all endpoints.
        rate_limit_heavy: Rate limit for import, sync and settings endpoints.
        rate_limit_enabled: Turns the rate limiter on or off.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    project_name: str = "DMS"
    version: str = "0.1.0"
    debug: bool = False
    environment: str = Field(
        default="development",
        validation_alias=AliasChoices("NODE_ENV", "ENVIRONMENT", "environment"),
    )
    log_level: str = "INFO"
    log_dir: str = "logs"

    database_url: str = "sqlite:///./dms.db"
    cookie_secret: Optional[str] = None

    allowed_origins: str = ""
    allowed_origin: Optional[str] = None
    frontend_url: Optional[str] = None
    api_base_url: Optional[str] = None

    use_screener_for_universe: bool = False
    use_local_services: bool = False

    openfigi_api_key: Optional[str] = None
    resolve_cusips: bool = True

    rate_limit_default: str = "60/minute"
    rate_limit_heavy: str = "10/minute"
    rate_limit_enabled: bool = True

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def is_development(self) -> bool:
        return self.environment in ("development", "local")

    def cors_allowed_origins(self) -> list[str]:
        """Return the CORS allow-list.

        Built from ``ALLOWED_ORIGINS``, ``FRONTEND_URL``, ``ALLOWED_ORIGIN``
        and the default development client ports, without duplicates.
        """
        origins = [o.strip() for o in self.allowed_origins.split(",") if o.strip()]
        for extra in (self.frontend_url, self.allowed_origin):
            if extra and extra.strip():
                origins.append(extra.strip())
        origins.extend(DEFAULT_DEV_ORIGINS)
        return list(dict.fromkeys(origins))


settings = Settings()

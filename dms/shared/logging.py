"""
Logging configuration for the application.

Sets up structured logging with a consistent format.
Logging must not change program behavior.
Never logs sensitive data (request bodies, secrets, raw CSV content).

When a log directory is configured, every record is also appended to a
per-process JSON lines file there; the log viewer routes read those files.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, MutableMapping, Optional
from uuid import uuid4

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

AUDIT_LOGGER_NAME = "dms.audit"
SERVICE_NAME = "dms"

LEVEL_NAMES = {
    logging.DEBUG: "debug",
    logging.INFO: "info",
    logging.WARNING: "warn",
    logging.ERROR: "error",
    logging.CRITICAL: "error",
}


class JsonLineFormatter(logging.Formatter):
    """Renders a record as one JSON object per line.

    Keys: timestamp, correlationId, level, message, service, environment,
    plus ``data`` when the record carries an ``extra={"data": {...}}``.
    """

    def __init__(self, environment: str, service: str = SERVICE_NAME) -> None:
        super().__init__()
        self._environment = environment
        self._service = service

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "correlationId": getattr(record, "correlation_id", None) or str(uuid4()),
            "level": LEVEL_NAMES.get(record.levelno, "info"),
            "message": record.getMessage(),
            "service": self._service,
            "environment": self._environment,
        }
        data = getattr(record, "data", None)
        if isinstance(data, dict):
            entry["data"] = data
        if record.exc_info:
            entry.setdefault("data", {})["error"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


def log_file_name(service: str = SERVICE_NAME) -> str:
    """Return ``<service>-<utc timestamp>-<8 hex chars>.log``."""
    stamp = datetime.now(timezone.utc).strftime("%Y-%m-%dT%H-%M-%S")
    return f"{service}-{stamp}-{uuid4().hex[:8]}.log"


def configure_logging(
    level: str = "INFO",
    log_dir: Optional[str] = None,
    environment: str = "development",
) -> Optional[Path]:
    """Configure structured logging for the application.

    Args:
        level: The log level string (DEBUG, INFO, WARNING, ERROR).
        log_dir: Directory receiving the JSON lines file; None disables it.
        environment: Deployment environment written into each JSON line.

    Returns:
        Path of the JSON lines file, or None when file logging is off.
    """
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
        datefmt=LOG_DATE_FORMAT,
        stream=sys.stdout,
        force=True,
    )

    # Suppress noisy third-party loggers
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("yfinance").setLevel(logging.WARNING)

    if not log_dir:
        return None

    directory = Path(log_dir)
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / log_file_name()
    handler = logging.FileHandler(path, encoding="utf-8")
    handler.setFormatter(JsonLineFormatter(environment))
    logging.getLogger().addHandler(handler)
    return path


class CorrelationLoggerAdapter(logging.LoggerAdapter):
    """Prefixes every message with the correlation id of a long operation."""

    def process(
        self, msg: Any, kwargs: MutableMapping[str, Any]
    ) -> tuple[Any, MutableMapping[str, Any]]:
        kwargs["extra"] = {**self.extra, **(kwargs.get("extra") or {})}
        return f"[{self.extra['correlation_id']}] {msg}", kwargs


def get_correlated_logger(name: str, correlation_id: str) -> CorrelationLoggerAdapter:
    """Return a logger whose records carry ``correlation_id``."""
    return CorrelationLoggerAdapter(
        logging.getLogger(name), {"correlation_id": correlation_id}
    )

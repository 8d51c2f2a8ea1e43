"""
Security audit log.

Keeps security-relevant events (failed authorisation, CORS and CSP
violations, rate limiting) in a bounded in-memory buffer and writes them
to the ``dms.audit`` logger. Client IPs are hashed and user agents
trimmed before anything is stored.
"""

import hashlib
import json
import logging
import os
import re
import threading
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from starlette.requests import Request

from dms.shared.logging import AUDIT_LOGGER_NAME

audit_logger = logging.getLogger(AUDIT_LOGGER_NAME)

MAX_BUFFER_SIZE = 100
MAX_USER_AGENT_LENGTH = 200
MAX_DETAIL_LENGTH = 500
UNKNOWN = "unknown"

SENSITIVE_FIELDS = (
    "password",
    "token",
    "secret",
    "key",
    "credit",
    "ssn",
    "social",
    "email",
    "phone",
)

_SYSTEM_INFO = re.compile(r"\([^)]{0,100}\)")
_CONTROL_CHARS = re.compile(r"[\x00-\x1f\x7f]")


class RiskLevel(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"


class AuditEventType(str, Enum):
    AUTH_FAILURE = "AUTH_FAILURE"
    SECURITY_VIOLATION = "SECURITY_VIOLATION"
    RATE_LIMIT_EXCEEDED = "RATE_LIMIT_EXCEEDED"
    SUSPICIOUS_ACTIVITY = "SUSPICIOUS_ACTIVITY"


@dataclass(frozen=True)
class AuditLogEntry:
    timestamp: str
    event_type: str
    ip_hash: str
    user_agent: str
    risk_level: str
    details: dict[str, Any] = field(default_factory=dict)


def hash_ip(ip_address: str) -> str:
    """Return the first 16 hex chars of the salted sha256 of an IP address."""
    salt = os.getenv("IP_SALT", "default-salt")
    return hashlib.sha256((ip_address + salt).encode("utf-8")).hexdigest()[:16]


def sanitize_user_agent(user_agent: str) -> str:
    """Drop system details and control characters, cap at 200 chars."""
    cleaned = _CONTROL_CHARS.sub("", user_agent or "")
    return _SYSTEM_INFO.sub("(...)", cleaned)[:MAX_USER_AGENT_LENGTH]


def sanitize_details(details: dict[str, Any]) -> dict[str, Any]:
    """Redact sensitive keys and truncate long string values."""
    sanitized: dict[str, Any] = {}
    for key, value in details.items():
        if any(marker in key.lower() for marker in SENSITIVE_FIELDS):
            sanitized[key] = "[REDACTED]"
        elif isinstance(value, str) and len(value) > MAX_DETAIL_LENGTH:
            sanitized[key] = value[:MAX_DETAIL_LENGTH] + "..."
        else:
            sanitized[key] = value
    return sanitized


def _client_ip(request: Request) -> str:
    return request.client.host if request.client else UNKNOWN


def _request_details(request: Request) -> dict[str, Any]:
    return {"url": request.url.path, "method": request.method}


class AuditLogService:
    """Bounded in-memory audit buffer.

    Entries are written to the audit logger in batches when the buffer
    fills up or when ``flush`` is called. HIGH and CRITICAL events also get
    an immediate warning line and stay buffered for the next batch.
    """

    def __init__(self, max_buffer_size: int = MAX_BUFFER_SIZE) -> None:
        self._max_buffer_size = max_buffer_size
        self._buffer: list[AuditLogEntry] = []
        self._lock = threading.Lock()

    def log_security_event(
        self,
        event_type: AuditEventType,
        risk_level: RiskLevel,
        ip_address: str = UNKNOWN,
        user_agent: str = UNKNOWN,
        details: Optional[dict[str, Any]] = None,
    ) -> AuditLogEntry:
        """Record one event and return the stored entry."""
        entry = AuditLogEntry(
            timestamp=datetime.now(timezone.utc).isoformat(),
            event_type=event_type.value,
            ip_hash=hash_ip(ip_address),
            user_agent=sanitize_user_agent(user_agent),
            risk_level=risk_level.value,
            details=sanitize_details(details or {}),
        )

        with self._lock:
            self._buffer.append(entry)
            full = len(self._buffer) >= self._max_buffer_size

        if risk_level in (RiskLevel.HIGH, RiskLevel.CRITICAL):
            audit_logger.warning(
                "Security event %s: %s", entry.event_type, json.dumps(entry.details)
            )
        if full:
            self.flush()
        return entry

    def log_request_event(
        self,
        request: Request,
        event_type: AuditEventType,
        risk_level: RiskLevel,
        details: Optional[dict[str, Any]] = None,
    ) -> AuditLogEntry:
        """Record an event using the client address and agent of ``request``."""
        return self.log_security_event(
            event_type,
            risk_level,
            ip_address=_client_ip(request),
            user_agent=request.headers.get("user-agent", UNKNOWN),
            details={**_request_details(request), **(details or {})},
        )

    def log_authentication_failure(
        self, request: Request, reason: str, details: Optional[dict[str, Any]] = None
    ) -> AuditLogEntry:
        return self.log_request_event(
            request,
            AuditEventType.AUTH_FAILURE,
            RiskLevel.MEDIUM,
            {"reason": reason, **(details or {})},
        )

    def log_security_violation(
        self,
        request: Request,
        violation_type: str,
        details: Optional[dict[str, Any]] = None,
    ) -> AuditLogEntry:
        return self.log_request_event(
            request,
            AuditEventType.SECURITY_VIOLATION,
            RiskLevel.HIGH,
            {"violationType": violation_type, **(details or {})},
        )

    def log_rate_limit_exceeded(
        self, request: Request, limit_type: str = "general"
    ) -> AuditLogEntry:
        return self.log_request_event(
            request,
            AuditEventType.RATE_LIMIT_EXCEEDED,
            RiskLevel.MEDIUM,
            {"limitType": limit_type},
        )

    def get_stats(self) -> dict[str, int]:
        with self._lock:
            return {
                "bufferSize": len(self._buffer),
                "maxBufferSize": self._max_buffer_size,
            }

    def flush(self) -> int:
        """Write every buffered entry to the audit logger and empty the buffer.

        Returns:
            Number of entries written.
        """
        with self._lock:
            entries, self._buffer = self._buffer, []
        for entry in entries:
            audit_logger.info(json.dumps(asdict(entry), default=str))
        return len(entries)


audit_log_service = AuditLogService()

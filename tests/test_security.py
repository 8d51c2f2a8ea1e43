"""
Tests for the security layer: CORS policy, secure headers, audit log
and rate limit keys.
"""

import logging
from typing import Optional
from unittest.mock import MagicMock

import pytest
from starlette.requests import Request

from dms.shared.security.audit_log import (
    AuditEventType,
    AuditLogService,
    RiskLevel,
    hash_ip,
    sanitize_details,
    sanitize_user_agent,
)
from dms.shared.security.cors import CorsOriginPolicy, is_valid_origin
from dms.shared.security.headers import build_security_config, format_csp
from dms.shared.security.rate_limiting import client_key


def _request(headers: Optional[dict[str, str]] = None, path: str = "/api/universe") -> Request:
    return Request(
        {
            "type": "http",
            "method": "GET",
            "path": path,
            "query_string": b"",
            "headers": [
                (name.lower().encode(), value.encode())
                for name, value in (headers or {}).items()
            ],
            "client": ("198.51.100.7", 51000),
        }
    )


class TestIsValidOrigin:
    """Tests for origin syntax checks."""

    @pytest.mark.parametrize(
        "origin",
        ["https://app.example.com", "http://localhost:4200", "http://127.0.0.1"],
    )
    def test_valid(self, origin: str) -> None:
        assert is_valid_origin(origin)

    @pytest.mark.parametrize(
        "origin",
        [
            None,
            "",
            " https://app.example.com",
            "ftp://app.example.com",
            "https://app.example.com/",
            "https://app.example.com?x=1",
            "https://user:pw@app.example.com",
            "https://app.example.com:99999",
            "app.example.com",
        ],
    )
    def test_invalid(self, origin) -> None:
        assert not is_valid_origin(origin)


class TestCorsOriginPolicy:
    """Tests for the ordered origin decision."""

    def test_production_requires_origin(self) -> None:
        """A request without Origin in production is refused and audited."""
        audit = MagicMock()
        policy = CorsOriginPolicy([], "production", audit=audit)

        error, allowed = policy.check(None)

        assert not allowed
        assert str(error) == "Origin required in production"
        audit.log_security_event.assert_called_once()
        details = audit.log_security_event.call_args.kwargs["details"]
        assert details["violationType"] == "cors_no_origin_production"

    def test_development_allows_missing_origin(self) -> None:
        policy = CorsOriginPolicy([], "development", audit=MagicMock())
        assert policy.check(None) == (None, True)

    def test_local_services_disable_the_development_allowance(self) -> None:
        policy = CorsOriginPolicy([], "local", use_local_services=True, audit=MagicMock())
        error, allowed = policy.check(None)
        assert not allowed
        assert str(error) == "Invalid origin"

    def test_malformed_origin(self) -> None:
        audit = MagicMock()
        policy = CorsOriginPolicy([], "development", audit=audit)
        error, allowed = policy.check("not an origin")
        assert not allowed
        assert str(error) == "Invalid origin"
        audit.log_security_event.assert_not_called()

    def test_allow_list(self) -> None:
        policy = CorsOriginPolicy(["https://app.example.com"], "production", audit=MagicMock())
        assert policy.check("https://app.example.com") == (None, True)

    def test_localhost_only_in_development(self) -> None:
        """Any localhost port passes in development but not in production."""
        dev = CorsOriginPolicy([], "development", audit=MagicMock())
        assert dev.check("http://localhost:5173") == (None, True)

        audit = MagicMock()
        prod = CorsOriginPolicy([], "production", audit=audit)
        error, allowed = prod.check("http://localhost:5173")
        assert not allowed
        assert str(error) == "Not allowed by CORS"
        details = audit.log_security_event.call_args.kwargs["details"]
        assert details["violationType"] == "cors_unauthorized_origin"
        assert details["requestedOrigin"] == "http://localhost:5173"

    def test_unknown_origin_rejected(self) -> None:
        audit = MagicMock()
        policy = CorsOriginPolicy(["https://app.example.com"], "development", audit=audit)
        error, allowed = policy.check("https://evil.example.net")
        assert not allowed
        assert str(error) == "Not allowed by CORS"
        audit.log_security_event.assert_called_once()


class TestSecurityConfig:
    """Tests for the CSP and HSTS policy table."""

    def test_development_is_report_only_and_relaxed(self) -> None:
        config = build_security_config("development")
        assert config.report_only
        assert "'unsafe-eval'" in config.csp_directives["script-src"]
        assert "wss://localhost:*" in config.csp_directives["connect-src"]

    def test_production_is_enforced(self) -> None:
        config = build_security_config("production", "https://api.example.com")
        assert not config.report_only
        assert "'unsafe-eval'" not in config.csp_directives["script-src"]
        assert config.csp_directives["connect-src"] == ["'self'", "https://api.example.com"]
        assert config.hsts_value == "max-age=31536000; includeSubDomains; preload"

    def test_format_csp(self) -> None:
        directives = {"default-src": ["'self'"], "img-src": ["'self'", "data:"]}
        assert format_csp(directives) == "default-src 'self'; img-src 'self' data:"


class TestAuditSanitizers:
    """Tests for what the audit log refuses to store verbatim."""

    def test_hash_ip(self, monkeypatch) -> None:
        monkeypatch.setenv("IP_SALT", "pepper")
        first = hash_ip("198.51.100.7")
        assert len(first) == 16
        assert first == hash_ip("198.51.100.7")
        assert first != hash_ip("198.51.100.8")
        monkeypatch.setenv("IP_SALT", "other")
        assert first != hash_ip("198.51.100.7")

    def test_sanitize_user_agent(self) -> None:
        agent = "Mozilla/5.0 (X11; Linux x86_64) Firefox/125.0\x00\x1b"
        assert sanitize_user_agent(agent) == "Mozilla/5.0 (...) Firefox/125.0"
        assert len(sanitize_user_agent("a" * 300)) == 200

    def test_sanitize_details(self) -> None:
        details = sanitize_details(
            {"password": "hunter2", "apiKey": "abc", "note": "x" * 600, "count": 3}
        )
        assert details["password"] == "[REDACTED]"
        assert details["apiKey"] == "[REDACTED]"
        assert details["note"] == "x" * 500 + "..."
        assert details["count"] == 3


class TestAuditLogService:
    """Tests for buffering and flushing."""

    def test_buffer_flushes_when_full(self) -> None:
        service = AuditLogService(max_buffer_size=3)
        for _ in range(2):
            service.log_security_event(AuditEventType.SUSPICIOUS_ACTIVITY, RiskLevel.LOW)
        assert service.get_stats() == {"bufferSize": 2, "maxBufferSize": 3}

        service.log_security_event(AuditEventType.SUSPICIOUS_ACTIVITY, RiskLevel.LOW)
        assert service.get_stats()["bufferSize"] == 0

    def test_high_risk_is_logged_but_stays_buffered(self, caplog) -> None:
        """A HIGH event warns at once without draining earlier entries."""
        service = AuditLogService()
        service.log_security_event(AuditEventType.AUTH_FAILURE, RiskLevel.MEDIUM)
        with caplog.at_level(logging.INFO, logger="dms.audit"):
            service.log_security_event(
                AuditEventType.SECURITY_VIOLATION,
                RiskLevel.HIGH,
                details={"violationType": "csp_violation"},
            )

        assert service.get_stats()["bufferSize"] == 2
        (record,) = caplog.records
        assert record.levelno == logging.WARNING
        assert "SECURITY_VIOLATION" in record.getMessage()
        assert "csp_violation" in record.getMessage()

    def test_flush_returns_count(self) -> None:
        service = AuditLogService()
        service.log_security_event(AuditEventType.AUTH_FAILURE, RiskLevel.LOW)
        service.log_security_event(AuditEventType.AUTH_FAILURE, RiskLevel.LOW)
        assert service.flush() == 2
        assert service.flush() == 0

    def test_request_event_carries_client_details(self) -> None:
        service = AuditLogService()
        entry = service.log_rate_limit_exceeded(
            _request({"User-Agent": "pytest (Linux)"}), "heavy"
        )
        assert entry.event_type == "RATE_LIMIT_EXCEEDED"
        assert entry.risk_level == "MEDIUM"
        assert entry.ip_hash == hash_ip("198.51.100.7")
        assert entry.user_agent == "pytest (...)"
        assert entry.details == {
            "url": "/api/universe",
            "method": "GET",
            "limitType": "heavy",
        }


class TestClientKey:
    """Tests for the rate limit key."""

    def test_first_forwarded_hop(self) -> None:
        request = _request({"X-Forwarded-For": "203.0.113.5, 10.0.0.1"})
        assert client_key(request) == "203.0.113.5"

    def test_socket_peer_without_forwarding(self) -> None:
        assert client_key(_request()) == "198.51.100.7"

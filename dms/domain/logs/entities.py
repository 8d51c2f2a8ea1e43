"""
Domain entities for the log viewer.

Entities are plain data containers with no framework dependencies.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional


@dataclass(frozen=True)
class LogEntry:
    """One JSON line of a server log file."""

    timestamp: datetime
    correlation_id: str
    level: str
    message: str
    service: str = ""
    environment: str = ""
    data: Optional[dict[str, Any]] = None
    request_id: Optional[str] = None
    user_id: Optional[str] = None


@dataclass(frozen=True)
class ErrorLogEntry:
    """A log entry as shown on the error log screen.

    ``level`` uses ``warning`` where the file says ``warn``.
    """

    id: str
    timestamp: datetime
    level: str
    message: str
    context: Optional[dict[str, Any]] = None
    request_id: Optional[str] = None
    user_id: Optional[str] = None


@dataclass(frozen=True)
class LogFileInfo:
    filename: str
    display_name: str
    size: int
    last_modified: datetime


@dataclass(frozen=True)
class LogFilters:
    """Criteria applied by :func:`dms.domain.logs.queries.filter_logs`.

    Attributes:
        level: Exact level to keep (``debug``, ``info``, ``warn``, ``error``).
        start: Drop entries logged before this instant.
        end: Drop entries logged after this instant.
        search: Case-insensitive substring of the message.
    """

    level: Optional[str] = None
    start: Optional[datetime] = None
    end: Optional[datetime] = None
    search: Optional[str] = None


@dataclass(frozen=True)
class ErrorLogPage:
    logs: list[ErrorLogEntry] = field(default_factory=list)
    total_count: int = 0
    current_page: int = 1
    total_pages: int = 0

"""
Domain service: filtering, mapping and paging of log entries.

Pure functions; inputs are never mutated.
"""

import math
from datetime import datetime, timezone
from typing import Iterable

from dms.domain.logs.entities import ErrorLogEntry, ErrorLogPage, LogEntry, LogFilters
from dms.domain.logs.errors import InvalidPaginationError

MAX_PAGE_SIZE = 1000


def as_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC so that they compare with aware ones."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def matches(entry: LogEntry, filters: LogFilters) -> bool:
    if filters.level and entry.level != filters.level:
        return False
    logged_at = as_utc(entry.timestamp)
    if filters.start is not None and logged_at < as_utc(filters.start):
        return False
    if filters.end is not None and logged_at > as_utc(filters.end):
        return False
    search = (filters.search or "").strip().lower()
    return not search or search in entry.message.lower()


def filter_logs(entries: Iterable[LogEntry], filters: LogFilters) -> list[LogEntry]:
    return [entry for entry in entries if matches(entry, filters)]


def newest_first(entries: Iterable[LogEntry]) -> list[LogEntry]:
    return sorted(entries, key=lambda entry: as_utc(entry.timestamp), reverse=True)


def to_error_log_entry(entry: LogEntry) -> ErrorLogEntry:
    return ErrorLogEntry(
        id=entry.correlation_id,
        timestamp=entry.timestamp,
        level="warning" if entry.level == "warn" else entry.level,
        message=entry.message,
        context=entry.data,
        request_id=entry.request_id or entry.correlation_id,
        user_id=entry.user_id,
    )


def paginate_logs(entries: list[ErrorLogEntry], page: int, limit: int) -> ErrorLogPage:
    """Slice one page out of ``entries``.

    Raises:
        InvalidPaginationError: If ``page < 1`` or ``limit`` is outside 1..1000.
    """
    if page < 1 or limit < 1 or limit > MAX_PAGE_SIZE:
        raise InvalidPaginationError(page, limit)
    start = (page - 1) * limit
    return ErrorLogPage(
        logs=entries[start : start + limit],
        total_count=len(entries),
        current_page=page,
        total_pages=math.ceil(len(entries) / limit),
    )

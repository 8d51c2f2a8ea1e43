"""
Use case: browse, filter and delete server log files.

Input:  LogFilters, page, limit (error log listing); filename (deletion)
Output: ErrorLogPage, LogFileInfo list, (success, message)
Failure cases: InvalidPaginationError.
"""

from typing import Optional

from dms.domain.logs.entities import ErrorLogPage, LogFileInfo, LogFilters
from dms.domain.logs.ports import LogFileStore
from dms.domain.logs.queries import (
    filter_logs,
    newest_first,
    paginate_logs,
    to_error_log_entry,
)


class ViewLogsUseCase:
    def __init__(self, store: LogFileStore) -> None:
        self._store = store

    def list_files(self) -> list[LogFileInfo]:
        return self._store.list_files()

    def delete_file(self, filename: str) -> tuple[bool, str]:
        return self._store.delete_file(filename)

    def error_logs(
        self,
        filters: LogFilters,
        page: int = 1,
        limit: int = 50,
        filename: Optional[str] = None,
    ) -> ErrorLogPage:
        """Newest first, filtered, then paged.

        Raises:
            InvalidPaginationError: If ``page`` or ``limit`` is out of range.
        """
        entries = newest_first(self._store.read_entries(filename))
        matching = [to_error_log_entry(e) for e in filter_logs(entries, filters)]
        return paginate_logs(matching, page, limit)

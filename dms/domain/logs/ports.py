"""
Port interface for reading and removing server log files.
"""

from abc import ABC, abstractmethod
from typing import Optional

from dms.domain.logs.entities import LogEntry, LogFileInfo


class LogFileStore(ABC):
    """Port for the directory holding JSON lines log files."""

    @abstractmethod
    def list_files(self) -> list[LogFileInfo]:
        """Return the ``.log`` files, most recently modified first."""
        raise NotImplementedError

    @abstractmethod
    def read_entries(self, filename: Optional[str] = None) -> list[LogEntry]:
        """Return the entries of one file, or of every file when None.

        Malformed lines and unreadable files are skipped.
        """
        raise NotImplementedError

    @abstractmethod
    def delete_file(self, filename: str) -> tuple[bool, str]:
        """Remove a log file; returns ``(success, message)``."""
        raise NotImplementedError

"""
Log file adapter.

Implements LogFileStore over a directory of JSON lines files as written
by :class:`dms.shared.logging.JsonLineFormatter`.
"""

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

from dateutil import parser as date_parser

from dms.domain.logs.entities import LogEntry, LogFileInfo
from dms.domain.logs.ports import LogFileStore

logger = logging.getLogger(__name__)

LOG_SUFFIX = ".log"


def parse_log_line(line: str) -> Optional[LogEntry]:
    """Turn one JSON line into an entry; None when it is not a log record."""
    try:
        raw: Any = json.loads(line)
        if not isinstance(raw, dict):
            return None
        context = raw.get("context") if isinstance(raw.get("context"), dict) else {}
        data = raw.get("data")
        return LogEntry(
            timestamp=date_parser.isoparse(raw["timestamp"]),
            correlation_id=str(raw.get("correlationId", "")),
            level=str(raw["level"]),
            message=str(raw["message"]),
            service=str(raw.get("service", "")),
            environment=str(raw.get("environment", "")),
            data=data if isinstance(data, dict) else None,
            request_id=context.get("requestId"),
            user_id=context.get("userId"),
        )
    except (KeyError, TypeError, ValueError):
        return None


class LogFileStoreAdapter(LogFileStore):
    """Reads ``*.log`` files directly inside ``directory``; subdirectories are ignored."""

    def __init__(self, directory: str) -> None:
        self._directory = Path(directory) if directory else None

    def _resolve(self, filename: str) -> Optional[Path]:
        """Return the file path, or None for names that leave the directory."""
        if self._directory is None or Path(filename).name != filename:
            return None
        return self._directory / filename

    def _log_paths(self) -> list[Path]:
        if self._directory is None or not self._directory.is_dir():
            return []
        return [
            path
            for path in self._directory.iterdir()
            if path.suffix == LOG_SUFFIX and path.is_file()
        ]

    def list_files(self) -> list[LogFileInfo]:
        files = []
        for path in self._log_paths():
            try:
                stats = path.stat()
            except OSError:
                continue
            files.append(
                LogFileInfo(
                    filename=path.name,
                    display_name=path.stem.replace("-", " "),
                    size=stats.st_size,
                    last_modified=datetime.fromtimestamp(stats.st_mtime, timezone.utc),
                )
            )
        return sorted(files, key=lambda info: info.last_modified, reverse=True)

    def read_entries(self, filename: Optional[str] = None) -> list[LogEntry]:
        if filename:
            path = self._resolve(filename)
            paths = [path] if path is not None and path.is_file() else []
        else:
            paths = self._log_paths()

        entries: list[LogEntry] = []
        for path in paths:
            try:
                text = path.read_text(encoding="utf-8")
            except (OSError, UnicodeDecodeError) as exc:
                logger.warning("Skipping unreadable log file %s: %s", path.name, exc)
                continue
            for line in text.splitlines():
                if line.strip():
                    entry = parse_log_line(line)
                    if entry is not None:
                        entries.append(entry)
        return entries

    def delete_file(self, filename: str) -> tuple[bool, str]:
        if not filename.endswith(LOG_SUFFIX):
            return False, "Invalid file type"
        path = self._resolve(filename)
        if path is None or not path.is_file():
            return False, "File not found"
        try:
            path.unlink()
        except OSError as exc:
            logger.error("Failed to delete log file %s: %s", filename, exc)
            return False, "Failed to delete file"
        logger.info("Deleted log file %s", filename)
        return True, "File deleted successfully"

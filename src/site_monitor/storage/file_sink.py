"""
Durable per-target text log.

Each target gets <data_dir>/<sanitized name>.txt with a header and one block
per health check. The in-memory result log stays authoritative; write
failures here are logged and swallowed.
"""
from __future__ import annotations

import logging
import re
from datetime import datetime
from pathlib import Path
from typing import Union

from site_monitor.storage.models import HealthCheckRecord

logger = logging.getLogger(__name__)

_UNSAFE_CHARS_RE = re.compile(r"[^a-z0-9]", re.IGNORECASE)

SEPARATOR = "=" * 31
RECORD_SEPARATOR = "-" * 40


def sanitize_file_name(name: str) -> str:
    """Lower-case the name and replace every non-alphanumeric char with '_'."""
    return _UNSAFE_CHARS_RE.sub("_", name).lower()


class FileLogSink:
    """
    Appends health check results to one text file per target.

    Usage:
        sink = FileLogSink("data")
        sink.create_target_file("Example API", "https://api.example.com")
        sink.append_record("Example API", record)
    """

    def __init__(self, data_dir: Union[str, Path] = "data") -> None:
        self._data_dir = Path(data_dir)

    @property
    def data_dir(self) -> Path:
        return self._data_dir

    def path_for(self, name: str) -> Path:
        return self._data_dir / f"{sanitize_file_name(name)}.txt"

    def create_target_file(self, name: str, url: str) -> bool:
        """
        Create (or truncate) the log file for a target.

        Returns:
            True if the file was written
        """
        try:
            self._data_dir.mkdir(parents=True, exist_ok=True)
            header = (
                "Website Health Monitor - Status Log\n"
                f"{SEPARATOR}\n"
                f"Website Name: {name}\n"
                f"URL: {url}\n"
                f"Created: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}\n"
                "\n"
                f"{SEPARATOR}\n"
                "Health Check Logs:\n"
                f"{SEPARATOR}\n"
                "\n"
            )
            self.path_for(name).write_text(header, encoding="utf-8")
            return True
        except OSError as e:
            logger.error(f"Failed to create log file for {name}: {e}")
            return False

    def append_record(self, name: str, record: HealthCheckRecord) -> bool:
        """
        Append one health check block to the target's file.

        Returns:
            True if the block was written
        """
        try:
            path = self.path_for(name)
            if not path.exists():
                self.create_target_file(name, record.url)

            local_time = record.timestamp.astimezone()
            health = "Healthy" if record.is_healthy else "Unhealthy"
            entry = (
                f"[{local_time.strftime('%Y-%m-%d %H:%M:%S')}]\n"
                f"Status Code: {record.status_code}\n"
                f"Health Status: {health}\n"
                f"URL: {record.url}\n"
                f"{RECORD_SEPARATOR}\n"
                "\n"
            )
            with open(path, "a", encoding="utf-8") as f:
                f.write(entry)
            return True
        except OSError as e:
            logger.error(f"Failed to append health check log for {name}: {e}")
            return False

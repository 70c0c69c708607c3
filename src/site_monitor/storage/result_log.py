"""
Bounded, most-recent-first log of health check records.

Eviction is strict FIFO by insertion across all targets: a target that is
checked far more often than the others can push their history out.
"""
from __future__ import annotations

import threading
from collections import deque
from typing import Deque, List, Optional

from site_monitor.storage.models import HealthCheckRecord, HealthStatus

DEFAULT_CAPACITY = 1000


class ResultLog:
    """
    Append-only store of probe outcomes.

    Usage:
        log = ResultLog()
        log.append(record)
        latest = log.latest_by_url("https://example.com")
    """

    def __init__(self, capacity: int = DEFAULT_CAPACITY) -> None:
        if capacity <= 0:
            raise ValueError("capacity must be positive")
        self._capacity = capacity
        # Head is the most recent record; maxlen drops from the tail.
        self._records: Deque[HealthCheckRecord] = deque(maxlen=capacity)
        self._lock = threading.Lock()

    @property
    def capacity(self) -> int:
        return self._capacity

    def append(self, record: HealthCheckRecord) -> None:
        with self._lock:
            self._records.appendleft(record)

    def list_all(self) -> List[HealthCheckRecord]:
        """All records, most recent first."""
        with self._lock:
            return list(self._records)

    def list_by_url(self, url: str) -> List[HealthCheckRecord]:
        """Records for one URL, keeping the global ordering."""
        with self._lock:
            return [r for r in self._records if r.url == url]

    def latest_by_url(self, url: str) -> Optional[HealthCheckRecord]:
        with self._lock:
            for record in self._records:
                if record.url == url:
                    return record
        return None

    def latest_status(self, url: str) -> HealthStatus:
        """Latest status for a URL, or the never-checked zero value."""
        record = self.latest_by_url(url)
        if record is None:
            return HealthStatus.never_checked(url)
        return HealthStatus.from_record(record)

    def clear(self) -> None:
        with self._lock:
            self._records.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

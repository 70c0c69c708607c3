"""
Storage Layer - In-memory target registry and result log.

Nothing here survives a process restart; the optional file sink is a
write-only audit trail, never read back.

Public API:
    Models:
        MonitoredTarget, HealthCheckRecord, HealthStatus

    Stores:
        TargetRegistry - Registered targets in insertion order
        ResultLog - Most-recent-first log bounded to 1000 records
        FileLogSink - Per-target text file log
"""
from site_monitor.storage.file_sink import FileLogSink, sanitize_file_name
from site_monitor.storage.models import (
    HEALTHY_STATUS_CODES,
    STATUS_TIMEOUT,
    STATUS_TRANSPORT_ERROR,
    HealthCheckRecord,
    HealthStatus,
    MonitoredTarget,
    is_healthy_status,
)
from site_monitor.storage.registry import TargetRegistry
from site_monitor.storage.result_log import DEFAULT_CAPACITY, ResultLog

__all__ = [
    # Models
    "MonitoredTarget",
    "HealthCheckRecord",
    "HealthStatus",
    "HEALTHY_STATUS_CODES",
    "STATUS_TIMEOUT",
    "STATUS_TRANSPORT_ERROR",
    "is_healthy_status",
    # Stores
    "TargetRegistry",
    "ResultLog",
    "DEFAULT_CAPACITY",
    "FileLogSink",
    "sanitize_file_name",
]

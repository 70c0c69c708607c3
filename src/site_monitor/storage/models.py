"""
Pydantic models for monitored targets and health check results.

HealthCheckRecord is frozen: a record is created once per probe and is only
ever evicted from the result log, never changed.
"""
from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field

# Status codes that count as healthy. Nothing else does (not even 204 or 3xx).
HEALTHY_STATUS_CODES = frozenset({200, 201})

# Synthetic status codes for probes that never received a response
STATUS_TRANSPORT_ERROR = 0
STATUS_TIMEOUT = 408


def new_id() -> str:
    """Generate an opaque unique id."""
    return uuid.uuid4().hex


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def is_healthy_status(status_code: int) -> bool:
    """Classify a status code. Only 200 and 201 are healthy."""
    return status_code in HEALTHY_STATUS_CODES


# =============================================================================
# TARGETS
# =============================================================================


class MonitoredTarget(BaseModel):
    """A registered URL to probe."""

    id: str = Field(default_factory=new_id)
    url: str
    name: str
    enabled: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump()


# =============================================================================
# HEALTH CHECKS
# =============================================================================


class HealthCheckRecord(BaseModel):
    """
    Outcome of a single probe.

    status_code is 0 for transport failures (DNS, connection refused, TLS),
    408 for timeouts, otherwise the HTTP status received. The timestamp is
    when the check was initiated, not when it completed.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=new_id)
    url: str
    timestamp: datetime
    status_code: int
    is_healthy: bool

    @classmethod
    def from_status(
        cls,
        url: str,
        timestamp: datetime,
        status_code: int,
    ) -> "HealthCheckRecord":
        """Build a record, deriving is_healthy from the status code."""
        return cls(
            url=url,
            timestamp=timestamp,
            status_code=status_code,
            is_healthy=is_healthy_status(status_code),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "url": self.url,
            "timestamp": self.timestamp.isoformat(),
            "status_code": self.status_code,
            "is_healthy": self.is_healthy,
        }


class HealthStatus(BaseModel):
    """
    Latest known status of a target, derived from the result log.

    A target that was never checked gets the zero value: status 0,
    unhealthy, and no last_checked time.
    """

    model_config = ConfigDict(frozen=True)

    url: str
    last_checked: Optional[datetime] = None
    status_code: int = STATUS_TRANSPORT_ERROR
    is_healthy: bool = False

    @classmethod
    def never_checked(cls, url: str) -> "HealthStatus":
        return cls(url=url)

    @classmethod
    def from_record(cls, record: HealthCheckRecord) -> "HealthStatus":
        return cls(
            url=record.url,
            last_checked=record.timestamp,
            status_code=record.status_code,
            is_healthy=record.is_healthy,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "url": self.url,
            "last_checked": self.last_checked.isoformat() if self.last_checked else "",
            "status_code": self.status_code,
            "is_healthy": self.is_healthy,
        }

"""
Exceptions surfaced to callers of the monitoring core.

Only bad input and missing targets are reported synchronously. Probe,
dispatch and sink failures are absorbed inside the core and never raised.
"""
from __future__ import annotations

from typing import Optional


class MonitorError(Exception):
    """Base exception for site monitor errors."""
    pass


class InvalidInputError(MonitorError):
    """Rejected registration or check payload."""

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.field = field


class TargetNotFoundError(MonitorError):
    """Operation referenced a target id that is not registered."""

    def __init__(self, target_id: str):
        super().__init__(f"Target not found: {target_id}")
        self.target_id = target_id

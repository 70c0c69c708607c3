"""
Core Layer - Scheduling and orchestration.

This module provides:
    - MonitorService: Owner of the monitoring core, used by the dashboard
    - MonitorScheduler: Periodic fan-out of health checks
    - SchedulerConfig: Interval and warm-up configuration

Data Flow:
    1. Scheduler wakes on its timer
    2. Enabled targets are read from the registry
    3. Each target is probed concurrently
    4. Each record is logged, written to the file sink and run through the
       notification state machine
    5. Down/recovered alerts are dispatched in the background
"""

from .scheduler import MonitorScheduler, SchedulerConfig
from .service import MonitorService

__all__ = [
    "MonitorService",
    "MonitorScheduler",
    "SchedulerConfig",
]

"""
Monitoring Layer - Probing, alert decisions, alert delivery and dashboard.

This module provides:
    - ProbeExecutor: One bounded-timeout GET per check (aiohttp)
    - NotificationStateMachine: Edge-triggered down/recovered decisions
    - NotificationState: UNKNOWN, HEALTHY, UNHEALTHY
    - NotificationDispatcher: Protocol for alert delivery
    - AlertManager: Telegram alert delivery
    - CompositeDispatcher: Fan-out to several dispatchers
    - Dashboard, create_app: Flask management API

Alert Debouncing:
    - The first observation of a URL never alerts
    - Repeated observations of the same health never alert
    - Recovery re-arms down alerting for the URL
"""

from .alerting import AlertManager, CompositeDispatcher, NotificationDispatcher
from .dashboard import Dashboard, create_app, logs_to_csv
from .notification_state import NotificationState, NotificationStateMachine
from .probe import DEFAULT_PROBE_TIMEOUT, ProbeExecutor

__all__ = [
    # Probing
    "ProbeExecutor",
    "DEFAULT_PROBE_TIMEOUT",
    # Alert decisions
    "NotificationStateMachine",
    "NotificationState",
    # Alert delivery
    "NotificationDispatcher",
    "AlertManager",
    "CompositeDispatcher",
    # Dashboard
    "Dashboard",
    "create_app",
    "logs_to_csv",
]

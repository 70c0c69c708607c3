"""
MonitorService - the monitoring core behind one explicit owner.

Owns the target registry, result log, notification state, probe executor
and scheduler, and exposes the operations the management layer calls.
"""
from __future__ import annotations

import logging
from typing import List, Optional

from site_monitor.core.scheduler import MonitorScheduler, SchedulerConfig
from site_monitor.errors import InvalidInputError
from site_monitor.monitoring.alerting import NotificationDispatcher
from site_monitor.monitoring.notification_state import NotificationStateMachine
from site_monitor.monitoring.probe import ProbeExecutor
from site_monitor.storage.file_sink import FileLogSink
from site_monitor.storage.models import (
    HealthCheckRecord,
    HealthStatus,
    MonitoredTarget,
)
from site_monitor.storage.registry import TargetRegistry
from site_monitor.storage.result_log import DEFAULT_CAPACITY, ResultLog

logger = logging.getLogger(__name__)


class MonitorService:
    """
    Entry point to the monitoring core.

    One instance per process. Construct it explicitly and pass it to the
    dashboard; nothing here is a module-level singleton.

    Usage:
        service = MonitorService(dispatcher=AlertManager(...))
        target = service.register_target("https://api.example.com", "Example API")
        record = await service.check_now(target.url)
        await service.start()
        ...
        await service.close()
    """

    def __init__(
        self,
        registry: Optional[TargetRegistry] = None,
        result_log: Optional[ResultLog] = None,
        prober: Optional[ProbeExecutor] = None,
        notification_states: Optional[NotificationStateMachine] = None,
        dispatcher: Optional[NotificationDispatcher] = None,
        sink: Optional[FileLogSink] = None,
        scheduler_config: Optional[SchedulerConfig] = None,
        log_capacity: int = DEFAULT_CAPACITY,
    ) -> None:
        self.registry = registry or TargetRegistry()
        self.result_log = result_log or ResultLog(capacity=log_capacity)
        self.prober = prober or ProbeExecutor()
        self.notification_states = notification_states or NotificationStateMachine()
        self.dispatcher = dispatcher
        self.sink = sink

        self.scheduler = MonitorScheduler(
            registry=self.registry,
            result_log=self.result_log,
            prober=self.prober,
            notification_states=self.notification_states,
            dispatcher=dispatcher,
            sink=sink,
            config=scheduler_config,
        )

    # -------------------------------------------------------------------------
    # Targets
    # -------------------------------------------------------------------------

    def register_target(self, url: str, name: Optional[str] = None) -> MonitoredTarget:
        """
        Register a target and create its log file.

        Raises:
            InvalidInputError: If url is empty or not a string
        """
        target = self.registry.register(url, name)

        if self.sink is not None:
            try:
                self.sink.create_target_file(target.name, target.url)
            except Exception as e:
                logger.error(f"Failed to create website file for {target.url}: {e}")

        return target

    def deregister_target(self, target_id: str) -> None:
        """Remove a target. Unknown ids are a no-op."""
        self.registry.deregister(target_id)

    def set_enabled(self, target_id: str, enabled: bool) -> MonitoredTarget:
        """
        Raises:
            TargetNotFoundError: If the id is not registered
        """
        return self.registry.set_enabled(target_id, enabled)

    def toggle_enabled(self, target_id: str) -> MonitoredTarget:
        return self.registry.toggle_enabled(target_id)

    def list_targets(self) -> List[MonitoredTarget]:
        return self.registry.list()

    # -------------------------------------------------------------------------
    # Checks and results
    # -------------------------------------------------------------------------

    async def check_now(self, url: str) -> HealthCheckRecord:
        """
        Check one URL immediately, outside the periodic cadence.

        Runs the same probe, log and notify sequence as a scheduled tick.
        Alerts are still dispatched in the background.

        Raises:
            InvalidInputError: If url is empty or not a string
        """
        if not isinstance(url, str) or not url.strip():
            raise InvalidInputError("URL is required", field="url")
        return await self.scheduler.check_url(url.strip())

    async def run_tick(self) -> List[HealthCheckRecord]:
        """Run one full round of checks now."""
        return await self.scheduler.run_tick()

    def list_logs(self, url: Optional[str] = None) -> List[HealthCheckRecord]:
        """Logs, most recent first, optionally for one URL."""
        if url:
            return self.result_log.list_by_url(url)
        return self.result_log.list_all()

    def latest_statuses(self) -> List[HealthStatus]:
        """One status per registered target, in registry order."""
        return [
            self.result_log.latest_status(target.url)
            for target in self.registry.list()
        ]

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    @property
    def is_running(self) -> bool:
        return self.scheduler.is_running

    async def start(self) -> None:
        await self.scheduler.start()

    async def stop(self) -> None:
        await self.scheduler.stop()

    async def wait_for_idle(self) -> None:
        await self.scheduler.wait_for_idle()

    async def close(self) -> None:
        """Stop scheduling, let in-flight work finish, release the session."""
        await self.scheduler.stop()
        await self.scheduler.wait_for_idle()
        await self.prober.close()

    def reset_for_test(self) -> None:
        """Forget all targets, records and notification state."""
        self.registry.clear()
        self.result_log.clear()
        self.notification_states.clear()

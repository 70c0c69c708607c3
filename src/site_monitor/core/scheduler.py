"""
MonitorScheduler - periodic fan-out health checking.

Runs one initial tick shortly after start, then a tick every interval
measured from start. A tick probes every enabled target concurrently, logs
each result and fires edge-triggered alerts without waiting on them.
"""
from __future__ import annotations

import asyncio
import functools
import inspect
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, List, Optional, Set

from site_monitor.storage.models import HealthCheckRecord, MonitoredTarget

if TYPE_CHECKING:
    from site_monitor.monitoring.alerting import NotificationDispatcher
    from site_monitor.monitoring.notification_state import NotificationStateMachine
    from site_monitor.monitoring.probe import ProbeExecutor
    from site_monitor.storage.file_sink import FileLogSink
    from site_monitor.storage.registry import TargetRegistry
    from site_monitor.storage.result_log import ResultLog

logger = logging.getLogger(__name__)


@dataclass
class SchedulerConfig:
    """Configuration for the health check scheduler."""

    check_interval_seconds: float = 60
    # Lets the hosting process finish booting before the first tick
    initial_delay_seconds: float = 5

    def __post_init__(self):
        if self.check_interval_seconds <= 0:
            raise ValueError(
                f"check_interval_seconds must be positive, got {self.check_interval_seconds}"
            )
        if self.initial_delay_seconds < 0:
            raise ValueError(
                f"initial_delay_seconds must not be negative, got {self.initial_delay_seconds}"
            )


class MonitorScheduler:
    """
    Drives periodic health checks across all enabled targets.

    Ticks are spawned as independent tasks on a fixed cadence, so a slow
    tick never delays the next one and ticks may overlap. stop() only
    prevents future ticks; in-flight ticks run to completion.

    Only one scheduler should be active per process.

    Usage:
        scheduler = MonitorScheduler(
            registry=registry,
            result_log=result_log,
            prober=prober,
            notification_states=states,
            dispatcher=alert_manager,
        )
        await scheduler.start()
        # ... monitor runs ...
        await scheduler.stop()
    """

    def __init__(
        self,
        registry: "TargetRegistry",
        result_log: "ResultLog",
        prober: "ProbeExecutor",
        notification_states: "NotificationStateMachine",
        dispatcher: Optional["NotificationDispatcher"] = None,
        sink: Optional["FileLogSink"] = None,
        config: Optional[SchedulerConfig] = None,
    ) -> None:
        """
        Initialize the scheduler.

        Args:
            registry: Source of targets to check
            result_log: Where every probe result is appended
            prober: Executes the HTTP probes
            notification_states: Decides when a result warrants an alert
            dispatcher: Receives down/recovered alerts (None disables alerts)
            sink: Optional durable per-target log
            config: Timing configuration
        """
        self._registry = registry
        self._result_log = result_log
        self._prober = prober
        self._states = notification_states
        self._dispatcher = dispatcher
        self._sink = sink
        self._config = config or SchedulerConfig()

        self._running = False
        self._stop_event = asyncio.Event()
        self._timer_task: Optional[asyncio.Task] = None
        self._inflight_ticks: Set[asyncio.Task] = set()
        self._pending_dispatches: Set[asyncio.Future] = set()
        self._tick_count = 0

    @property
    def is_running(self) -> bool:
        """Whether the periodic timer is active."""
        return self._running

    @property
    def config(self) -> SchedulerConfig:
        return self._config

    @property
    def tick_count(self) -> int:
        """Number of ticks spawned by the timer since construction."""
        return self._tick_count

    async def start(self) -> None:
        """Start periodic health checks."""
        if self._running:
            logger.warning("Health check scheduler already running")
            return

        self._running = True
        self._stop_event.clear()
        self._timer_task = asyncio.create_task(
            self._timer_loop(),
            name="health_check_timer",
        )
        logger.info(
            f"Health check scheduler started "
            f"(interval={self._config.check_interval_seconds}s, "
            f"initial_delay={self._config.initial_delay_seconds}s)"
        )

    async def stop(self) -> None:
        """Stop scheduling ticks. In-flight ticks are left to finish."""
        if not self._running:
            return

        logger.info("Stopping health check scheduler...")
        self._running = False
        self._stop_event.set()

        if self._timer_task:
            if not self._timer_task.done():
                self._timer_task.cancel()
            await asyncio.gather(self._timer_task, return_exceptions=True)
            self._timer_task = None

        logger.info("Health check scheduler stopped")

    async def wait_for_idle(self) -> None:
        """Wait for in-flight ticks and alert dispatches to finish."""
        while True:
            pending = [
                f for f in (*self._inflight_ticks, *self._pending_dispatches)
                if not f.done()
            ]
            if not pending:
                return
            await asyncio.gather(*pending, return_exceptions=True)

    async def _timer_loop(self) -> None:
        """
        Spawn the initial tick after the warm-up delay, then one tick per
        interval aligned to the start time.
        """
        loop = asyncio.get_running_loop()
        started = loop.time()
        interval = self._config.check_interval_seconds

        try:
            if await self._wait(self._config.initial_delay_seconds):
                return
            self._spawn_tick()

            last_slot = 0
            while self._running:
                elapsed = loop.time() - started
                # Never fire the same slot twice, never burst to catch up
                slot = max(last_slot + 1, int(elapsed // interval) + 1)
                if await self._wait(started + slot * interval - loop.time()):
                    break
                self._spawn_tick()
                last_slot = slot

        except asyncio.CancelledError:
            pass
        except Exception as e:
            logger.error(f"Health check timer failed, scheduler stopped: {e}")
            self._running = False

    async def _wait(self, delay: float) -> bool:
        """Sleep up to delay seconds. Returns True if stop was requested."""
        try:
            await asyncio.wait_for(
                self._stop_event.wait(),
                timeout=max(delay, 0),
            )
            return True
        except asyncio.TimeoutError:
            return not self._running

    def _spawn_tick(self) -> None:
        self._tick_count += 1
        task = asyncio.create_task(
            self.run_tick(),
            name=f"health_check_tick_{self._tick_count}",
        )
        self._inflight_ticks.add(task)
        task.add_done_callback(self._tick_done)

    def _tick_done(self, task: asyncio.Task) -> None:
        self._inflight_ticks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error(f"Health check tick failed: {exc}")

    async def run_tick(self) -> List[HealthCheckRecord]:
        """
        Check every enabled target once, concurrently.

        Returns:
            Records for the checks that completed
        """
        targets = [t for t in self._registry.list() if t.enabled]
        if not targets:
            logger.debug("No enabled targets to check")
            return []

        logger.debug(f"Running health checks for {len(targets)} targets")
        results = await asyncio.gather(
            *(self.check_url(t.url) for t in targets),
            return_exceptions=True,
        )

        records: List[HealthCheckRecord] = []
        for target, result in zip(targets, results):
            if isinstance(result, BaseException):
                logger.error(f"Background health check failed for {target.url}: {result}")
                continue
            records.append(result)

        unhealthy = sum(1 for r in records if not r.is_healthy)
        if unhealthy:
            logger.info(f"Health checks complete: {unhealthy}/{len(records)} unhealthy")
        else:
            logger.debug(f"Health checks complete: {len(records)} healthy")

        return records

    async def check_url(self, url: str) -> HealthCheckRecord:
        """
        Probe one URL and apply the record: log, sink, notifications.

        URLs that are not registered are probed and logged, but get no
        sink entry and no alerts.
        """
        record = await self._prober.probe(url)
        self._result_log.append(record)

        target = self._registry.find_by_url(url)
        if target is None:
            logger.debug(f"Checked unregistered URL {url}, skipping side effects")
            return record

        self._write_sink(target, record)

        try:
            self._evaluate_notifications(target, record)
        except Exception as e:
            logger.error(f"Failed to evaluate notification state for {url}: {e}")

        return record

    def _write_sink(self, target: MonitoredTarget, record: HealthCheckRecord) -> None:
        if self._sink is None:
            return
        try:
            self._sink.append_record(target.name, record)
        except Exception as e:
            logger.error(f"Failed to append log to file for {target.url}: {e}")

    def _evaluate_notifications(
        self,
        target: MonitoredTarget,
        record: HealthCheckRecord,
    ) -> None:
        url = record.url

        if not record.is_healthy:
            if self._states.observe_down(url, record.is_healthy):
                logger.warning(
                    f"{target.name} is DOWN ({url}, status={record.status_code})"
                )
                self._dispatch("send_down", target, record)
            return

        if self._states.observe_recovered(url, record.is_healthy):
            logger.info(f"{target.name} RECOVERED ({url}, status={record.status_code})")
            self._dispatch("send_recovered", target, record)

        # Re-arm down alerts whether or not a recovery was announced
        self._states.reset(url)

    def _dispatch(
        self,
        method: str,
        target: MonitoredTarget,
        record: HealthCheckRecord,
    ) -> None:
        """Fire-and-forget an alert. Failures are only logged."""
        if self._dispatcher is None:
            return

        send = getattr(self._dispatcher, method)
        args = (target.name, record.url, record.status_code, record.timestamp)

        try:
            if inspect.iscoroutinefunction(send):
                future = asyncio.ensure_future(send(*args))
            else:
                loop = asyncio.get_running_loop()
                future = loop.run_in_executor(None, functools.partial(send, *args))
        except Exception as e:
            logger.error(f"Failed to dispatch {method} for {record.url}: {e}")
            return

        self._pending_dispatches.add(future)
        future.add_done_callback(
            functools.partial(self._dispatch_done, method, record.url)
        )

    def _dispatch_done(self, method: str, url: str, future: asyncio.Future) -> None:
        self._pending_dispatches.discard(future)
        if future.cancelled():
            return
        exc = future.exception()
        if exc is not None:
            logger.error(f"Failed to send notifications ({method}) for {url}: {exc}")
        elif future.result() is False:
            logger.warning(f"Notification {method} for {url} was not delivered")

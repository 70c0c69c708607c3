"""
Core layer test fixtures.

Tests the scheduler and MonitorService without any network access.
"""
import asyncio
import pytest
from unittest.mock import MagicMock

from site_monitor.core.scheduler import MonitorScheduler, SchedulerConfig
from site_monitor.core.service import MonitorService
from site_monitor.monitoring.notification_state import NotificationStateMachine
from site_monitor.storage.models import HealthCheckRecord, utc_now
from site_monitor.storage.registry import TargetRegistry
from site_monitor.storage.result_log import ResultLog


class FakeProber:
    """Probe stand-in that answers from per-URL scripts of status codes."""

    def __init__(self, default_status=200):
        self.default_status = default_status
        self.delay = 0.0
        self.calls = []
        self._scripts = {}

    def script(self, url, *outcomes):
        """Queue outcomes for a URL: status codes or exceptions to raise."""
        self._scripts.setdefault(url, []).extend(outcomes)

    async def probe(self, url):
        self.calls.append(url)
        timestamp = utc_now()
        if self.delay:
            await asyncio.sleep(self.delay)

        queue = self._scripts.get(url)
        outcome = queue.pop(0) if queue else self.default_status
        if isinstance(outcome, BaseException):
            raise outcome
        return HealthCheckRecord.from_status(url, timestamp, outcome)

    async def close(self):
        pass


# =============================================================================
# Component Fixtures
# =============================================================================

@pytest.fixture
def prober():
    return FakeProber()


@pytest.fixture
def dispatcher():
    """Synchronous dispatcher recording every alert."""
    mock = MagicMock()
    mock.send_down = MagicMock(return_value=True)
    mock.send_recovered = MagicMock(return_value=True)
    return mock


@pytest.fixture
def registry():
    return TargetRegistry()


@pytest.fixture
def result_log():
    return ResultLog()


@pytest.fixture
def states():
    return NotificationStateMachine()


@pytest.fixture
def fast_config():
    """Short timings so timer tests finish quickly."""
    return SchedulerConfig(check_interval_seconds=0.1, initial_delay_seconds=0.02)


@pytest.fixture
def scheduler(registry, result_log, prober, states, dispatcher, fast_config):
    """Scheduler wired to in-memory components."""
    return MonitorScheduler(
        registry=registry,
        result_log=result_log,
        prober=prober,
        notification_states=states,
        dispatcher=dispatcher,
        config=fast_config,
    )


@pytest.fixture
def service(prober, dispatcher, fast_config):
    """MonitorService with a fake prober, recording dispatcher and no sink."""
    return MonitorService(
        prober=prober,
        dispatcher=dispatcher,
        scheduler_config=fast_config,
    )

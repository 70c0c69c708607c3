"""
Monitoring layer test fixtures.

Tests probes, notification state, alerting, and dashboard endpoints.
"""
import socket

import pytest
from unittest.mock import MagicMock, AsyncMock

from site_monitor.core.service import MonitorService
from site_monitor.monitoring.alerting import AlertManager
from site_monitor.monitoring.dashboard import create_app
from site_monitor.monitoring.notification_state import NotificationStateMachine
from site_monitor.storage.models import HealthCheckRecord, utc_now


# =============================================================================
# HTTP Session Fixtures
# =============================================================================

@pytest.fixture
def make_session():
    """
    Factory for a mock aiohttp session.

    Either returns a response with the given status, or raises exc from
    session.get() (or from entering the response context with raise_on_enter).
    """

    def _make(status=200, exc=None, raise_on_enter=False):
        session = MagicMock()
        session.closed = False
        session.close = AsyncMock()

        response = MagicMock()
        response.status = status

        ctx = MagicMock()
        if exc is not None and raise_on_enter:
            ctx.__aenter__ = AsyncMock(side_effect=exc)
        else:
            ctx.__aenter__ = AsyncMock(return_value=response)
        ctx.__aexit__ = AsyncMock(return_value=False)

        if exc is not None and not raise_on_enter:
            session.get = MagicMock(side_effect=exc)
        else:
            session.get = MagicMock(return_value=ctx)
        return session

    return _make


# =============================================================================
# Notification Fixtures
# =============================================================================

@pytest.fixture
def states():
    """Fresh notification state machine."""
    return NotificationStateMachine()


@pytest.fixture
def mock_telegram():
    """Mock Telegram API client."""
    api = MagicMock()
    api.send_message = MagicMock(return_value=None)
    return api


@pytest.fixture
def alert_manager(mock_telegram):
    """AlertManager delivering through the mock Telegram client."""
    return AlertManager(
        telegram_bot_token="test_token",
        telegram_chat_id="test_chat",
        _telegram_api=mock_telegram,
    )


# =============================================================================
# Dashboard Fixtures
# =============================================================================

@pytest.fixture
def status_by_url():
    """Status code each stub probe returns, keyed by URL (default 200)."""
    return {}


@pytest.fixture
def stub_prober(status_by_url):
    """Prober that answers from status_by_url without any network."""
    prober = MagicMock()

    async def _probe(url):
        return HealthCheckRecord.from_status(url, utc_now(), status_by_url.get(url, 200))

    prober.probe = AsyncMock(side_effect=_probe)
    prober.close = AsyncMock()
    return prober


@pytest.fixture
def mock_dispatcher():
    dispatcher = MagicMock()
    dispatcher.send_down = MagicMock(return_value=True)
    dispatcher.send_recovered = MagicMock(return_value=True)
    return dispatcher


@pytest.fixture
def service(stub_prober, mock_dispatcher):
    """MonitorService with a stub prober and no file sink."""
    return MonitorService(prober=stub_prober, dispatcher=mock_dispatcher)


@pytest.fixture
def app(service):
    """Dashboard app running coroutines on a temporary loop."""
    return create_app(service, testing=True)


@pytest.fixture
def client(app):
    """Flask test client."""
    return app.test_client()


@pytest.fixture
def unused_local_url():
    """URL on a local port nothing is listening on."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        port = sock.getsockname()[1]
    return f"http://127.0.0.1:{port}/"

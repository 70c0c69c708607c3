"""
Shared test fixtures for integration tests.

This file provides fixtures that span multiple components,
unlike component-specific fixtures in src/site_monitor/{component}/tests/conftest.py
"""

import socket

import pytest
from unittest.mock import MagicMock


# =============================================================================
# Network Fixtures
# =============================================================================

@pytest.fixture
def unused_url():
    """URL on a local port nothing is listening on."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        port = sock.getsockname()[1]
    return f"http://127.0.0.1:{port}/"


# =============================================================================
# Alert Fixtures
# =============================================================================

@pytest.fixture
def recording_dispatcher():
    """Dispatcher that records down/recovered alerts."""
    dispatcher = MagicMock()
    dispatcher.send_down = MagicMock(return_value=True)
    dispatcher.send_recovered = MagicMock(return_value=True)
    return dispatcher

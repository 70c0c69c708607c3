"""
Storage layer test fixtures.

Tests the target registry, result log and file sink.
"""
import pytest
from datetime import datetime, timedelta, timezone

from site_monitor.storage import (
    FileLogSink,
    HealthCheckRecord,
    ResultLog,
    TargetRegistry,
)


# =============================================================================
# Store Fixtures
# =============================================================================

@pytest.fixture
def registry():
    """Empty target registry."""
    return TargetRegistry()


@pytest.fixture
def result_log():
    """Empty result log with the default capacity."""
    return ResultLog()


@pytest.fixture
def sink(tmp_path):
    """File sink writing into a temporary directory."""
    return FileLogSink(tmp_path / "data")


# =============================================================================
# Record Fixtures
# =============================================================================

@pytest.fixture
def base_time():
    return datetime(2026, 3, 1, 10, 30, 0, tzinfo=timezone.utc)


@pytest.fixture
def make_record(base_time):
    """Factory for records with increasing timestamps."""
    counter = {"n": 0}

    def _make(url="https://example.com", status_code=200):
        counter["n"] += 1
        return HealthCheckRecord.from_status(
            url,
            base_time + timedelta(seconds=counter["n"]),
            status_code,
        )

    return _make

"""
Integration test fixtures.

These fixtures start a real HTTP server on localhost and wire a
MonitorService with a real ProbeExecutor against it.
"""

import asyncio

import pytest
import pytest_asyncio
from aiohttp import web
from aiohttp.test_utils import TestServer

from site_monitor.core import MonitorService, SchedulerConfig
from site_monitor.monitoring import ProbeExecutor
from site_monitor.storage import FileLogSink

# Mark all tests in this directory as integration tests
pytestmark = pytest.mark.integration


@pytest.fixture
def site_state():
    """Status the /flaky endpoint answers with. Tests flip it."""
    return {"status": 200}


@pytest_asyncio.fixture
async def site_server(site_state):
    """
    Local HTTP server with one route per outcome.

    /ok -> 200, /created -> 201, /error -> 503, /redirect -> 302,
    /slow sleeps past any probe timeout, /flaky answers site_state["status"].
    """

    async def ok(request):
        return web.Response(text="ok")

    async def created(request):
        return web.Response(status=201)

    async def error(request):
        return web.Response(status=503)

    async def redirect(request):
        return web.Response(status=302, headers={"Location": "/ok"})

    async def slow(request):
        await asyncio.sleep(2)
        return web.Response(text="late")

    async def flaky(request):
        return web.Response(status=site_state["status"])

    app = web.Application()
    app.router.add_get("/ok", ok)
    app.router.add_get("/created", created)
    app.router.add_get("/error", error)
    app.router.add_get("/redirect", redirect)
    app.router.add_get("/slow", slow)
    app.router.add_get("/flaky", flaky)

    server = TestServer(app)
    await server.start_server()

    yield server

    await server.close()


@pytest.fixture
def site_url(site_server):
    """Build an absolute URL on the local server."""

    def _url(path):
        return str(site_server.make_url(path))

    return _url


@pytest_asyncio.fixture
async def live_service(recording_dispatcher, tmp_path):
    """MonitorService probing for real, with a short timeout and fast cadence."""
    service = MonitorService(
        prober=ProbeExecutor(timeout=0.5),
        dispatcher=recording_dispatcher,
        sink=FileLogSink(tmp_path / "data"),
        scheduler_config=SchedulerConfig(
            check_interval_seconds=0.2,
            initial_delay_seconds=0.05,
        ),
    )

    yield service

    await service.close()

"""
Probe executor - one bounded-timeout GET per check.

Every failure mode is encoded in the returned record rather than raised, so
callers can treat all probes the same way.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Optional

import aiohttp

from site_monitor.storage.models import (
    STATUS_TIMEOUT,
    STATUS_TRANSPORT_ERROR,
    HealthCheckRecord,
    utc_now,
)

logger = logging.getLogger(__name__)

DEFAULT_PROBE_TIMEOUT = 10.0
USER_AGENT = "Website-Health-Monitor/1.0"


class ProbeExecutor:
    """
    Performs HTTP liveness probes.

    Outcomes:
        - Response received: status code as observed, healthy iff 200/201
        - Timeout: status 408, unhealthy
        - Any other transport failure (DNS, refused, TLS): status 0, unhealthy

    Usage:
        async with ProbeExecutor() as prober:
            record = await prober.probe("https://example.com")
    """

    def __init__(
        self,
        session: Optional[aiohttp.ClientSession] = None,
        timeout: float = DEFAULT_PROBE_TIMEOUT,
    ) -> None:
        """
        Initialize the probe executor.

        Args:
            session: Optional aiohttp session (created lazily if not provided)
            timeout: Hard timeout for a single probe in seconds
        """
        self._session = session
        self._owns_session = session is None
        self._timeout_seconds = timeout
        self._timeout = aiohttp.ClientTimeout(total=timeout)

    @property
    def timeout(self) -> float:
        return self._timeout_seconds

    async def __aenter__(self) -> "ProbeExecutor":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def close(self) -> None:
        """Close the session if we created it."""
        if self._owns_session and self._session:
            await self._session.close()
            self._session = None

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or (self._owns_session and self._session.closed):
            self._session = aiohttp.ClientSession(
                headers={"User-Agent": USER_AGENT},
            )
            self._owns_session = True
        return self._session

    async def probe(self, url: str) -> HealthCheckRecord:
        """
        Probe a URL once.

        Args:
            url: URL to GET

        Returns:
            HealthCheckRecord describing the outcome (never raises)
        """
        timestamp = utc_now()
        status_code = STATUS_TRANSPORT_ERROR

        try:
            session = self._get_session()
            async with session.get(
                url,
                timeout=self._timeout,
                headers={"User-Agent": USER_AGENT},
            ) as response:
                status_code = response.status

        except asyncio.TimeoutError:
            logger.debug(f"Probe timed out after {self._timeout_seconds}s: {url}")
            status_code = STATUS_TIMEOUT

        except aiohttp.ClientError as e:
            logger.debug(f"Probe transport error for {url}: {e}")
            status_code = STATUS_TRANSPORT_ERROR

        except Exception as e:
            logger.warning(f"Unexpected probe error for {url}: {e}")
            status_code = STATUS_TRANSPORT_ERROR

        record = HealthCheckRecord.from_status(url, timestamp, status_code)
        logger.debug(
            f"Probe {url}: status={record.status_code} healthy={record.is_healthy}"
        )
        return record

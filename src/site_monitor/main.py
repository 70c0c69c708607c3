"""
Site Health Monitor - Main Entry Point

Usage:
    python -m site_monitor.main [--log-level LEVEL] [--no-dashboard]
    python -m site_monitor.main --once   # Run one round of checks and exit

Configuration:
    The monitor reads configuration from:
    1. Environment variables (optionally from a .env file)
    2. Command line arguments

Environment Variables:
    CHECK_INTERVAL_SECONDS    Seconds between check rounds (default: 60)
    INITIAL_DELAY_SECONDS     Delay before the first round (default: 5)
    PROBE_TIMEOUT_SECONDS     Timeout for one probe (default: 10)
    LOG_CAPACITY              Health check records kept in memory (default: 1000)
    DATA_DIR                  Directory for per-site log files (default: data)
    FILE_LOGGING_ENABLED      Write per-site log files (default: true)
    DASHBOARD_ENABLED         Serve the management API (default: true)
    DASHBOARD_HOST            Dashboard bind address (default: 0.0.0.0)
    DASHBOARD_PORT            Dashboard port (default: 9050)
    TELEGRAM_BOT_TOKEN        Telegram bot token for alerts
    TELEGRAM_CHAT_ID          Telegram chat ID for alerts
    MONITOR_URLS              Comma-separated targets to register at startup,
                              each "url" or "name=url"
    LOG_LEVEL                 Logging level (DEBUG/INFO/WARNING/ERROR)
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
import signal
import sys
import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional, Tuple

# Configure logging before imports
LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()
logging.basicConfig(
    level=getattr(logging, LOG_LEVEL, logging.INFO),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger(__name__)

from site_monitor.core import MonitorService, SchedulerConfig  # noqa: E402
from site_monitor.errors import InvalidInputError  # noqa: E402
from site_monitor.monitoring import AlertManager, Dashboard, ProbeExecutor  # noqa: E402
from site_monitor.storage import FileLogSink  # noqa: E402


def _env_bool(name: str, default: str = "true") -> bool:
    return os.environ.get(name, default).lower() == "true"


def parse_monitor_urls(value: str) -> List[Tuple[Optional[str], str]]:
    """
    Parse MONITOR_URLS into (name, url) pairs.

    "Example=https://example.com,https://other.com" gives
    [("Example", "https://example.com"), (None, "https://other.com")].
    An "=" inside the URL itself (query strings) is not treated as a name.
    """
    entries: List[Tuple[Optional[str], str]] = []
    for raw in value.split(","):
        entry = raw.strip()
        if not entry:
            continue
        name, sep, url = entry.partition("=")
        if sep and "://" not in name:
            entries.append((name.strip() or None, url.strip()))
        else:
            entries.append((None, entry))
    return entries


@dataclass
class MonitorConfig:
    """Complete monitor configuration."""

    # Scheduling
    check_interval_seconds: float = 60
    initial_delay_seconds: float = 5
    probe_timeout_seconds: float = 10

    # Result log
    log_capacity: int = 1000

    # File sink
    data_dir: str = "data"
    file_logging_enabled: bool = True

    # Dashboard
    dashboard_enabled: bool = True
    dashboard_host: str = "0.0.0.0"
    dashboard_port: int = 9050

    # Alerts
    telegram_bot_token: Optional[str] = None
    telegram_chat_id: Optional[str] = None

    # Targets registered at startup
    monitor_urls: str = ""

    @classmethod
    def from_env(cls) -> "MonitorConfig":
        """Load configuration from environment variables."""
        return cls(
            check_interval_seconds=float(os.environ.get("CHECK_INTERVAL_SECONDS", "60")),
            initial_delay_seconds=float(os.environ.get("INITIAL_DELAY_SECONDS", "5")),
            probe_timeout_seconds=float(os.environ.get("PROBE_TIMEOUT_SECONDS", "10")),
            log_capacity=int(os.environ.get("LOG_CAPACITY", "1000")),
            data_dir=os.environ.get("DATA_DIR", "data"),
            file_logging_enabled=_env_bool("FILE_LOGGING_ENABLED"),
            dashboard_enabled=_env_bool("DASHBOARD_ENABLED"),
            dashboard_host=os.environ.get("DASHBOARD_HOST", "0.0.0.0"),
            dashboard_port=int(os.environ.get("DASHBOARD_PORT", "9050")),
            telegram_bot_token=os.environ.get("TELEGRAM_BOT_TOKEN"),
            telegram_chat_id=os.environ.get("TELEGRAM_CHAT_ID"),
            monitor_urls=os.environ.get("MONITOR_URLS", ""),
        )


def build_service(config: MonitorConfig) -> MonitorService:
    """Wire the monitoring core from configuration."""
    if config.telegram_bot_token and config.telegram_chat_id:
        alert_manager = AlertManager(
            telegram_bot_token=config.telegram_bot_token,
            telegram_chat_id=config.telegram_chat_id,
        )
        logger.info("Alerts: Telegram configured")
    else:
        alert_manager = AlertManager()  # No-op alerts
        logger.info("Alerts: Disabled (no Telegram config)")

    sink = FileLogSink(config.data_dir) if config.file_logging_enabled else None

    service = MonitorService(
        prober=ProbeExecutor(timeout=config.probe_timeout_seconds),
        dispatcher=alert_manager,
        sink=sink,
        scheduler_config=SchedulerConfig(
            check_interval_seconds=config.check_interval_seconds,
            initial_delay_seconds=config.initial_delay_seconds,
        ),
        log_capacity=config.log_capacity,
    )

    for name, url in parse_monitor_urls(config.monitor_urls):
        try:
            service.register_target(url, name)
        except InvalidInputError as e:
            logger.warning(f"Skipping invalid MONITOR_URLS entry {url!r}: {e}")

    return service


class SiteMonitor:
    """
    Process orchestrator.

    Manages the lifecycle of:
    - The monitoring core (scheduler, probes, alerts)
    - The dashboard (Flask in a background thread)
    """

    def __init__(self, config: MonitorConfig):
        self.config = config
        self.service = build_service(config)
        self._running = False
        self._shutdown_event = asyncio.Event()
        self._started_at: Optional[datetime] = None

        self._dashboard: Optional[Dashboard] = None
        self._dashboard_thread: Optional[threading.Thread] = None
        self._flask_server = None

    async def start(self) -> None:
        """Start monitoring and block until shutdown."""
        logger.info("=" * 60)
        logger.info("SITE HEALTH MONITOR")
        logger.info("=" * 60)
        logger.info(f"Targets: {len(self.service.list_targets())}")
        logger.info(f"Interval: {self.config.check_interval_seconds}s")
        logger.info("=" * 60)

        self._running = True
        self._started_at = datetime.now(timezone.utc)
        self._shutdown_event.clear()

        self._setup_signal_handlers()

        try:
            if self.config.dashboard_enabled:
                self._dashboard = Dashboard(
                    service=self.service,
                    event_loop=asyncio.get_running_loop(),
                    started_at=self._started_at,
                )
                self._start_dashboard()
            else:
                logger.info("Dashboard: Disabled via config")

            await self.service.start()

            logger.info("Monitor started successfully")
            logger.info("Press Ctrl+C to stop")

            await self._shutdown_event.wait()

        finally:
            await self.stop()

    async def stop(self) -> None:
        """Stop the monitor gracefully."""
        if not self._running:
            return

        logger.info("Shutting down...")
        self._running = False
        self._shutdown_event.set()

        if self._dashboard:
            try:
                self._stop_dashboard()
            except Exception as e:
                logger.warning(f"Error stopping dashboard: {e}")

        try:
            await self.service.close()
        except Exception as e:
            logger.warning(f"Error stopping monitor service: {e}")

        logger.info("Shutdown complete")

    async def run_once(self) -> int:
        """Run one round of checks, print the statuses, and exit."""
        try:
            records = await self.service.run_tick()
            await self.service.wait_for_idle()
        finally:
            await self.service.close()

        for status in self.service.latest_statuses():
            state = "HEALTHY" if status.is_healthy else "UNHEALTHY"
            print(f"{state:<10} {status.status_code:>3}  {status.url}")

        return 0 if all(r.is_healthy for r in records) else 2

    def _start_dashboard(self) -> None:
        """Serve the dashboard from a daemon thread next to the event loop."""
        from werkzeug.serving import make_server

        try:
            self._flask_server = make_server(
                host=self.config.dashboard_host,
                port=self.config.dashboard_port,
                app=self._dashboard.create_app(),
                threaded=True,
            )
        except OSError as e:
            logger.error(f"Dashboard failed to bind: {e}")
            return

        self._dashboard_thread = threading.Thread(
            target=self._flask_server.serve_forever,
            name="dashboard",
            daemon=True,
        )
        self._dashboard_thread.start()
        logger.info(
            f"Dashboard: http://{self.config.dashboard_host}:{self.config.dashboard_port}"
        )

    def _stop_dashboard(self) -> None:
        if self._flask_server is None:
            return

        logger.info("Dashboard: Shutting down...")
        self._flask_server.shutdown()
        self._flask_server.server_close()
        self._flask_server = None

        if self._dashboard_thread is not None:
            self._dashboard_thread.join(timeout=5)
            self._dashboard_thread = None

    def _setup_signal_handlers(self) -> None:
        """SIGINT/SIGTERM set the shutdown event."""
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGTERM, signal.SIGINT):
            try:
                loop.add_signal_handler(sig, self._on_signal, sig)
            except NotImplementedError:
                # No loop signal handlers on Windows; Ctrl+C still raises
                # KeyboardInterrupt in main()
                return

    def _on_signal(self, sig: signal.Signals) -> None:
        logger.info(f"Received {sig.name}, stopping")
        self._shutdown_event.set()


def load_env_file(path: str = ".env") -> None:
    """Export KEY=value lines from a .env file without overriding the environment."""
    env_path = Path(path)
    if not env_path.is_file():
        return

    logger.info(f"Loading environment from {env_path}")
    for raw in env_path.read_text(encoding="utf-8").splitlines():
        key, sep, value = raw.strip().partition("=")
        if not sep or not key or key.startswith("#"):
            continue
        os.environ.setdefault(key.strip(), value.strip().strip("\"'"))


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Site Health Monitor",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Override log level",
    )
    parser.add_argument(
        "--no-dashboard",
        action="store_true",
        help="Do not serve the management API",
    )
    parser.add_argument(
        "--once",
        action="store_true",
        help="Run one round of checks, print statuses and exit",
    )
    return parser.parse_args(argv)


async def main_async(args: argparse.Namespace) -> int:
    """Async main function."""
    try:
        config = MonitorConfig.from_env()
        if args.no_dashboard or args.once:
            config.dashboard_enabled = False
        monitor = SiteMonitor(config)
    except ValueError as e:
        logger.error(f"Invalid configuration: {e}")
        return 1

    if args.once:
        return await monitor.run_once()

    if not monitor.service.list_targets() and not config.dashboard_enabled:
        logger.error("No targets configured and dashboard disabled; nothing to do")
        logger.error("Set MONITOR_URLS or enable the dashboard")
        return 1

    try:
        await monitor.start()
        return 0
    except Exception as e:
        logger.exception(f"Fatal error: {e}")
        return 1


def main() -> int:
    """Main entry point."""
    load_env_file()

    args = parse_args()

    if args.log_level:
        logging.getLogger().setLevel(getattr(logging, args.log_level))

    try:
        return asyncio.run(main_async(args))
    except KeyboardInterrupt:
        return 0


if __name__ == "__main__":
    sys.exit(main())

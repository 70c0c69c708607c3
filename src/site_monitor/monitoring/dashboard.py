"""
Management dashboard for the site monitor.

Flask app exposing target management, logs, latest statuses, CSV export and
manual checks over the MonitorService.
"""
from __future__ import annotations

import asyncio
import concurrent.futures
import csv
import io
import logging
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, List, Optional

from flask import Flask, Response, jsonify, request

from site_monitor.errors import InvalidInputError, TargetNotFoundError

if TYPE_CHECKING:
    from site_monitor.core.service import MonitorService
    from site_monitor.storage.models import HealthCheckRecord

logger = logging.getLogger(__name__)

CSV_HEADER = ["Date", "Time", "URL", "Status Code", "Health Status"]


def logs_to_csv(records: List["HealthCheckRecord"]) -> str:
    """Render records as CSV, one row per record, in the given order."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(CSV_HEADER)
    for record in records:
        local_time = record.timestamp.astimezone()
        writer.writerow([
            local_time.strftime("%Y-%m-%d"),
            local_time.strftime("%H:%M:%S"),
            record.url,
            record.status_code,
            "Healthy" if record.is_healthy else "Unhealthy",
        ])
    return buffer.getvalue()


class Dashboard:
    """
    Dashboard web application.

    Endpoints:
        GET /health - Monitor process health
        GET/POST/DELETE/PATCH /api/monitored-urls - Target management
        GET/POST /api/health - Check one URL now
        GET /api/logs - Health check logs (optional ?url= filter)
        GET /api/status - Latest status per target
        GET /api/export-logs - Logs as a CSV attachment
        POST /api/start-background-task - Start the scheduler
        POST /api/run-tick - Check all enabled targets now

    Usage:
        dashboard = Dashboard(service, event_loop=asyncio.get_running_loop())
        app = dashboard.create_app()
        app.run(port=9050)
    """

    def __init__(
        self,
        service: "MonitorService",
        event_loop: Optional[asyncio.AbstractEventLoop] = None,
        started_at: Optional[datetime] = None,
    ) -> None:
        """
        Initialize the dashboard.

        Args:
            service: The monitoring core
            event_loop: Main asyncio event loop. Flask runs in its own
                       thread, so probes must be dispatched to the loop
                       that owns the aiohttp session.
            started_at: Process start time for /health
        """
        self._service = service
        self._event_loop = event_loop
        self._started_at = started_at or datetime.now(timezone.utc)

    def _run_async(self, coro, timeout: float = 30.0) -> Any:
        """
        Run an async coroutine from the Flask thread safely.

        Raises:
            RuntimeError: If event loop is not running (shutdown in progress)
            TimeoutError: If operation times out
        """
        if self._event_loop is None:
            # Fallback: create new loop (only for testing without main loop).
            # The prober's session is bound to this loop, so it is released
            # before the loop closes and recreated on the next request.
            loop = asyncio.new_event_loop()
            try:
                return loop.run_until_complete(coro)
            finally:
                loop.run_until_complete(self._service.wait_for_idle())
                loop.run_until_complete(self._service.prober.close())
                loop.close()

        if self._event_loop.is_closed() or not self._event_loop.is_running():
            coro.close()
            raise RuntimeError("Event loop is not running (shutdown in progress)")

        future = asyncio.run_coroutine_threadsafe(coro, self._event_loop)
        try:
            return future.result(timeout=timeout)
        except concurrent.futures.TimeoutError:
            future.cancel()
            logger.error(f"Async operation timed out after {timeout}s")
            raise TimeoutError(f"Operation timed out after {timeout}s")

    def create_app(self, testing: bool = False) -> Flask:
        """
        Create the Flask application.

        Args:
            testing: Whether to enable testing mode

        Returns:
            Flask application instance
        """
        app = Flask(__name__)
        app.config["TESTING"] = testing

        # Store reference for routes
        app.dashboard = self  # type: ignore

        self._register_routes(app)

        return app

    def _register_routes(self, app: Flask) -> None:
        """Register all HTTP routes."""

        @app.route("/health")
        def health() -> Response:
            """Monitor process health."""
            service = self._service
            uptime = (datetime.now(timezone.utc) - self._started_at).total_seconds()
            return jsonify({
                "status": "running" if service.is_running else "stopped",
                "scheduler_running": service.is_running,
                "targets": len(service.list_targets()),
                "log_entries": len(service.result_log),
                "uptime_seconds": round(uptime, 1),
            })

        @app.route("/api/monitored-urls", methods=["GET"])
        def list_monitored_urls() -> Response:
            try:
                return jsonify([t.to_dict() for t in self._service.list_targets()])
            except Exception as e:
                logger.error(f"Error listing monitored URLs: {e}")
                return jsonify({"error": str(e)}), 500

        @app.route("/api/monitored-urls", methods=["POST"])
        def add_monitored_url() -> Response:
            body = request.get_json(silent=True) or {}
            try:
                target = self._service.register_target(body.get("url"), body.get("name"))
                return jsonify(target.to_dict())
            except InvalidInputError as e:
                return jsonify({"error": str(e)}), 400
            except Exception as e:
                logger.error(f"Error adding monitored URL: {e}")
                return jsonify({"error": str(e)}), 500

        @app.route("/api/monitored-urls", methods=["DELETE"])
        def remove_monitored_url() -> Response:
            target_id = request.args.get("id")
            if not target_id:
                return jsonify({"error": "ID parameter is required"}), 400

            try:
                self._service.deregister_target(target_id)
                return jsonify({"success": True})
            except Exception as e:
                logger.error(f"Error removing monitored URL: {e}")
                return jsonify({"error": str(e)}), 500

        @app.route("/api/monitored-urls", methods=["PATCH"])
        def update_monitored_url() -> Response:
            body = request.get_json(silent=True) or {}
            target_id = body.get("id")
            enabled = body.get("enabled")

            if not target_id or not isinstance(enabled, bool):
                return jsonify({"error": "ID and enabled (boolean) are required"}), 400

            try:
                target = self._service.set_enabled(target_id, enabled)
                return jsonify({"success": True, "url": target.to_dict()})
            except TargetNotFoundError:
                return jsonify({"error": "URL not found"}), 404
            except Exception as e:
                logger.error(f"Error updating monitored URL: {e}")
                return jsonify({"error": str(e)}), 500

        @app.route("/api/health", methods=["GET", "POST"])
        def check_now() -> Response:
            """Run one health check immediately."""
            if request.method == "POST":
                url = (request.get_json(silent=True) or {}).get("url")
            else:
                url = request.args.get("url")

            if not url or not isinstance(url, str):
                return jsonify({"error": "URL is required"}), 400

            try:
                record = self._run_async(self._service.check_now(url))
                return jsonify(record.to_dict())
            except InvalidInputError as e:
                return jsonify({"error": str(e)}), 400
            except Exception as e:
                logger.error(f"Error performing health check for {url}: {e}")
                return jsonify({"error": str(e)}), 500

        @app.route("/api/logs")
        def logs() -> Response:
            url = request.args.get("url")
            try:
                records = self._service.list_logs(url)
                return jsonify([r.to_dict() for r in records])
            except Exception as e:
                logger.error(f"Error getting logs: {e}")
                return jsonify({"error": str(e)}), 500

        @app.route("/api/status")
        def status() -> Response:
            try:
                return jsonify([s.to_dict() for s in self._service.latest_statuses()])
            except Exception as e:
                logger.error(f"Error getting statuses: {e}")
                return jsonify({"error": str(e)}), 500

        @app.route("/api/export-logs")
        def export_logs() -> Response:
            try:
                content = logs_to_csv(self._service.list_logs())
            except Exception as e:
                logger.error(f"Error exporting logs: {e}")
                return jsonify({"error": str(e)}), 500

            filename = f"health-monitor-logs-{datetime.now(timezone.utc).date().isoformat()}.csv"
            return Response(
                content,
                mimetype="text/csv",
                headers={"Content-Disposition": f'attachment; filename="{filename}"'},
            )

        @app.route("/api/start-background-task", methods=["POST"])
        def start_background_task() -> Response:
            try:
                self._run_async(self._service.start())
                return jsonify({"message": "Background health check task started"})
            except Exception as e:
                logger.error(f"Error starting background task: {e}")
                return jsonify({"error": str(e)}), 500

        @app.route("/api/run-tick", methods=["POST"])
        def run_tick() -> Response:
            """Check all enabled targets now and summarize the results."""
            if not any(t.enabled for t in self._service.list_targets()):
                return jsonify({"message": "No enabled URLs to check"})

            try:
                records = self._run_async(self._service.run_tick())
            except Exception as e:
                logger.error(f"Error running health checks: {e}")
                return jsonify({"error": str(e)}), 500

            return jsonify({
                "message": "Health checks completed",
                "timestamp": datetime.now(timezone.utc).isoformat(),
                "results": [
                    {
                        "url": r.url,
                        "status_code": r.status_code,
                        "is_healthy": r.is_healthy,
                    }
                    for r in records
                ],
            })


def create_app(
    service: "MonitorService",
    event_loop: Optional[asyncio.AbstractEventLoop] = None,
    started_at: Optional[datetime] = None,
    testing: bool = False,
) -> Flask:
    """
    Factory function to create the dashboard app.

    Args:
        service: The monitoring core
        event_loop: Main asyncio event loop (None runs coroutines on a
                    temporary loop, for tests)
        started_at: Process start time
        testing: Enable testing mode

    Returns:
        Flask application
    """
    dashboard = Dashboard(
        service=service,
        event_loop=event_loop,
        started_at=started_at,
    )
    return dashboard.create_app(testing=testing)

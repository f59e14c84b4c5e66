"""HTTP application for daemon mode.

This module provides the aiohttp Application with the health check endpoint,
the scan API and runtime state management.
"""

from __future__ import annotations

import logging

from aiohttp import web

from velox.config.models import ScannerConfig
from velox.scanner.service import ScanService
from velox.server.api import setup_api_routes
from velox.server.api.events import EventBroadcaster
from velox.server.lifecycle import DaemonLifecycle

logger = logging.getLogger(__name__)


def create_app(
    scanner_config: ScannerConfig | None = None,
    lifecycle: DaemonLifecycle | None = None,
) -> web.Application:
    """Create and configure the aiohttp Application.

    Args:
        scanner_config: Scanner defaults and limits.
        lifecycle: Daemon lifecycle; set by the serve command, None in tests.

    Returns:
        Configured aiohttp Application instance.
    """
    app = web.Application()

    broadcaster = EventBroadcaster()
    app["event_broadcaster"] = broadcaster
    app["scan_service"] = ScanService(scanner_config, observer=broadcaster)
    app["lifecycle"] = lifecycle

    app.router.add_get("/health", health_handler)
    setup_api_routes(app)

    app.on_shutdown.append(_close_event_streams)
    app.on_cleanup.append(_stop_scans)

    return app


async def _close_event_streams(app: web.Application) -> None:
    """End open SSE streams so the server can stop accepting connections."""
    broadcaster: EventBroadcaster = app["event_broadcaster"]
    broadcaster.close()


async def _stop_scans(app: web.Application) -> None:
    """Cancel in-flight scans and wait for them within the shutdown timeout."""
    service: ScanService = app["scan_service"]
    lifecycle: DaemonLifecycle | None = app.get("lifecycle")
    timeout = lifecycle.shutdown_timeout if lifecycle else 5.0

    remaining = await service.shutdown(timeout=timeout)
    if remaining:
        logger.warning("%d scan(s) abandoned at shutdown", remaining)
    else:
        logger.debug("All scans stopped")


async def health_handler(request: web.Request) -> web.Response:
    """Handle GET /health requests.

    Returns the heartbeat payload with HTTP status:
    - 200: healthy
    - 503: shutting down

    Args:
        request: aiohttp Request object.

    Returns:
        JSON response with HeartbeatResponse payload.
    """
    service: ScanService = request.app["scan_service"]
    lifecycle: DaemonLifecycle | None = request.app.get("lifecycle")

    payload = service.heartbeat().to_dict()
    shutting_down = lifecycle.is_shutting_down if lifecycle else False
    payload["shutting_down"] = shutting_down
    if shutting_down:
        payload["status"] = "unhealthy"
        return web.json_response(payload, status=503)
    return web.json_response(payload)

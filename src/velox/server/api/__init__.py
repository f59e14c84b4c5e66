"""API route modules for the Velox daemon.

- scans.py: Start, cancel and inspect scans; heartbeat and system info
- events.py: Server-Sent Events (SSE) stream of scan events

API Versioning:
    All endpoints are available under both ``/api/`` (unversioned) and
    ``/api/v1/`` (versioned). Both prefixes resolve to the same handler.
"""

from aiohttp import web

from velox.server.api.events import get_events_routes, setup_events_routes
from velox.server.api.scans import get_scan_routes, setup_scan_routes

__all__ = [
    "setup_api_routes",
]

# All route getter functions for dual-prefix registration
_ROUTE_GETTERS = [
    get_scan_routes,
    get_events_routes,
]


def setup_api_routes(app: web.Application) -> None:
    """Register all API routes with the application.

    Registers each route under both ``/api/`` and ``/api/v1/`` prefixes.

    Args:
        app: aiohttp Application to configure.
    """
    setup_scan_routes(app)
    setup_events_routes(app)

    for get_routes in _ROUTE_GETTERS:
        for method, suffix, handler in get_routes():
            app.router.add_route(method, f"/api/v1{suffix}", handler)

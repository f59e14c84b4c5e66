"""Scan API handlers.

Endpoints:
    POST /api/scans                    - start a scan (``?wait=true`` to block)
    POST /api/scans/{scan_id}/cancel   - request cancellation
    GET  /api/scans/{scan_id}/status   - status of a live scan
    GET  /api/heartbeat                - liveness and active scan count
    GET  /api/system                   - host information
"""

from __future__ import annotations

import logging
from typing import Any

from aiohttp import web
from pydantic import ValidationError

from velox.scanner.exceptions import ScanNotFoundError, VeloxError
from velox.scanner.service import ScanService
from velox.server.api.errors import (
    INVALID_JSON,
    INVALID_REQUEST,
    VALIDATION_FAILED,
    api_error,
    scan_error_response,
)
from velox.server.api.middleware import shutdown_check_middleware
from velox.server.api.models import ScanRequest

logger = logging.getLogger(__name__)

_TRUE_VALUES = frozenset({"1", "true", "yes", "on"})


def _get_service(request: web.Request) -> ScanService:
    return request.app["scan_service"]


def _query_flag(request: web.Request, name: str, default: bool = False) -> bool:
    value = request.query.get(name)
    if value is None:
        return default
    return value.lower() in _TRUE_VALUES


def _validation_details(error: ValidationError) -> list[dict[str, Any]]:
    return [
        {
            "field": ".".join(str(part) for part in err["loc"]),
            "message": err["msg"],
        }
        for err in error.errors()
    ]


@shutdown_check_middleware
async def create_scan_handler(request: web.Request) -> web.Response:
    """Handle POST /api/scans.

    Query parameters:
        wait: Run the scan before responding and return its result.
        entries: With ``wait``, include the entry list (default true).

    Returns:
        202 ``{"scan_id": ...}``, or with ``wait`` 200 and the ScanResult.
    """
    try:
        body = await request.json()
    except ValueError:
        return api_error("Invalid JSON payload", code=INVALID_JSON)

    if not isinstance(body, dict):
        return api_error("Request body must be a JSON object", code=INVALID_REQUEST)

    try:
        scan_request = ScanRequest.model_validate(body)
    except ValidationError as e:
        return api_error(
            "Invalid scan request",
            code=VALIDATION_FAILED,
            details=_validation_details(e),
        )

    service = _get_service(request)
    config = service.build_config(
        max_depth=scan_request.max_depth,
        include_hidden=scan_request.include_hidden,
        follow_symlinks=scan_request.follow_symlinks,
    )

    if not _query_flag(request, "wait"):
        scan_id = service.start_scan(scan_request.path, config)
        return web.json_response({"scan_id": scan_id}, status=202)

    try:
        result = await service.run_scan(scan_request.path, config)
    except VeloxError as e:
        return scan_error_response(e)

    include_entries = _query_flag(request, "entries", default=True)
    return web.json_response(result.to_dict(include_entries=include_entries))


async def cancel_scan_handler(request: web.Request) -> web.Response:
    """Handle POST /api/scans/{scan_id}/cancel."""
    scan_id = request.match_info["scan_id"]
    if not _get_service(request).cancel_scan(scan_id):
        return scan_error_response(ScanNotFoundError(scan_id))
    return web.json_response({"scan_id": scan_id, "cancelled": True})


async def scan_status_handler(request: web.Request) -> web.Response:
    """Handle GET /api/scans/{scan_id}/status."""
    scan_id = request.match_info["scan_id"]
    try:
        status = _get_service(request).get_scan_status(scan_id)
    except ScanNotFoundError as e:
        return scan_error_response(e)
    return web.json_response({"scan_id": scan_id, "status": status.value})


async def heartbeat_handler(request: web.Request) -> web.Response:
    """Handle GET /api/heartbeat."""
    return web.json_response(_get_service(request).heartbeat().to_dict())


async def system_info_handler(request: web.Request) -> web.Response:
    """Handle GET /api/system."""
    return web.json_response(_get_service(request).system_info().to_dict())


def setup_scan_routes(app: web.Application) -> None:
    """Register scan routes under /api/."""
    for method, suffix, handler in get_scan_routes():
        app.router.add_route(method, f"/api{suffix}", handler)


def get_scan_routes() -> list[tuple[str, str, Any]]:
    """Return scan route definitions as (method, path_suffix, handler) tuples."""
    return [
        ("POST", "/scans", create_scan_handler),
        ("POST", "/scans/{scan_id}/cancel", cancel_scan_handler),
        ("GET", "/scans/{scan_id}/status", scan_status_handler),
        ("GET", "/heartbeat", heartbeat_handler),
        ("GET", "/system", system_info_handler),
    ]

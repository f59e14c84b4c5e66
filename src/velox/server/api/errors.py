"""Standardized API error response helper.

Provides a consistent error response format with machine-readable error codes
for all API endpoints. All error responses include:
- ``error``: Human-readable error message
- ``code``: Machine-readable error code string
- ``details`` (optional): Additional context for the error

Usage:
    from velox.server.api.errors import api_error, INVALID_REQUEST

    return api_error("path is required", code=INVALID_REQUEST)
"""

from __future__ import annotations

from typing import Any

from aiohttp import web

from velox.scanner.exceptions import (
    INVALID_PATH,
    NO_ACTIVE_SCAN,
    SCAN_CANCELLED,
    SCAN_FAILED,
    STATE_ERROR,
    VeloxError,
)

# --- Error code constants ---

INVALID_REQUEST = "INVALID_REQUEST"
INVALID_JSON = "INVALID_JSON"
VALIDATION_FAILED = "VALIDATION_FAILED"
SERVICE_UNAVAILABLE = "SERVICE_UNAVAILABLE"
SHUTTING_DOWN = "SHUTTING_DOWN"

# HTTP status for each scan error code
_STATUS_BY_CODE: dict[str, int] = {
    INVALID_PATH: 400,
    NO_ACTIVE_SCAN: 404,
    SCAN_CANCELLED: 409,
    STATE_ERROR: 409,
    SCAN_FAILED: 500,
}

__all__ = [
    "INVALID_JSON",
    "INVALID_PATH",
    "INVALID_REQUEST",
    "NO_ACTIVE_SCAN",
    "SCAN_CANCELLED",
    "SCAN_FAILED",
    "SERVICE_UNAVAILABLE",
    "SHUTTING_DOWN",
    "STATE_ERROR",
    "VALIDATION_FAILED",
    "api_error",
    "scan_error_response",
]


def api_error(
    message: str,
    *,
    code: str,
    status: int = 400,
    details: Any = None,
) -> web.Response:
    """Create a standardized JSON error response.

    Args:
        message: Human-readable error description.
        code: Machine-readable error code (use constants from this module).
        status: HTTP status code (default 400).
        details: Optional additional context (string, list, or dict).

    Returns:
        aiohttp JSON response with ``{"error": ..., "code": ...}`` body.
    """
    body: dict[str, Any] = {"error": message, "code": code}
    if details is not None:
        body["details"] = details
    return web.json_response(body, status=status)


def scan_error_response(error: VeloxError) -> web.Response:
    """Map a scan exception to its standardized error response."""
    return api_error(
        error.message,
        code=error.code,
        status=_STATUS_BY_CODE.get(error.code, 500),
        details=error.details,
    )

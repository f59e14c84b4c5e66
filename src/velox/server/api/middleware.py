"""Handler decorators shared by the API route modules."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from functools import wraps
from typing import TYPE_CHECKING

from aiohttp import web

from velox.server.api.errors import SHUTTING_DOWN, api_error

if TYPE_CHECKING:
    from velox.server.lifecycle import DaemonLifecycle

Handler = Callable[[web.Request], Awaitable[web.StreamResponse]]


def shutdown_check_middleware(handler: Handler) -> Handler:
    """Decorator middleware that returns 503 if server is shutting down.

    Usage:
        @shutdown_check_middleware
        async def my_api_handler(request: web.Request) -> web.Response:
            ...
    """

    @wraps(handler)
    async def wrapper(request: web.Request) -> web.StreamResponse:
        lifecycle: DaemonLifecycle | None = request.app.get("lifecycle")
        if lifecycle and lifecycle.is_shutting_down:
            return api_error(
                "Service is shutting down", code=SHUTTING_DOWN, status=503
            )
        return await handler(request)

    return wrapper

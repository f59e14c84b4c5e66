"""Server-Sent Events (SSE) API handlers.

Scan events are pushed to connected clients as they happen. The
EventBroadcaster is the server's ScanObserver: it copies each event into a
bounded queue per subscriber, dropping events for clients that fall behind
rather than slowing the scans down.

Endpoints:
    GET /api/events/scans - SSE stream of scan progress and outcomes
"""

from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass, field
from typing import Any

from aiohttp import web

from velox.core.datetime_utils import utc_now_iso
from velox.server.api.errors import SERVICE_UNAVAILABLE, api_error
from velox.server.api.middleware import shutdown_check_middleware

logger = logging.getLogger(__name__)

# SSE configuration
SSE_HEARTBEAT_INTERVAL = 15  # seconds
SSE_WRITE_TIMEOUT = 5.0  # seconds - timeout for writing to slow clients
SSE_QUEUE_SIZE = 256  # events buffered per client before dropping
MAX_SSE_CONNECTIONS = 100  # Maximum concurrent SSE connections

# Queue item telling a subscriber the stream is over
_STREAM_END = None

Event = tuple[str, dict[str, Any]]


@dataclass(eq=False)
class Subscription:
    """One connected SSE client."""

    scan_id: str | None = None
    queue: asyncio.Queue[Event | None] = field(
        default_factory=lambda: asyncio.Queue(maxsize=SSE_QUEUE_SIZE)
    )
    dropped: int = 0

    def wants(self, payload: dict[str, Any]) -> bool:
        return self.scan_id is None or payload.get("scan_id") == self.scan_id


class EventBroadcaster:
    """ScanObserver that fans events out to SSE subscribers.

    Must only be used from the event loop thread.
    """

    def __init__(self, max_subscribers: int = MAX_SSE_CONNECTIONS) -> None:
        self.max_subscribers = max_subscribers
        self._subscribers: set[Subscription] = set()
        self._closed = False

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    @property
    def is_full(self) -> bool:
        return len(self._subscribers) >= self.max_subscribers

    def subscribe(self, scan_id: str | None = None) -> Subscription:
        """Register a subscriber, optionally filtered to one scan."""
        subscription = Subscription(scan_id=scan_id)
        if self._closed:
            subscription.queue.put_nowait(_STREAM_END)
        self._subscribers.add(subscription)
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        self._subscribers.discard(subscription)
        if subscription.dropped:
            logger.debug(
                "SSE subscriber dropped %d event(s) while connected",
                subscription.dropped,
            )

    def emit(self, event: str, payload: dict[str, Any]) -> None:
        for subscription in list(self._subscribers):
            if not subscription.wants(payload):
                continue
            try:
                subscription.queue.put_nowait((event, payload))
            except asyncio.QueueFull:
                subscription.dropped += 1

    def close(self) -> None:
        """End every stream. Idempotent."""
        if self._closed:
            return
        self._closed = True
        for subscription in list(self._subscribers):
            try:
                subscription.queue.put_nowait(_STREAM_END)
            except asyncio.QueueFull:
                # Make room so the end marker always arrives
                subscription.queue.get_nowait()
                subscription.queue.put_nowait(_STREAM_END)


async def _write_sse(
    response: web.StreamResponse,
    text: str,
    timeout: float = SSE_WRITE_TIMEOUT,
) -> bool:
    """Write raw SSE text to the response stream.

    Returns:
        True if write succeeded, False if connection was closed or timed out.
    """
    try:
        await asyncio.wait_for(response.write(text.encode("utf-8")), timeout=timeout)
        return True
    except asyncio.TimeoutError:
        logger.warning("SSE write timeout - slow client")
        return False
    except (ConnectionResetError, ConnectionAbortedError, BrokenPipeError):
        logger.debug("SSE client disconnected")
        return False


def format_sse_event(event_type: str, data: dict[str, Any]) -> str:
    """Format one SSE event block."""
    return f"event: {event_type}\ndata: {json.dumps(data)}\n\n"


def _get_client_info(request: web.Request) -> tuple[str, str]:
    """Extract (client_ip, request_id) for logging."""
    client_ip = request.remote or "unknown"
    request_id = request.headers.get("X-Request-ID", "unknown")
    return client_ip, request_id


@shutdown_check_middleware
async def sse_scans_handler(request: web.Request) -> web.StreamResponse:
    """Handle GET /api/events/scans - SSE stream for scan events.

    Query parameters:
        scan_id: Only stream events for this scan.

    Args:
        request: aiohttp Request object.

    Returns:
        StreamResponse with SSE content type.
    """
    client_ip, request_id = _get_client_info(request)
    broadcaster: EventBroadcaster = request.app["event_broadcaster"]

    if broadcaster.is_full:
        logger.warning(
            "SSE connection limit reached (%d), rejecting client=%s request_id=%s",
            broadcaster.max_subscribers,
            client_ip,
            request_id,
        )
        resp = api_error(
            "Service temporarily unavailable - too many connections",
            code=SERVICE_UNAVAILABLE,
            status=503,
        )
        resp.headers["Retry-After"] = "10"
        return resp

    subscription = broadcaster.subscribe(request.query.get("scan_id") or None)
    logger.debug(
        "SSE scans connection established client=%s request_id=%s (total: %d)",
        client_ip,
        request_id,
        broadcaster.subscriber_count,
    )

    response = web.StreamResponse(
        status=200,
        headers={
            "Content-Type": "text/event-stream",
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",  # Disable nginx buffering
        },
    )
    try:
        await response.prepare(request)

        while True:
            try:
                item = await asyncio.wait_for(
                    subscription.queue.get(), timeout=SSE_HEARTBEAT_INTERVAL
                )
            except asyncio.TimeoutError:
                if not await _write_sse(response, f": heartbeat {utc_now_iso()}\n\n"):
                    break
                continue

            if item is _STREAM_END:
                await _write_sse(
                    response,
                    format_sse_event("close", {"reason": "server_shutdown"}),
                )
                break

            event, payload = item
            if not await _write_sse(response, format_sse_event(event, payload)):
                break

    except asyncio.CancelledError:
        logger.debug(
            "SSE scans connection cancelled client=%s request_id=%s",
            client_ip,
            request_id,
        )
        raise  # Re-raise for proper aiohttp cleanup
    finally:
        broadcaster.unsubscribe(subscription)
        logger.debug(
            "SSE scans connection closed client=%s request_id=%s (remaining: %d)",
            client_ip,
            request_id,
            broadcaster.subscriber_count,
        )

    return response


def setup_events_routes(app: web.Application) -> None:
    """Register SSE routes under /api/."""
    for method, suffix, handler in get_events_routes():
        app.router.add_route(method, f"/api{suffix}", handler)


def get_events_routes() -> list[tuple[str, str, Any]]:
    """Return SSE event route definitions as (method, path_suffix, handler) tuples."""
    return [
        ("GET", "/events/scans", sse_scans_handler),
    ]

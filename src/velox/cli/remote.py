"""CLI commands that talk to a running ``velox serve`` daemon over HTTP."""

from __future__ import annotations

import logging
from typing import Any

import click
import httpx

from velox.cli.exit_codes import ExitCode
from velox.cli.output import error_exit, json_output

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10.0


class DaemonConnectionError(Exception):
    """Raised when the daemon cannot be reached."""


class DaemonRequestError(Exception):
    """Raised when the daemon answers with an error response.

    Attributes:
        status_code: HTTP status of the response.
        code: Machine-readable error code from the body, if any.
    """

    def __init__(self, status_code: int, message: str, code: str | None = None):
        self.status_code = status_code
        self.code = code
        super().__init__(message)


class DaemonClient:
    """HTTP client for the Velox daemon API."""

    def __init__(
        self,
        base_url: str,
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            base_url: Daemon URL, e.g. ``http://127.0.0.1:8347``.
            timeout: Request timeout in seconds.
            transport: Optional httpx transport (tests use MockTransport).
        """
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._transport = transport
        self._client: httpx.Client | None = None

    def _get_client(self) -> httpx.Client:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.Client(
                base_url=self._base_url,
                timeout=self._timeout,
                transport=self._transport,
            )
        return self._client

    def close(self) -> None:
        """Close the HTTP client."""
        if self._client is not None:
            self._client.close()
            self._client = None

    def __enter__(self) -> DaemonClient:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _request(self, method: str, path: str) -> dict[str, Any]:
        client = self._get_client()
        logger.debug("%s %s/api/v1%s", method, self._base_url, path)
        try:
            response = client.request(method, f"/api/v1{path}")
        except httpx.ConnectError as e:
            raise DaemonConnectionError(
                f"Cannot connect to daemon at {self._base_url}: {e}"
            ) from e
        except httpx.TimeoutException as e:
            raise DaemonConnectionError(f"Connection timeout: {e}") from e

        if response.is_error:
            try:
                body = response.json()
            except ValueError:
                body = {}
            raise DaemonRequestError(
                response.status_code,
                body.get("error", f"HTTP {response.status_code}"),
                body.get("code"),
            )
        return response.json()

    def heartbeat(self) -> dict[str, Any]:
        return self._request("GET", "/heartbeat")

    def scan_status(self, scan_id: str) -> dict[str, Any]:
        return self._request("GET", f"/scans/{scan_id}/status")

    def cancel_scan(self, scan_id: str) -> dict[str, Any]:
        return self._request("POST", f"/scans/{scan_id}/cancel")


def _default_url() -> str:
    from velox.config import get_config

    return get_config().server.url


def _call(ctx: click.Context, method: str, *args: str) -> dict[str, Any]:
    """Invoke a client method, mapping failures to exit codes."""
    json_mode: bool = ctx.obj["json"]
    with DaemonClient(ctx.obj["url"]) as client:
        try:
            return getattr(client, method)(*args)
        except DaemonConnectionError as e:
            error_exit(str(e), ExitCode.SERVER_UNAVAILABLE, json_mode)
        except DaemonRequestError as e:
            code = (
                ExitCode.SCAN_NOT_FOUND
                if e.status_code == 404
                else ExitCode.OPERATION_FAILED
            )
            error_exit(str(e), code, json_mode)


@click.group("remote")
@click.option(
    "--url",
    default=None,
    help="Daemon URL (default: from [server] config, http://127.0.0.1:8347).",
)
@click.option(
    "--json",
    "json_mode",
    is_flag=True,
    default=False,
    help="Output results in JSON format.",
)
@click.pass_context
def remote_group(ctx: click.Context, url: str | None, json_mode: bool) -> None:
    """Query or control a running Velox daemon."""
    ctx.ensure_object(dict)
    ctx.obj["url"] = url or _default_url()
    ctx.obj["json"] = json_mode


@remote_group.command("heartbeat")
@click.pass_context
def heartbeat_command(ctx: click.Context) -> None:
    """Show daemon uptime and active scan count."""
    data = _call(ctx, "heartbeat")
    if ctx.obj["json"]:
        json_output(data)
        return
    click.echo(f"Status:       {data['status']}")
    click.echo(f"Version:      {data['version']}")
    click.echo(f"Uptime:       {data['uptime_ms'] / 1000:.1f}s")
    click.echo(f"Active scans: {data['active_scans']}")


@remote_group.command("status")
@click.argument("scan_id")
@click.pass_context
def status_command(ctx: click.Context, scan_id: str) -> None:
    """Show the status of a running scan."""
    data = _call(ctx, "scan_status", scan_id)
    if ctx.obj["json"]:
        json_output(data)
    else:
        click.echo(f"{data['scan_id']}: {data['status']}")


@remote_group.command("cancel")
@click.argument("scan_id")
@click.pass_context
def cancel_command(ctx: click.Context, scan_id: str) -> None:
    """Request cancellation of a running scan."""
    data = _call(ctx, "cancel_scan", scan_id)
    if ctx.obj["json"]:
        json_output(data)
    else:
        click.echo(f"Cancellation requested for {data['scan_id']}")

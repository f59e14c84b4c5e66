"""CLI serve command for daemon mode.

This module provides the `velox serve` command that runs the scanner as a
long-lived HTTP service suitable for systemd management.
"""

from __future__ import annotations

import asyncio
import errno
import logging
import os
import sys
from pathlib import Path

import click

from velox.cli.exit_codes import ExitCode
from velox.config import ConfigFileError, get_config
from velox.config.models import ScannerConfig

logger = logging.getLogger(__name__)


def _configure_daemon_logging(
    log_level: str | None,
    log_format: str | None,
    config_path: Path | None,
) -> None:
    """Configure logging for daemon mode.

    Args:
        log_level: CLI override for log level.
        log_format: CLI override for log format.
        config_path: Path to config file for reading logging settings.
    """
    from velox.cli import apply_logging_options

    apply_logging_options(
        config_path=config_path,
        level=log_level,
        format=log_format,
        include_stderr=True,  # Always include stderr for daemon (journald)
    )


async def run_server(
    bind: str,
    port: int,
    shutdown_timeout: float,
    scanner_config: ScannerConfig | None = None,
) -> int:
    """Run the daemon server.

    Args:
        bind: Address to bind to.
        port: Port to bind to.
        shutdown_timeout: Seconds to wait for in-flight scans at shutdown.
        scanner_config: Scanner defaults and limits.

    Returns:
        Exit code (0 for clean shutdown, non-zero for errors).
    """
    from aiohttp import web

    from velox.server.app import create_app
    from velox.server.lifecycle import DaemonLifecycle
    from velox.server.signals import (
        remove_signal_handlers,
        setup_signal_handlers,
    )

    lifecycle = DaemonLifecycle(shutdown_timeout=shutdown_timeout)
    shutdown_event = asyncio.Event()
    loop = asyncio.get_running_loop()

    setup_signal_handlers(loop, lifecycle, shutdown_event)

    app = create_app(scanner_config, lifecycle=lifecycle)

    runner = web.AppRunner(app)
    await runner.setup()

    try:
        site = web.TCPSite(runner, bind, port)
        await site.start()

        logger.info(
            "Velox daemon started on http://%s:%d (PID %d)",
            bind,
            port,
            os.getpid(),
        )
        logger.info("Health endpoint: http://%s:%d/health", bind, port)
        logger.info("Press Ctrl+C or send SIGTERM to stop")

        await shutdown_event.wait()

        logger.info(
            "Shutdown initiated, waiting up to %.1fs for scans", shutdown_timeout
        )

    except OSError as e:
        if e.errno == errno.EADDRINUSE:
            logger.error("Port %d is already in use", port)
            return ExitCode.GENERAL_ERROR
        if e.errno == errno.EADDRNOTAVAIL:
            logger.error("Cannot bind to address %s", bind)
            return ExitCode.GENERAL_ERROR
        logger.error("Server error: %s", e)
        return ExitCode.GENERAL_ERROR
    finally:
        remove_signal_handlers(loop)
        # Runs on_shutdown (closes SSE streams) and on_cleanup (stops scans)
        await runner.cleanup()
        logger.info("Velox daemon stopped")

    return ExitCode.SUCCESS


@click.command("serve")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=True, path_type=Path),
    default=None,
    help="Path to configuration file (default: ~/.velox/config.toml).",
)
@click.option(
    "--bind",
    type=str,
    default=None,
    help="Address to bind to (default: 127.0.0.1).",
)
@click.option(
    "--port",
    "-p",
    type=int,
    default=None,
    help="Port to bind to (default: 8347).",
)
@click.option(
    "--log-level",
    type=click.Choice(["debug", "info", "warning", "error"], case_sensitive=False),
    default=None,
    help="Override log level for daemon mode (default: info).",
)
@click.option(
    "--log-format",
    type=click.Choice(["text", "json"], case_sensitive=False),
    default=None,
    help="Log format: text or json (default: text).",
)
def serve_command(
    config_path: Path | None,
    bind: str | None,
    port: int | None,
    log_level: str | None,
    log_format: str | None,
) -> None:
    """Run Velox as a background daemon.

    Starts a long-lived HTTP server exposing the scan API under /api and a
    health endpoint at /health. Handles graceful shutdown on SIGTERM (from
    systemd) or SIGINT (Ctrl+C); in-flight scans are cancelled.

    The daemon binds to localhost by default for security. Override with
    --bind to expose on other interfaces.

    Configuration precedence (highest to lowest):
      1. CLI flags (--bind, --port, --log-level, etc.)
      2. Environment variables (VELOX_SERVER_*)
      3. Config file (--config or ~/.velox/config.toml)
      4. Default values

    \b
    Examples:
        velox serve                           # Start with defaults
        velox serve --port 9000               # Custom port
        velox serve --bind 0.0.0.0            # Listen on all interfaces
        velox serve --log-format json         # JSON logging for systemd
    """
    try:
        _configure_daemon_logging(log_level, log_format, config_path)
        config = get_config(config_path=config_path, bind=bind, port=port, strict=True)
    except (ConfigFileError, ValueError) as e:
        click.echo(f"Error: Invalid configuration: {e}", err=True)
        sys.exit(ExitCode.CONFIG_ERROR)

    server = config.server
    if server.port < 1024:
        logger.warning("Port %d is privileged and may require root", server.port)

    logger.info(
        "Starting Velox daemon (bind=%s, port=%d, timeout=%.1fs)",
        server.bind,
        server.port,
        server.shutdown_timeout,
    )

    try:
        exit_code = asyncio.run(
            run_server(
                server.bind,
                server.port,
                server.shutdown_timeout,
                config.scanner,
            )
        )
        sys.exit(exit_code)
    except KeyboardInterrupt:
        # User pressed Ctrl+C before server started
        logger.info("Interrupted before server started")
        sys.exit(ExitCode.INTERRUPTED)

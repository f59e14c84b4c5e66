"""CLI scan command: walk a directory in-process with live progress."""

from __future__ import annotations

import asyncio
import logging
import signal
import sys
from typing import Any

import click

from velox.cli.exit_codes import ExitCode
from velox.cli.output import error_exit, json_output
from velox.config import ConfigFileError, get_config
from velox.core.formatting import format_rate, truncate_path
from velox.scanner.exceptions import (
    InvalidPathError,
    ScanCancelledError,
    VeloxError,
)
from velox.scanner.models import ScanConfig, ScanResult
from velox.scanner.observers import EVENT_PROGRESS, CompositeObserver, RecordingObserver
from velox.scanner.service import ScanService

logger = logging.getLogger(__name__)


class ProgressDisplay:
    """Display progress for scan operations.

    Shows counters that update in place using carriage return.
    Only active when output is a TTY and not JSON mode.
    """

    def __init__(self, *, enabled: bool = True):
        """Initialize the progress display.

        Args:
            enabled: Whether to show progress output.
        """
        self._enabled = enabled and sys.stdout.isatty()
        self._has_output = False

    def _write(self, text: str) -> None:
        """Write text to stdout, clearing previous line."""
        if not self._enabled:
            return
        # \r moves to start of line, \033[K clears to end of line
        sys.stdout.write(f"\r\033[K{text}")
        sys.stdout.flush()
        self._has_output = True

    def emit(self, event: str, payload: dict[str, Any]) -> None:
        if event != EVENT_PROGRESS:
            return
        if payload["status"] != "scanning":
            self.finish()
            return

        entries = payload["files_scanned"] + payload["directories_scanned"]
        elapsed_s = payload["elapsed_ms"] / 1000
        rate = format_rate(entries / elapsed_s) if elapsed_s > 0 else format_rate(0)
        self._write(
            f"Scanning... {payload['files_scanned']:,} files, "
            f"{payload['directories_scanned']:,} dirs, "
            f"{payload['bytes_formatted']} ({rate}) "
            f"[{truncate_path(payload['current_path'])}]"
        )

    def finish(self) -> None:
        """Finish current line with newline."""
        if self._enabled and self._has_output:
            sys.stdout.write("\n")
            sys.stdout.flush()
            self._has_output = False


async def _run_scan(
    service: ScanService, path: str, config: ScanConfig
) -> ScanResult:
    """Run one scan, turning SIGINT into a cooperative cancel."""
    session = service.create_session(path)
    loop = asyncio.get_running_loop()

    handler_installed = False
    try:
        loop.add_signal_handler(signal.SIGINT, session.cancel)
        handler_installed = True
    except (NotImplementedError, RuntimeError, ValueError):
        # Not main thread or unsupported platform: Ctrl+C raises instead
        logger.debug("SIGINT handler not installed, Ctrl+C will abort")

    try:
        return await service.run_scan(path, config, session=session)
    finally:
        if handler_installed:
            loop.remove_signal_handler(signal.SIGINT)


def output_human(result: ScanResult, show_entries: bool) -> None:
    """Output scan results in human-readable format."""
    click.echo(f"\nScanned {result.root_path}")
    click.echo(f"  Files:       {result.total_files:,}")
    click.echo(f"  Directories: {result.total_directories:,}")
    click.echo(f"  Total size:  {result.total_size_formatted}")

    if show_entries:
        click.echo("\nEntries:")
        for entry in result.entries:
            indent = "  " * (entry.depth + 1)
            if entry.is_directory:
                click.echo(f"{indent}{entry.name}/")
            elif entry.is_symlink and not entry.is_file:
                click.echo(f"{indent}{entry.name} -> (symlink)")
            else:
                click.echo(f"{indent}{entry.name} ({entry.size_formatted})")

    click.echo(f"\nScan complete in {result.duration_ms / 1000:.1f}s")


@click.command("scan")
@click.argument("path", type=click.Path(path_type=str))
@click.option(
    "--max-depth",
    type=click.IntRange(min=0),
    default=None,
    help="Maximum recursion depth; the root is depth 0. Default: from config (100).",
)
@click.option(
    "--include-hidden/--no-include-hidden",
    default=None,
    help="Include entries whose name starts with '.'.",
)
@click.option(
    "--follow-symlinks/--no-follow-symlinks",
    default=None,
    help="Follow symbolic links (cycles are detected and not descended).",
)
@click.option(
    "--progress-interval",
    "progress_interval_ms",
    type=click.IntRange(min=0),
    default=None,
    help="Milliseconds between progress updates. Default: from config (50).",
)
@click.option(
    "--json",
    "json_mode",
    is_flag=True,
    default=False,
    help="Output results in JSON format.",
)
@click.option(
    "--entries",
    "show_entries",
    is_flag=True,
    default=False,
    help="Include every discovered entry in the output.",
)
def scan_command(
    path: str,
    max_depth: int | None,
    include_hidden: bool | None,
    follow_symlinks: bool | None,
    progress_interval_ms: int | None,
    json_mode: bool,
    show_entries: bool,
) -> None:
    """Scan a directory tree and report file and directory totals.

    Press Ctrl+C to cancel; the scan stops at the next entry.

    \b
    Examples:
        velox scan ~/projects
        velox scan --max-depth 2 --include-hidden /etc
        velox scan --json --entries ./src
    """
    try:
        config = get_config(
            max_depth=max_depth,
            include_hidden=include_hidden,
            follow_symlinks=follow_symlinks,
            progress_interval_ms=progress_interval_ms,
        )
    except (ConfigFileError, ValueError) as e:
        error_exit(f"Invalid configuration: {e}", ExitCode.CONFIG_ERROR, json_mode)

    progress = ProgressDisplay(enabled=not json_mode)
    recorder = RecordingObserver()
    service = ScanService(
        config.scanner, observer=CompositeObserver([progress, recorder])
    )
    scan_config = service.build_config()

    try:
        result = asyncio.run(_run_scan(service, path, scan_config))
    except InvalidPathError as e:
        progress.finish()
        error_exit(e.message, ExitCode.TARGET_NOT_FOUND, json_mode)
    except ScanCancelledError as e:
        progress.finish()
        error_exit(e.message, ExitCode.INTERRUPTED, json_mode)
    except KeyboardInterrupt:
        progress.finish()
        error_exit("Scan aborted by user", ExitCode.INTERRUPTED, json_mode)
    except VeloxError as e:
        progress.finish()
        error_exit(e.message, ExitCode.OPERATION_FAILED, json_mode)

    progress.finish()

    if json_mode:
        data = result.to_dict(include_entries=show_entries)
        data["progress_events"] = len(recorder.named(EVENT_PROGRESS))
        json_output(data)
    else:
        output_human(result, show_entries)

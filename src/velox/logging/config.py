"""Root logger setup shared by ``velox scan`` and ``velox serve``."""

from __future__ import annotations

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import TYPE_CHECKING

from velox.logging.context import ScanContextFilter
from velox.logging.handlers import build_formatter

if TYPE_CHECKING:
    from velox.config.models import LoggingConfig

LEVELS: dict[str, int] = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


def _open_log_file(config: LoggingConfig) -> RotatingFileHandler | None:
    """Open the rotating log file, or return None if it cannot be created."""
    path = Path(config.file).expanduser()
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        # Paths from the walk may hold undecodable bytes
        return RotatingFileHandler(
            path,
            maxBytes=config.max_bytes,
            backupCount=config.backup_count,
            encoding="utf-8",
            errors="backslashreplace",
        )
    except OSError as e:
        sys.stderr.write(f"Warning: Could not open log file {path}: {e}\n")
        return None


def configure_logging(config: LoggingConfig) -> list[logging.Handler]:
    """Replace the root logger's handlers according to ``config``.

    Every handler gets the same formatter and a ScanContextFilter, so
    records from the walker thread are tagged with their scan. Logging
    falls back to stderr when the file cannot be opened.

    Returns:
        The handlers that were installed.
    """
    level = LEVELS.get(config.level.casefold(), logging.INFO)

    handlers: list[logging.Handler] = []
    if config.file:
        file_handler = _open_log_file(config)
        if file_handler is not None:
            handlers.append(file_handler)
    if config.include_stderr or not handlers:
        handlers.append(logging.StreamHandler(sys.stderr))

    formatter = build_formatter(config.format)
    context_filter = ScanContextFilter()

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(level)
    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)
        handler.addFilter(context_filter)
        root_logger.addHandler(handler)
    return handlers

"""Structured logging module for Velox.

Provides configurable logging with JSON format support and file rotation.
Includes scan context support so walker-thread logs carry the scan id.
"""

from velox.logging.config import configure_logging
from velox.logging.context import (
    ScanContextFilter,
    clear_scan_context,
    get_scan_context,
    scan_context,
    scan_extra,
    set_scan_context,
)
from velox.logging.handlers import JSONFormatter, ScanTextFormatter

__all__ = [
    "JSONFormatter",
    "ScanContextFilter",
    "ScanTextFormatter",
    "clear_scan_context",
    "configure_logging",
    "get_scan_context",
    "scan_context",
    "scan_extra",
    "set_scan_context",
]

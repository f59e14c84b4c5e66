"""Log formatters that render scan records.

Inside ``scan_context`` every record carries ``scan_id`` and ``root_path``
(set by ScanContextFilter). Lifecycle records additionally carry
``scan_event`` and ``scan_stats`` (see ``scan_extra``). Both formatters
group these into one scan section instead of scattering them.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from velox.core.datetime_utils import timestamp_to_iso

TEXT_FORMAT = "%(asctime)s - %(scan_tag)s%(name)s - %(levelname)s - %(message)s"
TEXT_DATE_FORMAT = "%Y-%m-%dT%H:%M:%S%z"

# Attributes present on every record, plus the ones Formatter.format adds
_RECORD_ATTRS = frozenset(logging.makeLogRecord({}).__dict__) | {
    "message",
    "asctime",
    "taskName",
}
_SCAN_ATTRS = frozenset(
    {"scan_id", "root_path", "scan_tag", "scan_event", "scan_stats"}
)


def scan_fields(record: logging.LogRecord) -> dict[str, Any]:
    """Collect the scan section of a record.

    Returns:
        ``{"id", "root", "event", **stats}`` with absent keys omitted;
        empty for records logged outside a scan.
    """
    fields: dict[str, Any] = {}
    scan_id = getattr(record, "scan_id", None)
    if scan_id:
        fields["id"] = scan_id
    root_path = getattr(record, "root_path", None)
    if root_path:
        fields["root"] = root_path
    event = getattr(record, "scan_event", None)
    if event:
        fields["event"] = event
    stats = getattr(record, "scan_stats", None)
    if stats:
        fields.update(stats)
    return fields


class JSONFormatter(logging.Formatter):
    """Format log records as single-line JSON objects.

    Keys:
        timestamp: ISO-8601 UTC.
        level, logger, message: As on the record.
        scan: Scan id, root, lifecycle event and stats (only inside a scan).
        extra: Any other attribute passed through ``extra=``.
        exception: Formatted traceback, when present.

    Output is ASCII-only, so undecodable path characters are escaped
    rather than failing the handler.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_entry: dict[str, Any] = {
            "timestamp": timestamp_to_iso(record.created),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        scan = scan_fields(record)
        if scan:
            log_entry["scan"] = scan

        extra = {
            key: value
            for key, value in record.__dict__.items()
            if key not in _RECORD_ATTRS
            and key not in _SCAN_ATTRS
            and not key.startswith("_")
        }
        if extra:
            log_entry["extra"] = extra

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_entry, default=str)


class ScanTextFormatter(logging.Formatter):
    """Human-readable formatter with a scan tag and lifecycle stats.

    Example:
        ``2024-01-01T10:00:00+0000 - [S:1a2b3c4d] velox.scanner.orchestrator
        - INFO - Scan completed [files=4 directories=2 bytes=65]``
    """

    def __init__(self) -> None:
        super().__init__(TEXT_FORMAT, datefmt=TEXT_DATE_FORMAT)

    def formatMessage(self, record: logging.LogRecord) -> str:
        # Handlers without ScanContextFilter never set the tag
        if not hasattr(record, "scan_tag"):
            record.scan_tag = ""
        text = super().formatMessage(record)
        stats = getattr(record, "scan_stats", None)
        if stats:
            pairs = " ".join(f"{key}={value}" for key, value in stats.items())
            text = f"{text} [{pairs}]"
        return text


def build_formatter(log_format: str) -> logging.Formatter:
    """Return the formatter for a ``[logging] format`` value."""
    if log_format.casefold() == "json":
        return JSONFormatter()
    return ScanTextFormatter()

"""Core utilities shared across Velox.

Pure helpers with no dependency on the scanner, server or CLI layers.
"""

from velox.core.datetime_utils import (
    elapsed_ms,
    parse_iso_timestamp,
    timestamp_to_iso,
    utc_now,
    utc_now_iso,
)
from velox.core.formatting import format_file_size, format_rate, truncate_path
from velox.core.locking import ReadWriteLock
from velox.core.system_info import SystemInfo, get_system_info

__all__ = [
    # Datetime
    "elapsed_ms",
    "parse_iso_timestamp",
    "timestamp_to_iso",
    "utc_now",
    "utc_now_iso",
    # Formatting
    "format_file_size",
    "format_rate",
    "truncate_path",
    # Locking
    "ReadWriteLock",
    # System
    "SystemInfo",
    "get_system_info",
]

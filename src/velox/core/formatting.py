"""Formatting utilities.

This module provides pure functions for formatting data for display.
These utilities are used across the codebase for consistent presentation.
"""

_SIZE_UNITS = ("KB", "MB", "GB", "TB", "PB")


def format_file_size(size_bytes: int) -> str:
    """Format a byte count in human-readable binary units.

    Args:
        size_bytes: Size in bytes.

    Returns:
        Formatted string (e.g., "4.2 GB", "128.0 MB", "1.5 KB", "512 B").
    """
    if size_bytes < 1024:
        return f"{size_bytes} B"

    value = float(size_bytes)
    unit = _SIZE_UNITS[0]
    for unit in _SIZE_UNITS:
        value /= 1024
        # Compare what will be printed so 1048575 B is not "1024.0 KB"
        if round(value, 1) < 1024:
            break
    return f"{value:.1f} {unit}"


def format_rate(items_per_sec: float) -> str:
    """Format a processing rate for progress lines.

    Args:
        items_per_sec: Items processed per second.

    Returns:
        Formatted string (e.g., "1.2k/s", "850/s").
    """
    if items_per_sec >= 1000:
        return f"{items_per_sec / 1000:.1f}k/s"
    return f"{items_per_sec:.0f}/s"


def truncate_path(path: str, max_length: int = 40) -> str:
    """Truncate a path keeping its tail, which carries the most context.

    Uses single ellipsis character (U+2026) as the leading marker.

    Args:
        path: The path to truncate.
        max_length: Maximum length of the result (default 40).

    Returns:
        Truncated path or original if short enough.

    Examples:
        >>> truncate_path("/home/user/projects/velox/src/velox/core", 20)
        '…elox/src/velox/core'
        >>> truncate_path("short", 40)
        'short'
    """
    if not path or len(path) <= max_length:
        return path
    if max_length < 2:
        return path[-max_length:] if max_length > 0 else ""
    return "…" + path[-(max_length - 1) :]

"""Centralized exit codes for all CLI commands.

Exit code ranges:
    0: Success
    1-9: General errors
    10-19: Validation errors (config, input)
    20-29: Target errors
    30-39: Connection errors
    40-49: Operation errors
"""

from enum import IntEnum


class ExitCode(IntEnum):
    """Exit codes for Velox CLI commands."""

    # Success (0)
    SUCCESS = 0

    # General errors (1-9)
    GENERAL_ERROR = 1
    INTERRUPTED = 2  # Ctrl+C / SIGINT (conventionally 130, but we use 2 for simplicity)

    # Validation errors (10-19)
    CONFIG_ERROR = 11

    # Target errors (20-29)
    TARGET_NOT_FOUND = 20
    SCAN_NOT_FOUND = 21

    # Connection errors (30-39)
    SERVER_UNAVAILABLE = 30

    # Operation errors (40-49)
    OPERATION_FAILED = 40

"""Custom exceptions for scan operations.

Each exception carries a machine-readable code so boundary layers (HTTP,
CLI, event observers) can report failures without string matching.
"""

from __future__ import annotations

from typing import Any

from velox.core.datetime_utils import utc_now_iso

INVALID_PATH = "INVALID_PATH"
SCAN_CANCELLED = "SCAN_CANCELLED"
NO_ACTIVE_SCAN = "NO_ACTIVE_SCAN"
STATE_ERROR = "STATE_ERROR"
SCAN_FAILED = "SCAN_FAILED"


class VeloxError(Exception):
    """Base exception for Velox scan errors.

    All scan-related exceptions inherit from this class, allowing callers
    to catch all scan errors with a single except clause if desired.

    Attributes:
        code: Machine-readable error code.
        message: Human-readable description.
        details: Optional extra context.
    """

    code: str = SCAN_FAILED

    def __init__(self, message: str, details: Any = None) -> None:
        self.message = message
        self.details = details
        super().__init__(message)

    def to_response(self) -> dict[str, Any]:
        """Build the error payload reported to clients."""
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details,
            "timestamp": utc_now_iso(),
        }


class InvalidPathError(VeloxError):
    """Raised when the scan root is missing or is not a directory.

    Attributes:
        path: The path that failed validation.
    """

    code = INVALID_PATH

    def __init__(self, path: str, reason: str) -> None:
        """Initialize the exception.

        Args:
            path: The rejected root path.
            reason: Short description, e.g. "Path does not exist".
        """
        self.path = path
        super().__init__(f"{reason}: {path}", details={"path": path})


class ScanCancelledError(VeloxError):
    """Raised when a scan stops because cancellation was requested."""

    code = SCAN_CANCELLED

    def __init__(self, scan_id: str) -> None:
        self.scan_id = scan_id
        super().__init__(
            "Scan operation cancelled by user", details={"scan_id": scan_id}
        )


class ScanNotFoundError(VeloxError):
    """Raised when a scan id is not known to the registry.

    Attributes:
        scan_id: The ID that was looked up.
    """

    code = NO_ACTIVE_SCAN

    def __init__(self, scan_id: str) -> None:
        self.scan_id = scan_id
        super().__init__(f"No active scan with id {scan_id}", details={"scan_id": scan_id})


class ScanStateError(VeloxError):
    """Raised on an illegal session status transition."""

    code = STATE_ERROR

    def __init__(self, scan_id: str, current: str, requested: str) -> None:
        self.scan_id = scan_id
        self.current = current
        self.requested = requested
        super().__init__(
            f"Scan {scan_id} cannot move from {current} to {requested}",
            details={"scan_id": scan_id, "current": current, "requested": requested},
        )


class ScanFailedError(VeloxError):
    """Raised when the traversal fails unexpectedly.

    The original exception is chained as ``__cause__``.
    """

    code = SCAN_FAILED

    def __init__(self, scan_id: str, reason: str) -> None:
        self.scan_id = scan_id
        super().__init__(f"Scan {scan_id} failed: {reason}", details={"scan_id": scan_id})

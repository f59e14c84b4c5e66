"""Cancellable, progress-streaming directory scanner."""

from velox.scanner.channel import ProgressChannel
from velox.scanner.exceptions import (
    InvalidPathError,
    ScanCancelledError,
    ScanFailedError,
    ScanNotFoundError,
    ScanStateError,
    VeloxError,
)
from velox.scanner.models import (
    FileEntry,
    HeartbeatResponse,
    ScanConfig,
    ScanProgress,
    ScanResult,
    ScanStatus,
)
from velox.scanner.observers import (
    EVENT_COMPLETE,
    EVENT_ERROR,
    EVENT_PROGRESS,
    CompositeObserver,
    NullObserver,
    RecordingObserver,
    ScanObserver,
)
from velox.scanner.orchestrator import DirectoryScanner, validate_root
from velox.scanner.relay import ProgressRelay
from velox.scanner.service import ScanService
from velox.scanner.session import ScanSession, SessionRegistry
from velox.scanner.walker import DirectoryWalker, walk

__all__ = [
    # Models
    "FileEntry",
    "HeartbeatResponse",
    "ScanConfig",
    "ScanProgress",
    "ScanResult",
    "ScanStatus",
    # Errors
    "InvalidPathError",
    "ScanCancelledError",
    "ScanFailedError",
    "ScanNotFoundError",
    "ScanStateError",
    "VeloxError",
    # Events
    "EVENT_COMPLETE",
    "EVENT_ERROR",
    "EVENT_PROGRESS",
    "CompositeObserver",
    "NullObserver",
    "RecordingObserver",
    "ScanObserver",
    # Engine
    "DirectoryScanner",
    "DirectoryWalker",
    "ProgressChannel",
    "ProgressRelay",
    "ScanService",
    "ScanSession",
    "SessionRegistry",
    "validate_root",
    "walk",
]

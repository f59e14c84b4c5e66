"""Data models for directory scans.

All payload models serialize with snake_case keys via ``to_dict()``;
enum members are reported by value.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any

from velox.core.formatting import format_file_size


class ScanStatus(Enum):
    """Lifecycle status of a scan session.

    State transitions:
        idle → scanning      (scan starts)
        scanning → completed (tree exhausted)
        scanning → cancelled (cancellation observed)
        scanning → error     (validation or traversal failure)

    Terminal states: completed, cancelled, error
    """

    IDLE = "idle"
    SCANNING = "scanning"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    ERROR = "error"

    @property
    def is_terminal(self) -> bool:
        return self in _TERMINAL_STATUSES


_TERMINAL_STATUSES = frozenset(
    {ScanStatus.COMPLETED, ScanStatus.CANCELLED, ScanStatus.ERROR}
)


@dataclass(frozen=True)
class ScanConfig:
    """Options for a single scan.

    Attributes:
        max_depth: Deepest level visited; the root is depth 0.
        include_hidden: Visit entries whose name starts with ".".
        follow_symlinks: Classify symlinks by their target and descend
            into linked directories.
        progress_interval_ms: Minimum spacing between progress snapshots.
    """

    max_depth: int = 100
    include_hidden: bool = False
    follow_symlinks: bool = False
    progress_interval_ms: int = 50

    def __post_init__(self) -> None:
        """Validate configuration."""
        if self.max_depth < 0:
            raise ValueError(f"max_depth must be non-negative, got {self.max_depth}")
        if self.progress_interval_ms < 0:
            raise ValueError(
                f"progress_interval_ms must be non-negative, "
                f"got {self.progress_interval_ms}"
            )


@dataclass(frozen=True)
class FileEntry:
    """One filesystem node discovered during a walk.

    ``children_count`` is reserved for tree reconstruction and is always
    None in flat scans.
    """

    id: str
    name: str
    path: str
    size: int
    size_formatted: str
    is_directory: bool
    is_file: bool
    is_symlink: bool
    extension: str | None
    modified: str | None  # ISO 8601
    created: str | None  # ISO 8601
    depth: int
    children_count: int | None = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class ScanProgress:
    """Point-in-time snapshot of a running scan."""

    scan_id: str
    current_path: str
    files_scanned: int
    directories_scanned: int
    bytes_scanned: int
    bytes_formatted: str
    elapsed_ms: int
    percent_complete: float
    status: ScanStatus
    estimated_total: int | None = None

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["status"] = self.status.value
        return data


@dataclass(frozen=True)
class ScanResult:
    """Terminal artifact of a successful scan."""

    scan_id: str
    root_path: str
    total_files: int
    total_directories: int
    total_size: int
    total_size_formatted: str
    entries: tuple[FileEntry, ...]
    duration_ms: int
    completed_at: str  # ISO 8601
    status: ScanStatus = ScanStatus.COMPLETED

    def to_dict(self, include_entries: bool = True) -> dict[str, Any]:
        """Serialize the result.

        Args:
            include_entries: If False, omit the entry list (summary only).
        """
        data: dict[str, Any] = {
            "scan_id": self.scan_id,
            "root_path": self.root_path,
            "total_files": self.total_files,
            "total_directories": self.total_directories,
            "total_size": self.total_size,
            "total_size_formatted": self.total_size_formatted,
            "duration_ms": self.duration_ms,
            "completed_at": self.completed_at,
            "status": self.status.value,
        }
        if include_entries:
            data["entries"] = [entry.to_dict() for entry in self.entries]
        return data


@dataclass
class ScanTotals:
    """Running counters maintained by the walker.

    Symlinks that are not classified as a file or directory count toward
    neither total.
    """

    files: int = 0
    directories: int = 0
    bytes: int = 0
    entries: list[FileEntry] = field(default_factory=list)

    def add(self, entry: FileEntry) -> None:
        self.entries.append(entry)
        if entry.is_directory:
            self.directories += 1
        elif entry.is_file:
            self.files += 1
            self.bytes += entry.size

    @property
    def bytes_formatted(self) -> str:
        return format_file_size(self.bytes)


@dataclass(frozen=True)
class HeartbeatResponse:
    """Liveness report for the scan service."""

    status: str
    uptime_ms: int
    active_scans: int
    timestamp: str  # ISO 8601
    version: str

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

"""Shared test fixtures for Velox."""

from __future__ import annotations

from pathlib import Path

import pytest

from velox.config.loader import clear_config_cache


@pytest.fixture(autouse=True)
def _isolate_config(tmp_path_factory: pytest.TempPathFactory, monkeypatch):
    """Keep tests away from the user's ~/.velox and VELOX_* variables."""
    data_dir = tmp_path_factory.mktemp("velox-data")
    monkeypatch.setenv("VELOX_DATA_DIR", str(data_dir))
    for var in (
        "VELOX_CONFIG_PATH",
        "VELOX_MAX_DEPTH",
        "VELOX_INCLUDE_HIDDEN",
        "VELOX_FOLLOW_SYMLINKS",
        "VELOX_PROGRESS_INTERVAL_MS",
        "VELOX_SERVER_PORT",
        "VELOX_LOG_LEVEL",
        "VELOX_LOG_FILE",
        "VELOX_LOG_FORMAT",
    ):
        monkeypatch.delenv(var, raising=False)
    clear_config_cache()
    yield
    clear_config_cache()


@pytest.fixture
def sample_tree(tmp_path: Path) -> Path:
    """Directory with 3 files (10, 20, 30 bytes) and a subdirectory with 1 file.

    Layout::

        root/
            a.txt        10 bytes
            b.log        20 bytes
            c            30 bytes
            sub/
                d.txt     5 bytes
    """
    root = tmp_path / "root"
    root.mkdir()
    (root / "a.txt").write_bytes(b"x" * 10)
    (root / "b.log").write_bytes(b"x" * 20)
    (root / "c").write_bytes(b"x" * 30)
    sub = root / "sub"
    sub.mkdir()
    (sub / "d.txt").write_bytes(b"x" * 5)
    return root


@pytest.fixture
def hidden_tree(tmp_path: Path) -> Path:
    """Directory mixing visible and hidden entries."""
    root = tmp_path / "hidden"
    root.mkdir()
    (root / "visible.txt").write_bytes(b"abc")
    (root / ".secret").write_bytes(b"abcdef")
    hidden_dir = root / ".cache"
    hidden_dir.mkdir()
    (hidden_dir / "blob.bin").write_bytes(b"x" * 100)
    return root


@pytest.fixture
def wide_tree(tmp_path: Path) -> Path:
    """Tree large enough that a scan visits many nodes."""
    root = tmp_path / "wide"
    root.mkdir()
    for i in range(20):
        branch = root / f"dir{i:02d}"
        branch.mkdir()
        for j in range(10):
            (branch / f"file{j}.dat").write_bytes(b"x" * (j + 1))
    return root

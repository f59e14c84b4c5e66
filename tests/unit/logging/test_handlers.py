"""Unit tests for the scan-aware formatters and configure_logging."""

import json
import logging
import sys
from pathlib import Path

import pytest

from velox.config.models import LoggingConfig
from velox.logging import configure_logging
from velox.logging.context import ScanContextFilter, scan_context, scan_extra
from velox.logging.handlers import (
    JSONFormatter,
    ScanTextFormatter,
    build_formatter,
    scan_fields,
)


def _make_record(msg: str = "hello", **extra) -> logging.LogRecord:
    record = logging.LogRecord(
        "velox.test", logging.WARNING, __file__, 10, msg, None, None
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def _in_scan(record: logging.LogRecord) -> logging.LogRecord:
    with scan_context("1a2b3c4d-5e6f", "/data"):
        ScanContextFilter().filter(record)
    return record


class TestScanFields:
    """Tests for scan_fields."""

    def test_outside_scan_is_empty(self):
        assert scan_fields(_make_record()) == {}

    def test_lifecycle_record(self):
        record = _in_scan(
            _make_record(**scan_extra("completed", files=4, directories=2))
        )
        assert scan_fields(record) == {
            "id": "1a2b3c4d-5e6f",
            "root": "/data",
            "event": "completed",
            "files": 4,
            "directories": 2,
        }


class TestJSONFormatter:
    """Tests for JSONFormatter."""

    def test_basic_fields(self):
        data = json.loads(JSONFormatter().format(_make_record()))
        assert data["level"] == "WARNING"
        assert data["message"] == "hello"
        assert data["logger"] == "velox.test"
        assert data["timestamp"].endswith("+00:00")
        assert "scan" not in data
        assert "extra" not in data

    def test_scan_context_nested(self):
        data = json.loads(JSONFormatter().format(_in_scan(_make_record())))
        assert data["scan"] == {"id": "1a2b3c4d-5e6f", "root": "/data"}
        assert "extra" not in data

    def test_lifecycle_stats_nested(self):
        record = _in_scan(_make_record(**scan_extra("cancelled", files=25)))
        data = json.loads(JSONFormatter().format(record))
        assert data["scan"]["event"] == "cancelled"
        assert data["scan"]["files"] == 25

    def test_other_extra_kept_separately(self):
        data = json.loads(JSONFormatter().format(_make_record(client="10.0.0.1")))
        assert data["extra"] == {"client": "10.0.0.1"}

    def test_undecodable_path_stays_valid_json(self):
        message = "Cannot read " + "/data/bad\udcff.txt"
        line = JSONFormatter().format(_make_record(message))
        assert json.loads(line)["message"] == message
        line.encode("ascii")

    def test_exception_formatted(self):
        try:
            raise RuntimeError("bad")
        except RuntimeError:
            record = logging.LogRecord(
                "x", logging.ERROR, __file__, 1, "failed", None, sys.exc_info()
            )
        data = json.loads(JSONFormatter().format(record))
        assert "RuntimeError: bad" in data["exception"]


class TestScanTextFormatter:
    """Tests for ScanTextFormatter."""

    def test_tag_and_stats(self):
        record = _in_scan(
            _make_record("Scan completed", **scan_extra("completed", files=4))
        )
        text = ScanTextFormatter().format(record)
        assert "[S:1a2b3c4d] velox.test - WARNING - Scan completed" in text
        assert text.endswith("[files=4]")

    def test_without_filter(self):
        text = ScanTextFormatter().format(_make_record())
        assert "- velox.test - WARNING - hello" in text
        assert "[S:" not in text

    def test_build_formatter(self):
        assert isinstance(build_formatter("JSON"), JSONFormatter)
        assert isinstance(build_formatter("text"), ScanTextFormatter)


class TestConfigureLogging:
    """Tests for configure_logging."""

    @pytest.fixture(autouse=True)
    def _restore_root_logger(self):
        root = logging.getLogger()
        handlers, level = root.handlers[:], root.level
        yield
        for handler in root.handlers:
            if handler not in handlers:
                handler.close()
        root.handlers[:] = handlers
        root.setLevel(level)

    def test_stderr_only_by_default(self):
        installed = configure_logging(LoggingConfig(level="debug"))
        root = logging.getLogger()
        assert root.level == logging.DEBUG
        assert root.handlers == installed
        assert len(installed) == 1
        assert isinstance(installed[0].formatter, ScanTextFormatter)

    def test_file_handler_json_with_scan(self, tmp_path: Path):
        log_file = tmp_path / "logs" / "velox.log"
        configure_logging(LoggingConfig(file=log_file, format="json"))

        with scan_context("scan-1", "/data"):
            logging.getLogger("velox.test").info(
                "done", extra=scan_extra("completed", files=1)
            )
        for handler in logging.getLogger().handlers:
            handler.flush()

        entry = json.loads(log_file.read_text().strip().splitlines()[-1])
        assert entry["message"] == "done"
        assert entry["scan"] == {
            "id": "scan-1",
            "root": "/data",
            "event": "completed",
            "files": 1,
        }

    def test_text_file_tolerates_undecodable_paths(self, tmp_path: Path):
        log_file = tmp_path / "velox.log"
        configure_logging(LoggingConfig(file=log_file))

        logging.getLogger("velox.test").warning("Cannot read %s", "bad\udcff.txt")
        for handler in logging.getLogger().handlers:
            handler.flush()

        assert "bad\\udcff.txt" in log_file.read_text()

    def test_file_with_stderr(self, tmp_path: Path):
        configure_logging(
            LoggingConfig(file=tmp_path / "velox.log", include_stderr=True)
        )
        assert len(logging.getLogger().handlers) == 2

    def test_unwritable_file_falls_back_to_stderr(self, tmp_path: Path, capsys):
        blocker = tmp_path / "not-a-dir"
        blocker.write_text("")
        installed = configure_logging(LoggingConfig(file=blocker / "velox.log"))

        assert len(installed) == 1
        assert not isinstance(installed[0], logging.FileHandler)
        assert "Could not open log file" in capsys.readouterr().err

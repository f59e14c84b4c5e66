"""Unit tests for core/formatting.py."""

from velox.core.formatting import format_file_size, format_rate, truncate_path


class TestFormatFileSize:
    """Tests for format_file_size function."""

    def test_bytes(self) -> None:
        """Test formatting small byte values."""
        assert format_file_size(0) == "0 B"
        assert format_file_size(65) == "65 B"
        assert format_file_size(1023) == "1023 B"

    def test_kilobytes(self) -> None:
        """Test formatting kilobyte values."""
        assert format_file_size(1024) == "1.0 KB"
        assert format_file_size(1536) == "1.5 KB"

    def test_megabytes(self) -> None:
        """Test formatting megabyte values."""
        assert format_file_size(1024 * 1024) == "1.0 MB"
        assert format_file_size(int(128.5 * 1024 * 1024)) == "128.5 MB"

    def test_rounding_steps_up_a_unit(self) -> None:
        """Values that round to 1024 of one unit display as the next unit."""
        assert format_file_size(1024 * 1024 - 1) == "1.0 MB"
        assert format_file_size(1024**3 - 1) == "1.0 GB"
        assert format_file_size(1024 * 1024 - 60) == "1023.9 KB"

    def test_gigabytes(self) -> None:
        """Test formatting gigabyte values."""
        assert format_file_size(int(4.2 * 1024**3)) == "4.2 GB"

    def test_largest_unit_caps(self) -> None:
        """Values beyond petabytes stay in PB."""
        assert format_file_size(2048 * 1024**5) == "2048.0 PB"


class TestFormatRate:
    """Tests for format_rate function."""

    def test_below_thousand(self) -> None:
        assert format_rate(0) == "0/s"
        assert format_rate(850.4) == "850/s"

    def test_thousands_use_k_suffix(self) -> None:
        assert format_rate(1000) == "1.0k/s"
        assert format_rate(1234) == "1.2k/s"


class TestTruncatePath:
    """Tests for truncate_path function."""

    def test_short_path_unchanged(self) -> None:
        assert truncate_path("short", 40) == "short"

    def test_empty_path(self) -> None:
        assert truncate_path("", 10) == ""

    def test_keeps_tail(self) -> None:
        """Long paths keep their last characters after an ellipsis."""
        result = truncate_path("/home/user/projects/velox/src/velox/core", 20)
        assert result == "…elox/src/velox/core"
        assert len(result) == 20

    def test_tiny_max_length(self) -> None:
        assert truncate_path("abcdef", 1) == "f"
        assert truncate_path("abcdef", 0) == ""

"""Tests for formatting utilities."""

import pytest

from wapair.formatting import format_duration, to_iso


class TestFormatDuration:
    """Test uptime formatting."""

    @pytest.mark.parametrize(
        "seconds,expected",
        [
            (0, "0s"),
            (42.9, "42s"),
            (60, "1m 0s"),
            (3725, "1h 2m 5s"),
            (90061, "1d 1h 1m 1s"),
            (-5, "0s"),
        ],
    )
    def test_format_duration(self, seconds, expected):
        assert format_duration(seconds) == expected


class TestToIso:
    """Test timestamp serialization."""

    def test_none(self):
        assert to_iso(None) is None

    def test_utc_with_millis(self):
        assert to_iso(0) == "1970-01-01T00:00:00.000Z"
        assert to_iso(1_700_000_000.5) == "2023-11-14T22:13:20.500Z"

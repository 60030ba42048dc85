from datetime import timedelta

import pytest

from replicator._utils.duration_utils import format_duration, parse_duration
from replicator.exceptions import DurationError


class TestDurationUtils:
    """Tests for Go-style duration parsing and formatting."""

    @pytest.mark.parametrize(
        ("duration_str", "expected"),
        [
            ("10s", timedelta(seconds=10)),
            ("10m", timedelta(minutes=10)),
            ("1h", timedelta(hours=1)),
            ("1h30m", timedelta(hours=1, minutes=30)),
            ("1m30s", timedelta(seconds=90)),
            ("250ms", timedelta(milliseconds=250)),
            ("1.5h", timedelta(minutes=90)),
            ("500us", timedelta(microseconds=500)),
            ("500µs", timedelta(microseconds=500)),
            ("0", timedelta(0)),
            ("0s", timedelta(0)),
            (" 5m ", timedelta(minutes=5)),
        ],
    )
    def test_parse_duration(self, duration_str: str, expected: timedelta):
        assert parse_duration(duration_str) == expected

    @pytest.mark.parametrize("invalid", ["", "10", "ten minutes", "10d", "-5m", "1h 30m", "m"])
    def test_parse_duration_invalid(self, invalid: str):
        with pytest.raises(DurationError, match="Invalid duration"):
            parse_duration(invalid)

    @pytest.mark.parametrize(
        ("duration", "expected"),
        [
            (timedelta(0), "0s"),
            (timedelta(seconds=45), "45s"),
            (timedelta(seconds=90), "1m30s"),
            (timedelta(minutes=10), "10m0s"),
            (timedelta(minutes=90), "1h30m0s"),
        ],
    )
    def test_format_duration(self, duration: timedelta, expected: str):
        assert format_duration(duration) == expected

"""Go-style duration strings (``"10s"``, ``"1m30s"``, ``"1h"``, ``"250ms"``).

Subscription intervals are written the way Kubernetes users write them in
custom resources, so they follow Go's ``time.ParseDuration`` grammar rather
than ISO-8601.
"""

import re
from datetime import timedelta

from replicator.exceptions import DurationError

_UNIT_SECONDS: dict[str, float] = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}

_SEGMENT_PATTERN = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|ms|s|m|h)")


def parse_duration(duration_str: str) -> timedelta:
    """Parse a Go-style duration string into a timedelta.

    Args:
        duration_str: A sequence of decimal numbers with unit suffixes, e.g. ``"1h30m"``.
            A bare ``"0"`` is accepted.

    Returns:
        The parsed duration.

    Raises:
        DurationError: If the string is empty, negative, or not in duration syntax.
    """
    text = duration_str.strip()
    if text == "0":
        return timedelta(0)
    if not text:
        msg = "Invalid duration: empty string"
        raise DurationError(msg)
    if text.startswith("-"):
        msg = f"Invalid duration {duration_str!r}: must not be negative"
        raise DurationError(msg)
    text = text.removeprefix("+")

    total_seconds = 0.0
    position = 0
    while position < len(text):
        match = _SEGMENT_PATTERN.match(text, position)
        if match is None:
            msg = f"Invalid duration {duration_str!r}: expected e.g. '10s', '1m30s' or '1h'"
            raise DurationError(msg)
        number, unit = match.groups()
        total_seconds += float(number) * _UNIT_SECONDS[unit]
        position = match.end()

    return timedelta(seconds=total_seconds)


def format_duration(duration: timedelta) -> str:
    """Render a timedelta back into compact Go-style notation (``"1h30m0s"``)."""
    total = duration.total_seconds()
    if total == 0:
        return "0s"
    hours, remainder = divmod(int(total), 3600)
    minutes, seconds = divmod(remainder, 60)
    fraction = total - int(total)
    seconds_str = f"{seconds + fraction:g}s"
    if hours:
        return f"{hours}h{minutes}m{seconds_str}"
    if minutes:
        return f"{minutes}m{seconds_str}"
    return seconds_str

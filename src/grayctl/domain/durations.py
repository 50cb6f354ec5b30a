"""Override duration parsing and human formatting.

Durations are carried as integer milliseconds everywhere in the engine.
"""

from __future__ import annotations

import re

MINUTE_MS = 60_000
HOUR_MS = 60 * MINUTE_MS
DAY_MS = 24 * HOUR_MS

_UNITS: dict[str, int] = {
    "ms": 1,
    "s": 1000,
    "m": MINUTE_MS,
    "h": HOUR_MS,
    "d": DAY_MS,
}

_DURATION_RE = re.compile(r"^\s*(\d+)\s*(ms|s|m|h|d)?\s*$", re.IGNORECASE)


def parse_duration(value: str | int) -> int:
    """Parse ``"90s"``, ``"15m"``, ``"1h"``, ``"1d"`` or bare milliseconds.

    Raises:
        ValueError: If *value* is not a positive duration.
    """
    if isinstance(value, int):
        millis = value
    else:
        match = _DURATION_RE.match(value)
        if match is None:
            msg = f"Invalid duration: {value!r}. Expected e.g. '15m', '1h', '1d' or milliseconds"
            raise ValueError(msg)
        unit = (match.group(2) or "ms").lower()
        millis = int(match.group(1)) * _UNITS[unit]
    if millis <= 0:
        msg = f"Duration must be positive, got {value!r}"
        raise ValueError(msg)
    return millis


def format_duration(ms: int) -> str:
    """Render an override duration the way the popup phrases it.

    Examples:
        >>> format_duration(15 * MINUTE_MS)
        '15 minutes'
        >>> format_duration(HOUR_MS)
        '1 hour'
        >>> format_duration(DAY_MS)
        '1 day'
    """
    minutes = ms // MINUTE_MS
    if minutes < 60:
        return "1 minute" if minutes == 1 else f"{minutes} minutes"
    hours = minutes // 60
    if hours < 24:
        return "1 hour" if hours == 1 else f"{hours} hours"
    days = hours // 24
    return "1 day" if days == 1 else f"{days} days"


def format_remaining(ms: int) -> str:
    """Countdown text for a remaining override, e.g. ``"1h 04m"`` or ``"3m 20s"``."""
    seconds = max(0, ms) // 1000
    hours, rest = divmod(seconds, 3600)
    minutes, secs = divmod(rest, 60)
    if hours:
        return f"{hours}h {minutes:02d}m"
    return f"{minutes}m {secs:02d}s"

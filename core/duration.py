"""Duration parsing helpers for configuration values."""

from __future__ import annotations

import re

_DURATION_RE = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*(ms|s|m|h)?\s*$", re.IGNORECASE)
_UNIT_SECONDS = {
    "ms": 0.001,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}


def parse_seconds(value: str | int | float) -> float:
    """Parse a timeout into seconds.

    Accepts plain numbers (seconds) and compact strings like '500ms',
    '15s', '1m'. A bare numeric string is read as seconds.
    """
    if isinstance(value, bool):
        raise ValueError(f"Invalid duration: {value!r}")
    if isinstance(value, (int, float)):
        seconds = float(value)
    else:
        match = _DURATION_RE.match(str(value or ""))
        if not match:
            raise ValueError(
                f"Invalid duration: {value!r}. Expected seconds or '<number><ms|s|m|h>'."
            )
        unit = (match.group(2) or "s").lower()
        seconds = float(match.group(1)) * _UNIT_SECONDS[unit]

    if seconds < 0:
        raise ValueError(f"Duration must not be negative: {value!r}")
    return seconds

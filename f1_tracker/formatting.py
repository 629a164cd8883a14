"""Time and value formatting helpers shared by the standings and the header.

Gap values from the intervals feed are either a number of seconds or a
lap-count string such as ``"+1 LAP"``. Lap-count values are passed through
untouched; durations are rendered as ``[-]MM:SS.mmm``.
"""

from __future__ import annotations

import math
from typing import Any

PLACEHOLDER = "--:--:--"
NOT_AVAILABLE = "N/A"
OUT_MARKER = "OUT"
OUT_LAP_MARKER = "OUTLAP"
NO_GAP = "--"
FINISHED = "Finished"

# Values this close to zero get no sign
_SIGN_EPSILON = 0.0001


def is_lap_encoded(value: Any) -> bool:
    """True for textual values that count laps rather than seconds.

    Anything textual that does not parse as a number is treated the same way,
    so unexpected markers from the feed are shown verbatim instead of dropped.
    """
    if not isinstance(value, str):
        return False
    if "LAP" in value.upper():
        return True
    return to_seconds(value) is None


def to_seconds(value: Any) -> float | None:
    """Coerce a feed value to float seconds, or None if it is not numeric."""
    if value is None or isinstance(value, bool):
        return None
    try:
        seconds = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(seconds):
        return None
    return seconds


def format_time(value: Any, include_sign_if_positive: bool = False) -> str:
    """Format a duration in seconds as ``[-]MM:SS.mmm``.

    Minutes are dropped under one minute (``-0.05`` -> ``-00.050``). With
    ``include_sign_if_positive`` a positive value gets a leading ``+`` so it
    reads as "behind". Lap-count strings are returned unchanged and missing
    values become the placeholder.
    """
    if value is None:
        return PLACEHOLDER
    if is_lap_encoded(value):
        return value

    seconds = to_seconds(value)
    if seconds is None:
        return PLACEHOLDER

    sign = ""
    if seconds < -_SIGN_EPSILON:
        sign = "-"
    elif include_sign_if_positive and seconds > _SIGN_EPSILON:
        sign = "+"

    # Half-milliseconds round up
    total_ms = math.floor(abs(seconds) * 1000 + 0.5)
    minutes, remainder_ms = divmod(total_ms, 60_000)
    secs, millis = divmod(remainder_ms, 1000)

    if minutes == 0:
        return f"{sign}{secs:02d}.{millis:03d}"
    return f"{sign}{minutes:02d}:{secs:02d}.{millis:03d}"


def format_laps_down(laps_down: int) -> str:
    """Secondary gap annotation, e.g. ``+1 LAP`` / ``+3 LAPS``."""
    if laps_down <= 0:
        return ""
    return f"+{laps_down} LAP" if laps_down == 1 else f"+{laps_down} LAPS"


def format_countdown(seconds: float) -> str:
    """Format remaining session time as ``HH:MM:SS`` (never negative)."""
    remaining = max(0, int(seconds))
    hours, rest = divmod(remaining, 3600)
    minutes, secs = divmod(rest, 60)
    return f"{hours:02d}:{minutes:02d}:{secs:02d}"


def format_position_delta(delta: int | None) -> str:
    """Render a rank delta as ``+N`` / ``-N`` / ``-`` (no change or unknown)."""
    if not delta:
        return "-"
    return f"+{delta}" if delta > 0 else str(delta)

"""Race time string parsing and formatting."""

import math
from typing import Optional, Union

# Lap times outside (0, MAX_VALID_LAP_TIME) are treated as missing
# (safety car, red flag or timing glitches).
MAX_VALID_LAP_TIME = 200.0

MISSING_TIME_LABEL = "N/A"


def parse_race_time(value: Union[str, float, int, None]) -> float:
    """Convert a race time string to seconds.

    Accepts ``"ss.xxx"`` or ``"m:ss.xxx"``. Numbers are passed through.

    Args:
        value: Time string as reported by the timing feed

    Returns:
        Time in seconds, or NaN when the input is empty or malformed
    """
    if value is None:
        return math.nan

    if isinstance(value, (int, float)) and not isinstance(value, bool):
        seconds = float(value)
        return seconds if math.isfinite(seconds) else math.nan

    clean_time = str(value).strip()
    if not clean_time:
        return math.nan

    parts = clean_time.split(":")
    try:
        if len(parts) == 1:
            seconds = float(parts[0])
        elif len(parts) == 2:
            seconds = float(parts[0]) * 60 + float(parts[1])
        else:
            return math.nan
    except ValueError:
        return math.nan

    return seconds if math.isfinite(seconds) else math.nan


def format_race_time(seconds: Optional[float]) -> str:
    """Format seconds as ``m:ss.xxx``.

    Args:
        seconds: Time in seconds

    Returns:
        Formatted time, or ``"N/A"`` for missing values
    """
    if seconds is None or not math.isfinite(seconds):
        return MISSING_TIME_LABEL

    sign = "-" if seconds < 0 else ""
    # Round on whole milliseconds so 59.9996 becomes 1:00.000, not 0:60.000
    total_ms = int(round(abs(seconds) * 1000))
    minutes, remainder_ms = divmod(total_ms, 60_000)
    return f"{sign}{minutes}:{remainder_ms / 1000:06.3f}"


def is_valid_lap_time(seconds: float) -> bool:
    """Whether a parsed lap time counts as a real racing lap."""
    return math.isfinite(seconds) and 0 < seconds < MAX_VALID_LAP_TIME

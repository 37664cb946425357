"""Lap filtering for race analytics.

Two tiers of filters are applied:

* Lap-level filters decide which laps appear at all (lap range, race pace
  only, pit laps).
* Value-level filters run per driver and per lap time. They never remove a
  lap; a rejected time becomes ``None`` so a line chart can span the gap.
"""

import math
from dataclasses import dataclass, fields
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from loguru import logger

from ..schemas import LapRecord, PitStopEvent
from .time_codec import parse_race_time

# Tukey fences
IQR_MULTIPLIER = 1.5
MIN_OUTLIER_SAMPLES = 5

# Laps dropped from the end of the race by the race pace filter
RACE_PACE_TRAILING_LAPS = 3

_OPTION_ALIASES = {
    "excludePitLaps": "exclude_pit_laps",
    "excludeOutliers": "exclude_outliers",
    "lapRangeStart": "lap_range_start",
    "lapRangeEnd": "lap_range_end",
    "minLapTime": "min_lap_time",
    "maxLapTime": "max_lap_time",
    "showOnlyRacePace": "show_only_race_pace",
}

_FLAG_OPTIONS = ("exclude_pit_laps", "exclude_outliers", "show_only_race_pace")
_LAP_OPTIONS = ("lap_range_start", "lap_range_end")

_TRUE_STRINGS = ("true", "1", "yes", "on")
_FALSE_STRINGS = ("false", "0", "no", "off")


def _parse_flag(value: Any) -> bool:
    """Parse a boolean option that may arrive as a string."""
    if isinstance(value, str):
        lowered = value.lower()
        if lowered in _TRUE_STRINGS:
            return True
        if lowered in _FALSE_STRINGS:
            return False
        raise ValueError(f"not a boolean: {value!r}")
    return bool(value)


@dataclass(frozen=True)
class FilterConfig:
    """Filter options for lap time views. ``None`` disables a bound."""

    exclude_pit_laps: bool = False
    exclude_outliers: bool = False
    lap_range_start: Optional[int] = None
    lap_range_end: Optional[int] = None
    min_lap_time: Optional[float] = None
    max_lap_time: Optional[float] = None
    show_only_race_pace: bool = False

    @classmethod
    def from_dict(cls, options: Optional[Mapping[str, Any]]) -> "FilterConfig":
        """Build a config from camelCase or snake_case option names."""
        if not options:
            return cls()

        known = {f.name for f in fields(cls)}
        values: Dict[str, Any] = {}
        for key, value in options.items():
            name = _OPTION_ALIASES.get(key, key)
            if name not in known:
                logger.warning(f"Ignoring unknown filter option: {key}")
                continue
            values[name] = value

        for name in list(values):
            value = values[name]
            if isinstance(value, str):
                value = value.strip()
            # A cleared panel field arrives as an empty string
            if value is None or value == "":
                values.pop(name)
                continue

            try:
                if name in _FLAG_OPTIONS:
                    values[name] = _parse_flag(value)
                elif name in _LAP_OPTIONS:
                    values[name] = int(value)
                else:
                    values[name] = float(value)
            except (TypeError, ValueError):
                logger.warning(f"Ignoring filter option {name} with invalid value {value!r}")
                values.pop(name)

        return cls(**values)

    @property
    def is_active(self) -> bool:
        return (
            self.exclude_pit_laps
            or self.exclude_outliers
            or self.show_only_race_pace
            or self.lap_range_start is not None
            or self.lap_range_end is not None
            or self.min_lap_time is not None
            or self.max_lap_time is not None
        )

    def describe(self) -> str:
        """Human readable summary of the active filters."""
        if not self.is_active:
            return "No filters active"

        parts = []
        if self.exclude_pit_laps:
            parts.append("No pit laps")
        if self.exclude_outliers:
            parts.append("No outliers")
        if self.show_only_race_pace:
            parts.append("Race pace only")
        if self.lap_range_start is not None:
            parts.append(f"From lap {self.lap_range_start}")
        if self.lap_range_end is not None:
            parts.append(f"To lap {self.lap_range_end}")
        if self.min_lap_time is not None:
            parts.append(f"Min {self.min_lap_time}s")
        if self.max_lap_time is not None:
            parts.append(f"Max {self.max_lap_time}s")
        return "Filters active: " + ", ".join(parts)


@dataclass(frozen=True)
class LapTimeSeries:
    """Per-driver lap times aligned to the filtered lap labels."""

    labels: Tuple[int, ...]
    series: Dict[str, Tuple[Optional[float], ...]]


def apply_lap_filters(
    laps: Sequence[LapRecord],
    pit_stops: Iterable[PitStopEvent],
    config: FilterConfig,
) -> List[LapRecord]:
    """Apply the lap-level filters.

    Args:
        laps: Full lap sequence for the race
        pit_stops: Pit-stop events for every driver
        config: Filter options

    Returns:
        Laps that pass every lap-level filter, in lap order
    """
    if not laps:
        return []

    total_laps = max(lap.number for lap in laps)
    pit_laps = {stop.lap for stop in pit_stops}

    if (
        config.lap_range_start is not None
        and config.lap_range_end is not None
        and config.lap_range_start > config.lap_range_end
    ):
        logger.warning(
            f"Lap range start {config.lap_range_start} is after end {config.lap_range_end}"
        )

    kept = []
    for lap in sorted(laps, key=lambda lap: lap.number):
        if config.lap_range_start is not None and lap.number < config.lap_range_start:
            continue
        if config.lap_range_end is not None and lap.number > config.lap_range_end:
            continue
        if config.show_only_race_pace and (
            lap.number == 1 or lap.number > total_laps - RACE_PACE_TRAILING_LAPS
        ):
            continue
        if config.exclude_pit_laps and lap.number in pit_laps:
            continue
        kept.append(lap)

    logger.info(f"Lap filters kept {len(kept)} of {len(laps)} laps ({config.describe()})")
    return kept


def iqr_bounds(lap_times: Iterable[float]) -> Optional[Tuple[float, float]]:
    """Tukey outlier fences over the valid (> 0s) lap times.

    Quartiles use the nearest-rank index ``floor(n * q)`` into the sorted
    sample.

    Returns:
        ``(lower, upper)`` or None when the sample is too small to test
    """
    sample = sorted(t for t in lap_times if math.isfinite(t) and t > 0)
    n = len(sample)
    if n < MIN_OUTLIER_SAMPLES:
        return None

    q1 = sample[math.floor(n * 0.25)]
    q3 = sample[math.floor(n * 0.75)]
    iqr = q3 - q1
    return q1 - IQR_MULTIPLIER * iqr, q3 + IQR_MULTIPLIER * iqr


def filter_lap_time(
    lap_time: float,
    config: FilterConfig,
    all_lap_times: Sequence[float],
) -> bool:
    """Check one lap time against the value-level filters.

    Args:
        lap_time: Lap time in seconds (NaN for missing)
        config: Filter options
        all_lap_times: The driver's full raw lap-time sample

    Returns:
        True if the value should be shown
    """
    return _passes(lap_time, config, iqr_bounds(all_lap_times) if config.exclude_outliers else None)


def _passes(
    lap_time: float,
    config: FilterConfig,
    bounds: Optional[Tuple[float, float]],
) -> bool:
    if not math.isfinite(lap_time):
        return False
    if config.min_lap_time is not None and lap_time < config.min_lap_time:
        return False
    if config.max_lap_time is not None and lap_time > config.max_lap_time:
        return False
    if bounds is not None:
        lower, upper = bounds
        if lap_time < lower or lap_time > upper:
            return False
    return True


def driver_lap_times(laps: Iterable[LapRecord], driver_id: str) -> List[float]:
    """Raw parsed lap times for one driver across the given laps."""
    times = []
    for lap in laps:
        timing = lap.timing_for(driver_id)
        if timing is not None:
            times.append(parse_race_time(timing.time))
    return times


def lap_time_series(
    laps: Sequence[LapRecord],
    pit_stops: Iterable[PitStopEvent],
    config: FilterConfig,
    driver_ids: Optional[Sequence[str]] = None,
) -> LapTimeSeries:
    """Build value-filtered lap time series for charting.

    Lap-level filters choose the labels; value-level filters null individual
    points. The outlier sample is always the driver's full, unfiltered lap
    set.

    Args:
        laps: Full lap sequence for the race
        pit_stops: Pit-stop events
        config: Filter options
        driver_ids: Drivers to include (default: every driver in the feed)

    Returns:
        Lap labels and one aligned series per driver
    """
    logger.info("Building filtered lap time series")

    filtered = apply_lap_filters(laps, pit_stops, config)
    labels = tuple(lap.number for lap in filtered)

    if driver_ids is None:
        seen: Dict[str, None] = {}
        for lap in laps:
            for timing in lap.timings:
                seen.setdefault(timing.driver_id, None)
        driver_ids = list(seen)

    series: Dict[str, Tuple[Optional[float], ...]] = {}
    for driver_id in driver_ids:
        bounds = iqr_bounds(driver_lap_times(laps, driver_id)) if config.exclude_outliers else None
        if config.exclude_outliers and bounds is None:
            logger.debug(f"Outlier filter inactive for {driver_id}: too few valid laps")

        values: List[Optional[float]] = []
        for lap in filtered:
            timing = lap.timing_for(driver_id)
            lap_time = parse_race_time(timing.time) if timing is not None else math.nan
            values.append(lap_time if _passes(lap_time, config, bounds) else None)
        series[driver_id] = tuple(values)

    return LapTimeSeries(labels=labels, series=series)

"""Cumulative race time reconstruction."""

from typing import Dict, List, Optional, Sequence

from loguru import logger

from ..data_processing.time_codec import is_valid_lap_time, parse_race_time
from ..schemas import DriverSeries, LapRecord, TimelinePoint


def _feed_driver_ids(laps: Sequence[LapRecord]) -> List[str]:
    seen: Dict[str, None] = {}
    for lap in laps:
        for timing in lap.timings:
            seen.setdefault(timing.driver_id, None)
    return list(seen)


def build_driver_series(laps: Sequence[LapRecord], driver_id: str) -> DriverSeries:
    """Accumulate one driver's lap times into elapsed race time.

    Laps with a missing or invalid time are skipped without resetting the
    running total, so a skipped lap leaves a small, accepted discontinuity.

    Args:
        laps: Lap records in any order
        driver_id: Driver to accumulate

    Returns:
        Cumulative series in lap order
    """
    total_time = 0.0
    points = []
    for lap in sorted(laps, key=lambda lap: lap.number):
        timing = lap.timing_for(driver_id)
        if timing is None:
            continue

        lap_time = parse_race_time(timing.time)
        if not is_valid_lap_time(lap_time):
            logger.debug(f"Skipping lap {lap.number} for {driver_id}: invalid time {timing.time!r}")
            continue

        total_time += lap_time
        points.append(TimelinePoint(lap=lap.number, cumulative_time=total_time, position=timing.position))

    return DriverSeries(driver_id=driver_id, points=tuple(points))


def build_race_timeline(
    laps: Sequence[LapRecord],
    driver_ids: Optional[Sequence[str]] = None,
) -> Dict[str, DriverSeries]:
    """Build cumulative race time series for every driver.

    Args:
        laps: Lap records for the race
        driver_ids: Drivers to include (default: every driver in the feed)

    Returns:
        Mapping of driver id to cumulative series
    """
    if driver_ids is None:
        driver_ids = _feed_driver_ids(laps)

    logger.info(f"Building race timeline for {len(driver_ids)} drivers over {len(laps)} laps")
    return {driver_id: build_driver_series(laps, driver_id) for driver_id in driver_ids}

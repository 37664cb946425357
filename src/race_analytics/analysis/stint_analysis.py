"""Tyre stint segmentation and degradation curves.

No upstream feed carries tyre compound data, so compounds are assigned by
rotating through SOFT, MEDIUM and HARD. Every Stint is flagged
``compound_simulated`` so it is never mistaken for measured data.
"""

from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence

import numpy as np
from loguru import logger

from ..data_processing.time_codec import is_valid_lap_time, parse_race_time
from ..schemas import DegradationPoint, LapRecord, PitStopEvent, Stint

SIMULATED_COMPOUNDS = ("SOFT", "MEDIUM", "HARD")

MIN_STINT_LAPS_FOR_RATE = 3


@dataclass(frozen=True)
class StintDegradation:
    """Summary of lap times over one stint."""

    driver_id: str
    stint_number: int
    compound: str
    valid_laps: int
    best_lap_time: Optional[float]
    mean_lap_time: Optional[float]
    degradation_rate: float


def build_stints(
    driver_id: str,
    pit_stop_laps: Iterable[int],
    total_laps: int,
) -> List[Stint]:
    """Split laps 1..total_laps into pit-stop-bounded stints.

    A pit-stop lap is the last lap of the stint it ends.

    Args:
        driver_id: Driver the stints belong to
        pit_stop_laps: Laps on which the driver pitted
        total_laps: Race distance in laps

    Returns:
        Contiguous stints covering every lap exactly once
    """
    if total_laps < 1:
        return []

    stop_laps = set()
    for lap in pit_stop_laps:
        if 1 <= lap <= total_laps:
            stop_laps.add(lap)
        else:
            logger.warning(f"Ignoring pit stop on lap {lap} for {driver_id}: outside 1..{total_laps}")

    stints = []
    start_lap = 1
    for pit_lap in sorted(stop_laps):
        stints.append(_make_stint(driver_id, len(stints), start_lap, pit_lap))
        start_lap = pit_lap + 1

    # A stop on the final lap leaves no final stint
    if start_lap <= total_laps:
        stints.append(_make_stint(driver_id, len(stints), start_lap, total_laps))

    return stints


def _make_stint(driver_id: str, index: int, start_lap: int, end_lap: int) -> Stint:
    return Stint(
        driver_id=driver_id,
        compound=SIMULATED_COMPOUNDS[index % len(SIMULATED_COMPOUNDS)],
        start_lap=start_lap,
        end_lap=end_lap,
        stint_number=index + 1,
        compound_simulated=True,
    )


def build_driver_stints(
    pit_stops: Iterable[PitStopEvent],
    total_laps: int,
    driver_ids: Sequence[str],
) -> Dict[str, List[Stint]]:
    """Build stints for several drivers from the race's pit-stop events."""
    logger.info(f"Building stints for {len(driver_ids)} drivers over {total_laps} laps")

    stops_by_driver: Dict[str, List[int]] = {driver_id: [] for driver_id in driver_ids}
    for stop in pit_stops:
        if stop.driver_id in stops_by_driver:
            stops_by_driver[stop.driver_id].append(stop.lap)

    return {
        driver_id: build_stints(driver_id, laps, total_laps)
        for driver_id, laps in stops_by_driver.items()
    }


def build_degradation_curve(
    laps: Sequence[LapRecord],
    driver_id: str,
    stints: Sequence[Stint],
) -> List[DegradationPoint]:
    """Pair lap times with tyre age.

    ``lap_in_stint`` restarts at 1 on the first lap of every stint. Missing
    or invalid times (<= 0s or >= 200s) produce no point.

    Args:
        laps: Lap records for the race
        driver_id: Driver to analyze
        stints: That driver's stints

    Returns:
        Degradation points in lap order
    """
    points = []
    for lap in sorted(laps, key=lambda lap: lap.number):
        stint = next((s for s in stints if s.contains(lap.number)), None)
        if stint is None:
            continue

        timing = lap.timing_for(driver_id)
        if timing is None:
            continue
        lap_time = parse_race_time(timing.time)
        if not is_valid_lap_time(lap_time):
            continue

        points.append(
            DegradationPoint(
                driver_id=driver_id,
                stint_number=stint.stint_number,
                compound=stint.compound,
                lap=lap.number,
                lap_in_stint=lap.number - stint.start_lap + 1,
                lap_time=lap_time,
            )
        )

    return points


def calculate_degradation_rate(points: Sequence[DegradationPoint]) -> float:
    """Least-squares slope of lap time against tyre age, in seconds per lap.

    Returns 0.0 for stints with fewer than three valid laps.
    """
    if len(points) < MIN_STINT_LAPS_FOR_RATE:
        return 0.0

    tire_ages = np.array([p.lap_in_stint for p in points], dtype=float)
    lap_times = np.array([p.lap_time for p in points], dtype=float)
    if np.ptp(tire_ages) == 0:
        return 0.0

    coeffs = np.polyfit(tire_ages, lap_times, 1)
    return float(coeffs[0])


def summarize_stints(
    stints: Sequence[Stint],
    points: Sequence[DegradationPoint],
) -> List[StintDegradation]:
    """Per-stint lap counts, pace and degradation rate."""
    summaries = []
    for stint in stints:
        stint_points = [p for p in points if p.stint_number == stint.stint_number]
        times = [p.lap_time for p in stint_points]
        summaries.append(
            StintDegradation(
                driver_id=stint.driver_id,
                stint_number=stint.stint_number,
                compound=stint.compound,
                valid_laps=len(stint_points),
                best_lap_time=min(times) if times else None,
                mean_lap_time=float(np.mean(times)) if times else None,
                degradation_rate=calculate_degradation_rate(stint_points),
            )
        )
    return summaries

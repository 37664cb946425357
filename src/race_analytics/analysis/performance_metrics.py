"""Quick race statistics."""

from dataclasses import dataclass
from typing import Optional, Sequence

from loguru import logger

from ..data_processing.time_codec import is_valid_lap_time, parse_race_time
from ..schemas import LapRecord, PitStopEvent


@dataclass(frozen=True)
class FastestLap:
    lap_time: float
    driver_id: str
    lap_number: int


@dataclass(frozen=True)
class SelectionStats:
    lap_count: int
    average_lap_time: float
    best_lap_time: float
    spread_ms: float


@dataclass(frozen=True)
class RaceSummary:
    total_laps: int
    driver_count: int
    pit_stop_count: int
    fastest_lap: Optional[FastestLap]
    average_pit_stop: Optional[float]
    selection: Optional[SelectionStats]


def compute_race_summary(
    laps: Sequence[LapRecord],
    pit_stops: Sequence[PitStopEvent],
    selected_drivers: Sequence[str] = (),
) -> RaceSummary:
    """Compute headline statistics for a race.

    Args:
        laps: Lap records
        pit_stops: Pit-stop events
        selected_drivers: Drivers for the selection statistics

    Returns:
        Race summary; fields with no data are None
    """
    logger.info("Computing race summary")

    fastest: Optional[FastestLap] = None
    drivers = set()
    selected = set(selected_drivers)
    selected_times = []

    for lap in sorted(laps, key=lambda lap: lap.number):
        for timing in lap.timings:
            drivers.add(timing.driver_id)
            lap_time = parse_race_time(timing.time)
            if not is_valid_lap_time(lap_time):
                continue
            if fastest is None or lap_time < fastest.lap_time:
                fastest = FastestLap(lap_time=lap_time, driver_id=timing.driver_id, lap_number=lap.number)
            if timing.driver_id in selected:
                selected_times.append(lap_time)

    durations = [stop.duration for stop in pit_stops if stop.duration is not None]

    selection = None
    if selected_times:
        selection = SelectionStats(
            lap_count=len(selected_times),
            average_lap_time=sum(selected_times) / len(selected_times),
            best_lap_time=min(selected_times),
            spread_ms=(max(selected_times) - min(selected_times)) * 1000,
        )

    return RaceSummary(
        total_laps=max((lap.number for lap in laps), default=0),
        driver_count=len(drivers),
        pit_stop_count=len(pit_stops),
        fastest_lap=fastest,
        average_pit_stop=sum(durations) / len(durations) if durations else None,
        selection=selection,
    )

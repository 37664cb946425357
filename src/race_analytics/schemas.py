"""Record types shared across the race analytics package.

Every record is a frozen dataclass built once at the ingestion boundary
(see ``data_processing.loaders``) and never mutated afterwards, so derived
series can be recomputed from the same batch any number of times.
"""

from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple


@dataclass(frozen=True)
class Timing:
    """One driver's entry on one lap, as reported by the timing feed."""

    driver_id: str
    time: str
    position: Optional[int] = None


@dataclass(frozen=True)
class LapRecord:
    """All timing entries for a single lap number, in feed order."""

    number: int
    timings: Tuple[Timing, ...] = ()

    def timing_for(self, driver_id: str) -> Optional[Timing]:
        """Return the first timing entry for ``driver_id`` on this lap."""
        for timing in self.timings:
            if timing.driver_id == driver_id:
                return timing
        return None


@dataclass(frozen=True)
class PitStopEvent:
    driver_id: str
    lap: int
    duration: Optional[float] = None


@dataclass(frozen=True)
class TimelinePoint:
    lap: int
    cumulative_time: float
    position: Optional[int] = None


@dataclass(frozen=True)
class DriverSeries:
    """Cumulative elapsed race time for one driver."""

    driver_id: str
    points: Tuple[TimelinePoint, ...] = ()

    def at_lap(self, lap: int) -> Optional[TimelinePoint]:
        for point in self.points:
            if point.lap == lap:
                return point
        return None


@dataclass(frozen=True)
class GapPoint:
    lap: int
    gap: float
    position: Optional[int] = None


@dataclass(frozen=True)
class IntervalPoint:
    lap: int
    interval: float
    position: Optional[int] = None


@dataclass(frozen=True)
class Stint:
    """A run of laps on one tyre set.

    The compound is not part of any upstream feed; it is assigned by
    rotation and ``compound_simulated`` is always True.
    """

    driver_id: str
    compound: str
    start_lap: int
    end_lap: int
    stint_number: int = 1
    compound_simulated: bool = True

    @property
    def lap_count(self) -> int:
        return self.end_lap - self.start_lap + 1

    def contains(self, lap: int) -> bool:
        return self.start_lap <= lap <= self.end_lap


@dataclass(frozen=True)
class DegradationPoint:
    driver_id: str
    stint_number: int
    compound: str
    lap: int
    lap_in_stint: int
    lap_time: float


@dataclass(frozen=True)
class SectorLap:
    """Raw sector timing row from the sector feed."""

    driver_number: int
    lap_number: int
    sector1: Optional[float] = None
    sector2: Optional[float] = None
    sector3: Optional[float] = None
    is_pit_out_lap: bool = False


@dataclass(frozen=True)
class SectorDriver:
    """Driver entry from the sector feed's driver list."""

    driver_number: int
    full_name: str = ""
    name_acronym: str = ""


@dataclass(frozen=True)
class SectorSample:
    driver_id: str
    lap_number: int
    sector1: float
    sector2: float
    sector3: float
    is_personal_best: Tuple[bool, bool, bool] = (False, False, False)
    is_overall_best: Tuple[bool, bool, bool] = (False, False, False)

    @property
    def sectors(self) -> Tuple[float, float, float]:
        return (self.sector1, self.sector2, self.sector3)


@dataclass(frozen=True)
class CircuitProfile:
    length: float
    corner_count: int
    top_speed: float


@dataclass(frozen=True)
class TelemetryPoint:
    distance: float
    speed: float
    throttle: float
    brake: float
    gear: int


@dataclass(frozen=True)
class RaceBatch:
    """Immutable snapshot of everything fetched for one race."""

    laps: Tuple[LapRecord, ...] = ()
    pit_stops: Tuple[PitStopEvent, ...] = ()
    race_name: str = ""
    sector_drivers: Tuple[SectorDriver, ...] = ()
    sector_laps: Tuple[SectorLap, ...] = ()

    @property
    def driver_ids(self) -> Tuple[str, ...]:
        """Driver ids in first-seen order across the lap batch."""
        seen: Dict[str, None] = {}
        for lap in self.laps:
            for timing in lap.timings:
                seen.setdefault(timing.driver_id, None)
        return tuple(seen)

    @property
    def total_laps(self) -> int:
        return max((lap.number for lap in self.laps), default=0)


@dataclass(frozen=True)
class NoData:
    """Returned in place of an analysis when there is nothing to analyze."""

    reason: str = "No data available"
    details: Dict[str, str] = field(default_factory=dict)

"""Sector best-time tracking."""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

from loguru import logger

from ..schemas import SectorDriver, SectorLap, SectorSample

# Two sector times within this many seconds are considered equal
BEST_TIME_TOLERANCE = 1e-3

# Timing-feed driver ids whose sector-feed names differ from the id itself
DRIVER_ALIASES: Dict[str, Tuple[str, ...]] = {
    "max_verstappen": ("VER", "VERSTAPPEN"),
    "norris": ("NOR", "NORRIS"),
    "leclerc": ("LEC", "LECLERC"),
    "hamilton": ("HAM", "HAMILTON"),
    "russell": ("RUS", "RUSSELL"),
    "piastri": ("PIA", "PIASTRI"),
    "sainz": ("SAI", "SAINZ"),
    "alonso": ("ALO", "ALONSO"),
    "stroll": ("STR", "STROLL"),
    "perez": ("PER", "PEREZ"),
}


@dataclass(frozen=True)
class SectorBest:
    time: float
    driver_id: str


@dataclass(frozen=True)
class SectorBestTable:
    samples: Dict[str, Tuple[SectorSample, ...]] = field(default_factory=dict)
    personal_bests: Dict[str, Tuple[float, float, float]] = field(default_factory=dict)
    overall_bests: Tuple[Optional[SectorBest], ...] = (None, None, None)
    theoretical_bests: Dict[str, float] = field(default_factory=dict)
    unresolved_drivers: Tuple[str, ...] = ()

    @property
    def has_data(self) -> bool:
        return any(self.samples.values())


def map_driver_to_number(driver_id: str, sector_drivers: Sequence[SectorDriver]) -> Optional[int]:
    """Resolve a timing-feed driver id to the sector feed's driver number.

    Acronyms are matched across the whole list before any full name, and a
    full name only matches on a whole word, so "STR" never resolves to
    "PIASTRI".

    Args:
        driver_id: Driver id from the timing feed (e.g. ``"max_verstappen"``)
        sector_drivers: Driver list from the sector feed

    Returns:
        The driver number, or None when no driver matches
    """
    search_terms = DRIVER_ALIASES.get(driver_id, (driver_id.upper(),))
    for term in search_terms:
        for driver in sector_drivers:
            if driver.name_acronym.upper() == term:
                return driver.driver_number
    for term in search_terms:
        for driver in sector_drivers:
            if term in driver.full_name.upper().split():
                return driver.driver_number
    return None


def _is_complete(lap: SectorLap) -> bool:
    sectors = (lap.sector1, lap.sector2, lap.sector3)
    return not lap.is_pit_out_lap and all(s is not None and s > 0 for s in sectors)


def _flags(values: Sequence[float], bests: Sequence[Optional[float]]) -> Tuple[bool, bool, bool]:
    return tuple(
        best is not None and abs(value - best) < BEST_TIME_TOLERANCE
        for value, best in zip(values, bests)
    )


def track_sector_bests(laps_by_driver: Dict[str, Sequence[SectorLap]]) -> SectorBestTable:
    """Compute personal and overall sector bests.

    Only laps with all three sectors present and that are not pit-out laps
    count.

    Args:
        laps_by_driver: Sector laps keyed by driver id, in display order

    Returns:
        Flagged samples, best times and theoretical-best laps
    """
    logger.info(f"Tracking sector bests for {len(laps_by_driver)} drivers")

    included: Dict[str, List[SectorLap]] = {
        driver_id: [lap for lap in laps if _is_complete(lap)]
        for driver_id, laps in laps_by_driver.items()
    }

    personal_bests: Dict[str, Tuple[float, float, float]] = {}
    for driver_id, laps in included.items():
        if laps:
            personal_bests[driver_id] = (
                min(lap.sector1 for lap in laps),
                min(lap.sector2 for lap in laps),
                min(lap.sector3 for lap in laps),
            )

    overall: List[Optional[SectorBest]] = [None, None, None]
    for driver_id, bests in personal_bests.items():
        for i, best in enumerate(bests):
            # Strict comparison keeps the first driver on ties
            if overall[i] is None or best < overall[i].time:
                overall[i] = SectorBest(time=best, driver_id=driver_id)
    overall_times = [best.time if best is not None else None for best in overall]

    samples: Dict[str, Tuple[SectorSample, ...]] = {}
    for driver_id, laps in included.items():
        driver_samples = []
        for lap in laps:
            values = (lap.sector1, lap.sector2, lap.sector3)
            driver_samples.append(
                SectorSample(
                    driver_id=driver_id,
                    lap_number=lap.lap_number,
                    sector1=lap.sector1,
                    sector2=lap.sector2,
                    sector3=lap.sector3,
                    is_personal_best=_flags(values, personal_bests[driver_id]),
                    is_overall_best=_flags(values, overall_times),
                )
            )
        samples[driver_id] = tuple(driver_samples)

    return SectorBestTable(
        samples=samples,
        personal_bests=personal_bests,
        overall_bests=tuple(overall),
        theoretical_bests={driver_id: sum(bests) for driver_id, bests in personal_bests.items()},
    )


def build_sector_table(
    driver_ids: Sequence[str],
    sector_drivers: Sequence[SectorDriver],
    sector_laps: Sequence[SectorLap],
) -> SectorBestTable:
    """Map timing-feed drivers onto the sector feed and track their bests.

    Drivers that cannot be matched are listed in ``unresolved_drivers`` and
    simply have no data.
    """
    if not sector_drivers:
        logger.info("No sector data source available")
        return SectorBestTable(unresolved_drivers=tuple(driver_ids))

    laps_by_number: Dict[int, List[SectorLap]] = {}
    for lap in sector_laps:
        laps_by_number.setdefault(lap.driver_number, []).append(lap)

    laps_by_driver: Dict[str, Sequence[SectorLap]] = {}
    unresolved = []
    for driver_id in driver_ids:
        number = map_driver_to_number(driver_id, sector_drivers)
        if number is None:
            logger.warning(f"No sector data source match for driver {driver_id}")
            unresolved.append(driver_id)
            continue
        laps_by_driver[driver_id] = sorted(laps_by_number.get(number, []), key=lambda lap: lap.lap_number)

    table = track_sector_bests(laps_by_driver)
    return SectorBestTable(
        samples=table.samples,
        personal_bests=table.personal_bests,
        overall_bests=table.overall_bests,
        theoretical_bests=table.theoretical_bests,
        unresolved_drivers=tuple(unresolved),
    )

"""One-call race analysis over a fetched batch."""

from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple, Union

from loguru import logger

from ..data_processing.preprocessors import FilterConfig, LapTimeSeries, apply_lap_filters, lap_time_series
from ..schemas import DegradationPoint, LapRecord, NoData, RaceBatch, Stint
from .gap_analysis import GapAnalysis, calculate_gaps
from .performance_metrics import RaceSummary, compute_race_summary
from .sector_analysis import SectorBestTable, build_sector_table
from .stint_analysis import (
    StintDegradation,
    build_degradation_curve,
    build_driver_stints,
    summarize_stints,
)


@dataclass(frozen=True)
class RaceAnalysis:
    """Everything the dashboard views need for one race and filter setting."""

    race_name: str
    driver_ids: Tuple[str, ...]
    filters: FilterConfig
    filtered_laps: Tuple[LapRecord, ...]
    lap_times: LapTimeSeries
    gaps: GapAnalysis
    stints: Dict[str, Tuple[Stint, ...]]
    degradation: Dict[str, Tuple[DegradationPoint, ...]]
    stint_summaries: Dict[str, Tuple[StintDegradation, ...]]
    sectors: SectorBestTable
    summary: RaceSummary


def analyze_race(
    batch: Optional[RaceBatch],
    config: Optional[FilterConfig] = None,
    driver_ids: Optional[Sequence[str]] = None,
) -> Union[RaceAnalysis, NoData]:
    """Run every analysis over a race batch.

    Filters only shape the lap time views. Cumulative times, gaps and stints
    always use the full lap set, since a running total over a filtered set
    would be wrong.

    Args:
        batch: Validated race batch
        config: Filter options (default: no filters)
        driver_ids: Drivers to analyze (default: every driver in the feed)

    Returns:
        RaceAnalysis, or NoData when the batch is missing or has no laps
    """
    if batch is None:
        return NoData(reason="No race data loaded")
    if not batch.laps:
        return NoData(reason="No lap data available", details={"race": batch.race_name})

    config = config or FilterConfig()
    drivers = tuple(driver_ids) if driver_ids is not None else batch.driver_ids
    logger.info(f"Analyzing race '{batch.race_name}' for {len(drivers)} drivers")

    stints = build_driver_stints(batch.pit_stops, batch.total_laps, drivers)

    degradation: Dict[str, Tuple[DegradationPoint, ...]] = {}
    summaries: Dict[str, Tuple[StintDegradation, ...]] = {}
    for driver_id, driver_stints in stints.items():
        points: List[DegradationPoint] = build_degradation_curve(batch.laps, driver_id, driver_stints)
        degradation[driver_id] = tuple(points)
        summaries[driver_id] = tuple(summarize_stints(driver_stints, points))

    return RaceAnalysis(
        race_name=batch.race_name,
        driver_ids=drivers,
        filters=config,
        filtered_laps=tuple(apply_lap_filters(batch.laps, batch.pit_stops, config)),
        lap_times=lap_time_series(batch.laps, batch.pit_stops, config, drivers),
        gaps=calculate_gaps(batch.laps, drivers),
        stints={driver_id: tuple(s) for driver_id, s in stints.items()},
        degradation=degradation,
        stint_summaries=summaries,
        sectors=build_sector_table(drivers, batch.sector_drivers, batch.sector_laps),
        summary=compute_race_summary(batch.laps, batch.pit_stops, drivers),
    )

"""DataFrame views of derived race series for the rendering layer."""

from typing import Dict, Mapping, Sequence

import pandas as pd
from loguru import logger

from ..schemas import DegradationPoint, DriverSeries, GapPoint, IntervalPoint, Stint, TelemetryPoint
from .preprocessors import LapTimeSeries


def lap_times_to_frame(lap_times: LapTimeSeries) -> pd.DataFrame:
    """Wide lap time table: one row per lap label, one column per driver.

    Filtered-out values are NaN.
    """
    df = pd.DataFrame(
        {driver_id: list(values) for driver_id, values in lap_times.series.items()},
        index=pd.Index(lap_times.labels, name="lap"),
        dtype=float,
    )
    return df


def timeline_to_frame(timeline: Mapping[str, DriverSeries]) -> pd.DataFrame:
    """Long-format cumulative time table."""
    rows = [
        {
            "driver_id": driver_id,
            "lap": point.lap,
            "cumulative_time": point.cumulative_time,
            "position": point.position,
        }
        for driver_id, series in timeline.items()
        for point in series.points
    ]
    return pd.DataFrame(rows, columns=["driver_id", "lap", "cumulative_time", "position"])


def gaps_to_frame(
    gaps_to_leader: Mapping[str, Sequence[GapPoint]],
    intervals: Mapping[str, Sequence[IntervalPoint]],
) -> pd.DataFrame:
    """Merge gap-to-leader and interval series into one long table.

    A lap with a gap but no interval (or the reverse) keeps NaN in the
    missing column.
    """
    logger.info("Building gap table")

    gap_rows = [
        {"driver_id": driver_id, "lap": p.lap, "gap": p.gap, "position": p.position}
        for driver_id, points in gaps_to_leader.items()
        for p in points
    ]
    interval_rows = [
        {"driver_id": driver_id, "lap": p.lap, "interval": p.interval}
        for driver_id, points in intervals.items()
        for p in points
    ]

    gap_df = pd.DataFrame(gap_rows, columns=["driver_id", "lap", "gap", "position"])
    interval_df = pd.DataFrame(interval_rows, columns=["driver_id", "lap", "interval"])

    df = gap_df.merge(interval_df, on=["driver_id", "lap"], how="outer")
    return df.sort_values(["driver_id", "lap"]).reset_index(drop=True)


def stints_to_frame(stints: Mapping[str, Sequence[Stint]]) -> pd.DataFrame:
    rows = [
        {
            "driver_id": stint.driver_id,
            "stint_number": stint.stint_number,
            "compound": stint.compound,
            "compound_simulated": stint.compound_simulated,
            "start_lap": stint.start_lap,
            "end_lap": stint.end_lap,
            "laps": stint.lap_count,
        }
        for driver_stints in stints.values()
        for stint in driver_stints
    ]
    return pd.DataFrame(
        rows,
        columns=["driver_id", "stint_number", "compound", "compound_simulated", "start_lap", "end_lap", "laps"],
    )


def degradation_to_frame(degradation: Mapping[str, Sequence[DegradationPoint]]) -> pd.DataFrame:
    rows = [
        {
            "driver_id": p.driver_id,
            "stint_number": p.stint_number,
            "compound": p.compound,
            "lap": p.lap,
            "lap_in_stint": p.lap_in_stint,
            "lap_time": p.lap_time,
        }
        for points in degradation.values()
        for p in points
    ]
    return pd.DataFrame(
        rows,
        columns=["driver_id", "stint_number", "compound", "lap", "lap_in_stint", "lap_time"],
    )


def telemetry_to_frame(traces: Dict[str, Sequence[TelemetryPoint]]) -> pd.DataFrame:
    """Telemetry traces keyed by driver, one row per sample."""
    rows = [
        {
            "driver_id": driver_id,
            "distance": p.distance,
            "speed": p.speed,
            "throttle": p.throttle,
            "brake": p.brake,
            "gear": p.gear,
        }
        for driver_id, points in traces.items()
        for p in points
    ]
    return pd.DataFrame(rows, columns=["driver_id", "distance", "speed", "throttle", "brake", "gear"])

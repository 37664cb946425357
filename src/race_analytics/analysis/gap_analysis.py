"""Gap-to-leader and interval analysis built on the race timeline."""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

from loguru import logger

from ..schemas import DriverSeries, GapPoint, IntervalPoint, LapRecord, Timing
from .race_timeline import build_race_timeline

# Gaps smaller than this count as leading the race
LEADING_GAP_THRESHOLD = 0.1


@dataclass(frozen=True)
class DriverGapStats:
    best_position: Optional[int]
    worst_position: Optional[int]
    average_gap: float
    biggest_gain: float
    biggest_loss: float
    times_led: int


@dataclass(frozen=True)
class GapAnalysis:
    """Per-driver gap, interval and cumulative series for one race."""

    gaps_to_leader: Dict[str, Tuple[GapPoint, ...]] = field(default_factory=dict)
    intervals: Dict[str, Tuple[IntervalPoint, ...]] = field(default_factory=dict)
    cumulative_times: Dict[str, DriverSeries] = field(default_factory=dict)
    stats: Dict[str, DriverGapStats] = field(default_factory=dict)
    leaders: Dict[int, str] = field(default_factory=dict)


def _cumulative_lookup(timeline: Dict[str, DriverSeries]) -> Dict[str, Dict[int, float]]:
    return {
        driver_id: {point.lap: point.cumulative_time for point in series.points}
        for driver_id, series in timeline.items()
    }


def find_lap_leader(
    lap: LapRecord,
    cumulative: Dict[str, Dict[int, float]],
) -> Optional[str]:
    """Return the driver reported in position 1 on a lap.

    If a feed reports several drivers in position 1, the first one in feed
    order that has a cumulative time for the lap wins. Returns None when no
    such driver exists.
    """
    leaders = [t for t in lap.timings if t.position == 1]
    if len(leaders) > 1:
        logger.warning(f"Lap {lap.number} reports {len(leaders)} drivers in position 1")

    for timing in leaders:
        if lap.number in cumulative.get(timing.driver_id, {}):
            return timing.driver_id
    return None


def _running_order(timings: Sequence[Timing]) -> List[Timing]:
    # Unparseable positions sort last; sorted() is stable for ties
    return sorted(timings, key=lambda t: (t.position is None, t.position or 0))


def calculate_gap_stats(gaps: Sequence[GapPoint]) -> DriverGapStats:
    """Summarize one driver's gap-to-leader series.

    Args:
        gaps: Gap points in lap order

    Returns:
        Position range, mean gap when not leading, largest single-lap gain
        and loss, and the number of laps led
    """
    positions = [g.position for g in gaps if g.position is not None and g.position > 0]
    trailing = [g.gap for g in gaps if g.gap > LEADING_GAP_THRESHOLD]

    biggest_gain = 0.0
    biggest_loss = 0.0
    for previous, current in zip(gaps, gaps[1:]):
        change = previous.gap - current.gap
        biggest_gain = max(biggest_gain, change)
        biggest_loss = min(biggest_loss, change)

    return DriverGapStats(
        best_position=min(positions) if positions else None,
        worst_position=max(positions) if positions else None,
        average_gap=sum(trailing) / len(trailing) if trailing else 0.0,
        biggest_gain=biggest_gain,
        biggest_loss=abs(biggest_loss),
        times_led=sum(1 for g in gaps if abs(g.gap) < LEADING_GAP_THRESHOLD),
    )


def calculate_gaps(
    laps: Sequence[LapRecord],
    driver_ids: Optional[Sequence[str]] = None,
) -> GapAnalysis:
    """Derive gap-to-leader and interval series.

    The timeline is always built for the whole field so that the leader and
    the car ahead resolve even when they are not among ``driver_ids``.

    Args:
        laps: Lap records for the race
        driver_ids: Drivers to report (default: every driver in the feed)

    Returns:
        GapAnalysis with series and statistics for the requested drivers
    """
    logger.info("Calculating gaps to leader and intervals")

    if not laps:
        return GapAnalysis()

    timeline = build_race_timeline(laps)
    cumulative = _cumulative_lookup(timeline)
    if driver_ids is None:
        driver_ids = list(timeline)
    selected = set(driver_ids)

    gaps: Dict[str, List[GapPoint]] = {driver_id: [] for driver_id in driver_ids}
    intervals: Dict[str, List[IntervalPoint]] = {driver_id: [] for driver_id in driver_ids}
    leaders: Dict[int, str] = {}

    for lap in sorted(laps, key=lambda lap: lap.number):
        leader_id = find_lap_leader(lap, cumulative)
        if leader_id is None:
            logger.debug(f"No leader with a valid time on lap {lap.number}, skipping gaps")
        else:
            leaders[lap.number] = leader_id
            leader_time = cumulative[leader_id][lap.number]
            for driver_id in driver_ids:
                point = timeline[driver_id].at_lap(lap.number) if driver_id in timeline else None
                if point is not None:
                    gaps[driver_id].append(
                        GapPoint(lap=lap.number, gap=point.cumulative_time - leader_time, position=point.position)
                    )

        order = _running_order(lap.timings)
        for rank, timing in enumerate(order):
            if timing.driver_id not in selected:
                continue
            if rank == 0:
                intervals[timing.driver_id].append(
                    IntervalPoint(lap=lap.number, interval=0.0, position=timing.position)
                )
                continue

            own_time = cumulative.get(timing.driver_id, {}).get(lap.number)
            ahead_time = cumulative.get(order[rank - 1].driver_id, {}).get(lap.number)
            if own_time is None or ahead_time is None:
                continue
            intervals[timing.driver_id].append(
                IntervalPoint(lap=lap.number, interval=own_time - ahead_time, position=timing.position)
            )

    return GapAnalysis(
        gaps_to_leader={d: tuple(points) for d, points in gaps.items()},
        intervals={d: tuple(points) for d, points in intervals.items()},
        cumulative_times={d: timeline[d] for d in driver_ids if d in timeline},
        stats={d: calculate_gap_stats(points) for d, points in gaps.items() if points},
        leaders=leaders,
    )

"""Unit tests for the race timeline and gap calculations."""

import pytest

from race_analytics.analysis.gap_analysis import calculate_gap_stats, calculate_gaps, find_lap_leader
from race_analytics.analysis.race_timeline import build_driver_series, build_race_timeline
from race_analytics.schemas import GapPoint, LapRecord, Timing


def _gaps(analysis, driver_id):
    return [(p.lap, p.gap) for p in analysis.gaps_to_leader[driver_id]]


def _intervals(analysis, driver_id):
    return [(p.lap, p.interval) for p in analysis.intervals[driver_id]]


class TestRaceTimeline:
    """Test suite for cumulative race time."""

    def test_cumulative_times(self, race_laps):
        timeline = build_race_timeline(race_laps)

        assert list(timeline) == ["max_verstappen", "hamilton", "norris"]
        assert [p.cumulative_time for p in timeline["max_verstappen"].points] == [90, 179, 268, 357, 467, 555]
        assert [p.cumulative_time for p in timeline["hamilton"].points] == [91, 180.5, 269, 357, 446, 533.5]
        assert [p.position for p in timeline["hamilton"].points] == [2, 2, 2, 2, 1, 1]

    def test_invalid_laps_skipped_without_reset(self):
        """Test that a bad lap emits no point and does not reset the total."""
        laps = [
            LapRecord(1, (Timing("a", "90.0", 1),)),
            LapRecord(2, (Timing("a", "", 1),)),
            LapRecord(3, (Timing("a", "250.0", 1),)),
            LapRecord(4, (Timing("a", "0", 1),)),
            LapRecord(5, (Timing("a", "1:31.0", 1),)),
        ]

        series = build_driver_series(laps, "a")
        assert [(p.lap, p.cumulative_time) for p in series.points] == [(1, 90.0), (5, 181.0)]

    def test_laps_scanned_in_lap_order(self):
        laps = [LapRecord(2, (Timing("a", "91", 1),)), LapRecord(1, (Timing("a", "90", 1),))]
        series = build_driver_series(laps, "a")
        assert [(p.lap, p.cumulative_time) for p in series.points] == [(1, 90.0), (2, 181.0)]

    def test_cumulative_non_decreasing(self, race_laps):
        for series in build_race_timeline(race_laps).values():
            times = [p.cumulative_time for p in series.points]
            assert times == sorted(times)

    def test_missing_driver(self, race_laps):
        assert build_race_timeline(race_laps, ["nobody"])["nobody"].points == ()


class TestGapsToLeader:
    """Test suite for gap-to-leader series."""

    def test_gaps(self, race_laps):
        analysis = calculate_gaps(race_laps)

        assert _gaps(analysis, "max_verstappen") == [(1, 0), (2, 0), (3, 0), (4, 0), (5, 21), (6, 21.5)]
        assert _gaps(analysis, "hamilton") == [(1, 1), (2, 1.5), (3, 1), (4, 0), (5, 0), (6, 0)]
        assert _gaps(analysis, "norris") == [(1, 2), (2, 3), (3, 3.5), (4, 3.5), (5, 3.5), (6, 5)]

    def test_leader_gap_is_zero(self, race_laps):
        """Test that whoever is declared leader has zero gap on that lap."""
        analysis = calculate_gaps(race_laps)

        for lap_number, leader_id in analysis.leaders.items():
            point = next(p for p in analysis.gaps_to_leader[leader_id] if p.lap == lap_number)
            assert point.gap == 0

    def test_leader_is_read_from_positions(self, race_laps):
        analysis = calculate_gaps(race_laps)
        assert analysis.leaders == {
            1: "max_verstappen", 2: "max_verstappen", 3: "max_verstappen",
            4: "max_verstappen", 5: "hamilton", 6: "hamilton",
        }

    def test_leader_resolved_outside_selection(self, race_laps):
        """Test that gaps work when the leader is not a selected driver."""
        analysis = calculate_gaps(race_laps, ["norris"])

        assert list(analysis.gaps_to_leader) == ["norris"]
        assert _gaps(analysis, "norris")[0] == (1, 2)

    def test_multiple_leaders_first_valid_wins(self):
        """Test the tie-break when a feed reports two drivers in position 1."""
        lap = LapRecord(1, (Timing("a", "", 1), Timing("b", "91", 1), Timing("c", "90", 1)))
        cumulative = {"a": {}, "b": {1: 91.0}, "c": {1: 90.0}}

        assert find_lap_leader(lap, cumulative) == "b"

    def test_no_leader_emits_no_gaps(self):
        laps = [LapRecord(1, (Timing("a", "90", 2), Timing("b", "91", 3)))]
        analysis = calculate_gaps(laps)

        assert analysis.gaps_to_leader == {"a": (), "b": ()}
        assert analysis.leaders == {}

    def test_empty_input(self):
        analysis = calculate_gaps([])
        assert analysis.gaps_to_leader == {}
        assert analysis.stats == {}


class TestIntervals:
    """Test suite for interval-to-car-ahead series."""

    def test_intervals(self, race_laps):
        analysis = calculate_gaps(race_laps)

        assert _intervals(analysis, "max_verstappen") == [(1, 0), (2, 0), (3, 0), (4, 0), (5, 17.5), (6, 16.5)]
        assert _intervals(analysis, "hamilton") == [(1, 1), (2, 1.5), (3, 1), (4, 0), (5, 0), (6, 0)]
        assert _intervals(analysis, "norris") == [(1, 1), (2, 1.5), (3, 2.5), (4, 3.5), (5, 3.5), (6, 5)]

    def test_missing_cumulative_skips_point(self):
        """Test that no interval is emitted when the car ahead has no time."""
        laps = [
            LapRecord(1, (Timing("a", "90", 1), Timing("b", "bad", 2), Timing("c", "92", 3))),
        ]
        analysis = calculate_gaps(laps)

        assert _intervals(analysis, "a") == [(1, 0)]
        assert _intervals(analysis, "b") == []
        assert _intervals(analysis, "c") == []

    def test_running_order_uses_positions(self):
        """Test that entries are ordered by position, not feed order."""
        laps = [LapRecord(1, (Timing("c", "93", 3), Timing("a", "90", 1), Timing("b", "91.5", 2)))]
        analysis = calculate_gaps(laps)

        assert _intervals(analysis, "b") == [(1, 1.5)]
        assert _intervals(analysis, "c") == [(1, 1.5)]


class TestGapStats:
    """Test suite for per-driver gap statistics."""

    def test_stats_for_chaser(self, race_laps):
        stats = calculate_gaps(race_laps).stats["hamilton"]

        assert stats.best_position == 1
        assert stats.worst_position == 2
        assert stats.average_gap == pytest.approx(3.5 / 3)
        assert stats.biggest_gain == pytest.approx(1.0)
        assert stats.biggest_loss == pytest.approx(0.5)
        assert stats.times_led == 3

    def test_stats_for_leader_who_pitted(self, race_laps):
        stats = calculate_gaps(race_laps).stats["max_verstappen"]

        assert (stats.best_position, stats.worst_position) == (1, 3)
        assert stats.average_gap == pytest.approx(21.25)
        assert stats.biggest_gain == 0
        assert stats.biggest_loss == pytest.approx(21)
        assert stats.times_led == 4

    def test_small_gaps_count_as_leading(self):
        gaps = [GapPoint(1, 0.05, 2), GapPoint(2, -0.05, 1), GapPoint(3, 0.2, 2)]
        stats = calculate_gap_stats(gaps)

        assert stats.times_led == 2
        assert stats.average_gap == pytest.approx(0.2)

    def test_no_positions(self):
        stats = calculate_gap_stats([GapPoint(1, 1.0, None)])
        assert stats.best_position is None
        assert stats.worst_position is None

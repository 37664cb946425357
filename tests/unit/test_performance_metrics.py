"""Unit tests for quick race statistics."""

import pytest

from race_analytics.analysis.performance_metrics import compute_race_summary
from race_analytics.schemas import LapRecord, PitStopEvent, Timing


class TestRaceSummary:
    """Test suite for compute_race_summary."""

    def test_headline_stats(self, race_laps, pit_stops):
        summary = compute_race_summary(race_laps, pit_stops)

        assert summary.total_laps == 6
        assert summary.driver_count == 3
        assert summary.pit_stop_count == 2
        assert summary.average_pit_stop == pytest.approx(23.0)
        assert summary.selection is None

    def test_fastest_lap(self, race_laps, pit_stops):
        fastest = compute_race_summary(race_laps, pit_stops).fastest_lap

        assert (fastest.driver_id, fastest.lap_number, fastest.lap_time) == ("hamilton", 6, 87.5)

    def test_selection_stats(self, race_laps, pit_stops):
        selection = compute_race_summary(race_laps, pit_stops, ["norris"]).selection

        assert selection.lap_count == 6
        assert selection.best_lap_time == 89.0
        assert selection.average_lap_time == pytest.approx(538.5 / 6)
        assert selection.spread_ms == pytest.approx(3000.0)

    def test_invalid_times_ignored(self):
        laps = [LapRecord(1, (Timing("a", "250", 1), Timing("b", "", 2), Timing("c", "95", 3)))]
        summary = compute_race_summary(laps, [PitStopEvent("a", 1)])

        assert summary.fastest_lap.driver_id == "c"
        assert summary.driver_count == 3
        assert summary.average_pit_stop is None

    def test_empty_race(self):
        summary = compute_race_summary([], [])

        assert summary.total_laps == 0
        assert summary.fastest_lap is None

"""Unit tests for sector best-time tracking."""

import pytest

from race_analytics.analysis.sector_analysis import (
    build_sector_table,
    map_driver_to_number,
    track_sector_bests,
)
from race_analytics.schemas import SectorDriver, SectorLap


@pytest.fixture
def two_driver_laps():
    return {
        "A": [SectorLap(1, 1, 28.1, 30.0, 27.5), SectorLap(1, 2, 28.3, 30.4, 27.9)],
        "B": [SectorLap(2, 1, 27.9, 30.2, 27.4)],
    }


class TestSectorBests:
    """Test suite for personal and overall sector bests."""

    def test_overall_bests(self, two_driver_laps):
        table = track_sector_bests(two_driver_laps)

        assert [(b.time, b.driver_id) for b in table.overall_bests] == [(27.9, "B"), (30.0, "A"), (27.4, "B")]

    def test_theoretical_best(self, two_driver_laps):
        table = track_sector_bests(two_driver_laps)
        assert table.theoretical_bests["A"] == pytest.approx(85.6)
        assert table.theoretical_bests["B"] == pytest.approx(85.5)

    def test_flags(self, two_driver_laps):
        table = track_sector_bests(two_driver_laps)
        best_lap, slow_lap = table.samples["A"]

        assert best_lap.is_personal_best == (True, True, True)
        assert best_lap.is_overall_best == (False, True, False)
        assert slow_lap.is_personal_best == (False, False, False)
        assert table.samples["B"][0].is_overall_best == (True, False, True)

    def test_flag_tolerance(self):
        """Test that times within a millisecond of the best are flagged."""
        table = track_sector_bests({"A": [SectorLap(1, 1, 28.1, 30.0, 27.5), SectorLap(1, 2, 28.1005, 30.002, 27.5)]})
        assert table.samples["A"][1].is_personal_best == (True, False, True)

    def test_incomplete_and_pit_out_laps_excluded(self):
        laps = {
            "A": [
                SectorLap(1, 1, None, 30.0, 27.5),
                SectorLap(1, 2, 25.0, 29.0, 26.0, is_pit_out_lap=True),
                SectorLap(1, 3, 0.0, 29.0, 26.0),
                SectorLap(1, 4, 28.1, 30.1, 27.6),
            ]
        }
        table = track_sector_bests(laps)

        assert [s.lap_number for s in table.samples["A"]] == [4]
        assert table.personal_bests["A"] == (28.1, 30.1, 27.6)

    def test_driver_without_usable_laps(self):
        table = track_sector_bests({"A": [SectorLap(1, 1, None, None, None)]})

        assert table.samples["A"] == ()
        assert "A" not in table.theoretical_bests
        assert table.overall_bests == (None, None, None)
        assert not table.has_data


class TestDriverMapping:
    """Test suite for resolving timing-feed drivers to sector-feed numbers."""

    @pytest.fixture
    def sector_drivers(self):
        return [
            SectorDriver(1, "Max VERSTAPPEN", "VER"),
            SectorDriver(44, "Lewis HAMILTON", "HAM"),
            SectorDriver(23, "Alexander ALBON", "ALB"),
        ]

    @pytest.mark.parametrize("driver_id,number", [("max_verstappen", 1), ("hamilton", 44), ("albon", 23)])
    def test_resolves(self, sector_drivers, driver_id, number):
        assert map_driver_to_number(driver_id, sector_drivers) == number

    def test_unresolvable(self, sector_drivers):
        assert map_driver_to_number("bottas", sector_drivers) is None

    def test_acronym_not_matched_inside_other_name(self):
        """Test that "STR" does not resolve to PIASTRI listed first."""
        drivers = [SectorDriver(81, "Oscar PIASTRI", "PIA"), SectorDriver(18, "Lance STROLL", "STR")]

        assert map_driver_to_number("stroll", drivers) == 18
        assert map_driver_to_number("piastri", drivers) == 81

    def test_full_name_matches_whole_words_only(self):
        drivers = [SectorDriver(81, "Oscar PIASTRI", "")]

        assert map_driver_to_number("stroll", drivers) is None
        assert map_driver_to_number("piastri", drivers) == 81

    def test_sector_table_from_batch(self, race_batch):
        """Test the full mapping from a race batch, with one unresolved driver."""
        table = build_sector_table(race_batch.driver_ids, race_batch.sector_drivers, race_batch.sector_laps)

        assert table.unresolved_drivers == ("norris",)
        assert [s.lap_number for s in table.samples["max_verstappen"]] == [2, 3]
        assert [s.lap_number for s in table.samples["hamilton"]] == [2]
        assert table.theoretical_bests["max_verstappen"] == pytest.approx(85.6)
        assert [b.driver_id for b in table.overall_bests] == ["hamilton", "max_verstappen", "hamilton"]

    def test_no_sector_source(self, race_batch):
        table = build_sector_table(race_batch.driver_ids, (), ())

        assert not table.has_data
        assert table.unresolved_drivers == race_batch.driver_ids

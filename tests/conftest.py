"""
Shared test fixtures.

The sample race has three drivers over six laps. All lap times are
multiples of 0.5s so cumulative sums are exact.

Cumulative times:
    max_verstappen: 90, 179, 268, 357, 467, 555   (pits lap 5)
    hamilton:       91, 180.5, 269, 357, 446, 533.5
    norris:         92, 182, 271.5, 360.5, 449.5, 538.5   (pits lap 3)
"""

import pytest

from race_analytics.data_processing.loaders import build_race_batch


def _timing(driver_id, time, position):
    return {"driverId": driver_id, "time": time, "position": str(position)}


@pytest.fixture
def raw_race_payload():
    """Race payload in the shape produced by the fetch layer."""
    laps = [
        {"number": "1", "Timings": [
            _timing("max_verstappen", "1:30.000", 1),
            _timing("hamilton", "1:31.000", 2),
            _timing("norris", "1:32.000", 3),
        ]},
        {"number": "2", "Timings": [
            _timing("max_verstappen", "1:29.000", 1),
            _timing("hamilton", "1:29.500", 2),
            _timing("norris", "1:30.000", 3),
        ]},
        {"number": "3", "Timings": [
            _timing("max_verstappen", "1:29.000", 1),
            _timing("hamilton", "1:28.500", 2),
            _timing("norris", "1:29.500", 3),
        ]},
        {"number": "4", "Timings": [
            _timing("max_verstappen", "1:29.000", 1),
            _timing("hamilton", "1:28.000", 2),
            _timing("norris", "1:29.000", 3),
        ]},
        {"number": "5", "Timings": [
            _timing("hamilton", "1:29.000", 1),
            _timing("norris", "1:29.000", 2),
            _timing("max_verstappen", "1:50.000", 3),
        ]},
        {"number": "6", "Timings": [
            _timing("hamilton", "1:27.500", 1),
            _timing("norris", "1:29.000", 2),
            _timing("max_verstappen", "1:28.000", 3),
        ]},
    ]
    return {
        "raceName": "Italian Grand Prix",
        "laps": laps,
        "pitStops": [
            {"driverId": "norris", "lap": "3", "duration": "23.5"},
            {"driverId": "max_verstappen", "lap": "5", "duration": "22.5"},
        ],
        "sectorDrivers": [
            {"driver_number": 1, "full_name": "Max VERSTAPPEN", "name_acronym": "VER"},
            {"driver_number": 44, "full_name": "Lewis HAMILTON", "name_acronym": "HAM"},
        ],
        "sectorLaps": [
            {"driver_number": 1, "lap_number": 1, "duration_sector_1": None,
             "duration_sector_2": 30.5, "duration_sector_3": 28.0, "is_pit_out_lap": False},
            {"driver_number": 1, "lap_number": 2, "duration_sector_1": 28.1,
             "duration_sector_2": 30.0, "duration_sector_3": 27.5, "is_pit_out_lap": False},
            {"driver_number": 1, "lap_number": 3, "duration_sector_1": 28.4,
             "duration_sector_2": 30.3, "duration_sector_3": 27.8, "is_pit_out_lap": False},
            {"driver_number": 44, "lap_number": 2, "duration_sector_1": 27.9,
             "duration_sector_2": 30.2, "duration_sector_3": 27.4, "is_pit_out_lap": False},
            {"driver_number": 44, "lap_number": 3, "duration_sector_1": 27.0,
             "duration_sector_2": 29.0, "duration_sector_3": 26.0, "is_pit_out_lap": True},
        ],
    }


@pytest.fixture
def race_batch(raw_race_payload):
    return build_race_batch(raw_race_payload)


@pytest.fixture
def race_laps(race_batch):
    return race_batch.laps


@pytest.fixture
def pit_stops(race_batch):
    return race_batch.pit_stops

"""Ingestion of raw race records into validated batches.

Raw records arrive as JSON-shaped dicts from the fetch layer. They are
validated here exactly once; malformed entries are skipped with a warning
instead of failing the whole batch.
"""

import json
import math
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

import pandas as pd
from loguru import logger

from ..schemas import (
    LapRecord,
    PitStopEvent,
    RaceBatch,
    SectorDriver,
    SectorLap,
    Timing,
)


def _parse_int(value: Any) -> Optional[int]:
    """Parse an integer field that the feed may send as a string."""
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(str(value).strip())
    except ValueError:
        return None
    if not math.isfinite(number) or not number.is_integer():
        return None
    return int(number)


def _parse_float(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(str(value).strip())
    except ValueError:
        return None
    return number if math.isfinite(number) else None


def parse_timing(raw: Mapping[str, Any]) -> Optional[Timing]:
    """Build a Timing from ``{driverId, time, position}``."""
    driver_id = raw.get("driverId", raw.get("driver_id"))
    if not driver_id:
        return None

    time_value = raw.get("time")
    return Timing(
        driver_id=str(driver_id),
        time="" if time_value is None else str(time_value),
        position=_parse_int(raw.get("position")),
    )


def parse_lap_records(raw_laps: Optional[Iterable[Mapping[str, Any]]]) -> Tuple[LapRecord, ...]:
    """Parse lap records from the timing feed.

    Args:
        raw_laps: Iterable of ``{number, Timings: [...]}`` dicts

    Returns:
        Lap records sorted by lap number
    """
    if not raw_laps:
        return ()

    laps: Dict[int, LapRecord] = {}
    for raw in raw_laps:
        if not isinstance(raw, Mapping):
            logger.warning(f"Skipping lap record that is not an object: {raw!r}")
            continue

        number = _parse_int(raw.get("number", raw.get("lap")))
        if number is None or number < 1:
            logger.warning(f"Skipping lap record with invalid number: {raw.get('number')!r}")
            continue

        raw_timings = raw.get("Timings", raw.get("timings")) or []
        timings = []
        for raw_timing in raw_timings:
            timing = parse_timing(raw_timing) if isinstance(raw_timing, Mapping) else None
            if timing is None:
                logger.debug(f"Skipping malformed timing on lap {number}: {raw_timing!r}")
                continue
            timings.append(timing)

        if number in laps:
            logger.warning(f"Duplicate lap {number} in feed, keeping the first record")
            continue
        laps[number] = LapRecord(number=number, timings=tuple(timings))

    return tuple(laps[number] for number in sorted(laps))


def parse_pit_stops(raw_stops: Optional[Iterable[Mapping[str, Any]]]) -> Tuple[PitStopEvent, ...]:
    """Parse ``{driverId, lap, duration}`` pit-stop events."""
    if not raw_stops:
        return ()

    stops = []
    for raw in raw_stops:
        if not isinstance(raw, Mapping):
            logger.warning(f"Skipping pit stop that is not an object: {raw!r}")
            continue

        driver_id = raw.get("driverId", raw.get("driver_id"))
        lap = _parse_int(raw.get("lap"))
        if not driver_id or lap is None:
            logger.warning(f"Skipping pit stop without driver or lap: {dict(raw)!r}")
            continue

        stops.append(
            PitStopEvent(
                driver_id=str(driver_id),
                lap=lap,
                duration=_parse_float(raw.get("duration")),
            )
        )

    return tuple(stops)


def parse_sector_laps(raw_laps: Optional[Iterable[Mapping[str, Any]]]) -> Tuple[SectorLap, ...]:
    """Parse sector feed rows.

    Missing sector durations are kept as None; the sector tracker decides
    what to include.
    """
    if not raw_laps:
        return ()

    sector_laps = []
    for raw in raw_laps:
        if not isinstance(raw, Mapping):
            continue

        driver_number = _parse_int(raw.get("driver_number"))
        lap_number = _parse_int(raw.get("lap_number"))
        if driver_number is None or lap_number is None:
            logger.debug(f"Skipping sector row without driver/lap number: {dict(raw)!r}")
            continue

        sector_laps.append(
            SectorLap(
                driver_number=driver_number,
                lap_number=lap_number,
                sector1=_parse_float(raw.get("duration_sector_1")),
                sector2=_parse_float(raw.get("duration_sector_2")),
                sector3=_parse_float(raw.get("duration_sector_3")),
                is_pit_out_lap=bool(raw.get("is_pit_out_lap")),
            )
        )

    return tuple(sector_laps)


def parse_sector_drivers(raw_drivers: Optional[Iterable[Mapping[str, Any]]]) -> Tuple[SectorDriver, ...]:
    """Parse the sector feed's driver list."""
    if not raw_drivers:
        return ()

    drivers = []
    for raw in raw_drivers:
        if not isinstance(raw, Mapping):
            continue
        driver_number = _parse_int(raw.get("driver_number"))
        if driver_number is None:
            continue
        drivers.append(
            SectorDriver(
                driver_number=driver_number,
                full_name=str(raw.get("full_name") or ""),
                name_acronym=str(raw.get("name_acronym") or ""),
            )
        )

    return tuple(drivers)


def build_race_batch(payload: Mapping[str, Any]) -> RaceBatch:
    """Validate a full race payload into a RaceBatch.

    Args:
        payload: Dict with ``laps``, ``pitStops`` and optionally
            ``raceName``, ``sectorDrivers`` and ``sectorLaps``

    Returns:
        Immutable race batch
    """
    if not isinstance(payload, Mapping):
        raise ValueError(f"Race payload must be an object, got {type(payload).__name__}")

    batch = RaceBatch(
        laps=parse_lap_records(payload.get("laps")),
        pit_stops=parse_pit_stops(payload.get("pitStops", payload.get("pit_stops"))),
        race_name=str(payload.get("raceName", payload.get("race_name")) or ""),
        sector_drivers=parse_sector_drivers(payload.get("sectorDrivers", payload.get("sector_drivers"))),
        sector_laps=parse_sector_laps(payload.get("sectorLaps", payload.get("sector_laps"))),
    )

    logger.info(
        f"Built race batch '{batch.race_name}': {len(batch.laps)} laps, "
        f"{len(batch.driver_ids)} drivers, {len(batch.pit_stops)} pit stops"
    )
    return batch


def load_race_batch(batch_path: Path) -> RaceBatch:
    """Load a race batch saved as JSON.

    Args:
        batch_path: Path to the JSON file

    Returns:
        Race batch, empty if the file does not exist
    """
    batch_path = Path(batch_path)
    logger.info(f"Loading race batch from {batch_path}")

    if not batch_path.exists():
        logger.warning(f"Race batch file not found: {batch_path}")
        return RaceBatch()

    with open(batch_path, encoding="utf-8") as f:
        payload = json.load(f)

    return build_race_batch(payload)


def lap_records_from_frame(df: pd.DataFrame) -> Tuple[LapRecord, ...]:
    """Build lap records from a long-format timing DataFrame.

    Args:
        df: DataFrame with ``driver_id``, ``lap``, ``time`` and ``position``
            columns, one row per driver per lap

    Returns:
        Lap records sorted by lap number
    """
    if df.empty:
        return ()

    df = df.copy()
    df.columns = df.columns.str.strip()
    missing = {"driver_id", "lap", "time"} - set(df.columns)
    if missing:
        raise ValueError(f"Timing frame is missing columns: {sorted(missing)}")
    if "position" not in df.columns:
        df["position"] = None

    raw_laps: List[Dict[str, Any]] = []
    # sort=False keeps the feed order of rows within each lap
    for lap_number, lap_rows in df.groupby("lap", sort=False):
        raw_laps.append(
            {
                "number": lap_number,
                "Timings": [
                    {
                        "driverId": row.driver_id,
                        "time": None if pd.isna(row.time) else row.time,
                        "position": None if pd.isna(row.position) else row.position,
                    }
                    for row in lap_rows.itertuples(index=False)
                ],
            }
        )

    logger.info(f"Converted {len(df)} timing rows into {len(raw_laps)} lap records")
    return parse_lap_records(raw_laps)

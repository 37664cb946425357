"""Synthetic lap telemetry.

Real speed/throttle/brake traces are not available from the timing feeds,
so a plausible trace is generated procedurally from the circuit profile.
Corners and straights are laid out with sine waves over lap distance; each
sample draws its values from a bounded range for its zone.

Traces are reproducible: all randomness comes from the seed or numpy
``Generator`` passed in by the caller.
"""

import math
from dataclasses import dataclass
from typing import Dict, Optional, Sequence, Tuple, Union

import numpy as np
from loguru import logger

from ..data_processing.time_codec import parse_race_time
from ..schemas import CircuitProfile, LapRecord, TelemetryPoint

SAMPLES_PER_LAP = 200

MIN_DRIVER_SKILL = 0.9
MAX_DRIVER_SKILL = 1.1

CIRCUITS: Dict[str, CircuitProfile] = {
    "default": CircuitProfile(length=5000, corner_count=16, top_speed=320),
    "monaco": CircuitProfile(length=3337, corner_count=19, top_speed=290),
    "monza": CircuitProfile(length=5793, corner_count=11, top_speed=360),
    "spa": CircuitProfile(length=7004, corner_count=19, top_speed=340),
    "silverstone": CircuitProfile(length=5891, corner_count=18, top_speed=330),
    "suzuka": CircuitProfile(length=5807, corner_count=18, top_speed=320),
}

# Race name keywords for each circuit, checked in order
_RACE_NAME_KEYWORDS: Tuple[Tuple[str, Tuple[str, ...]], ...] = (
    ("monaco", ("monaco",)),
    ("monza", ("monza", "italian")),
    ("spa", ("spa", "belgian")),
    ("silverstone", ("silverstone", "british")),
    ("suzuka", ("suzuka", "japanese")),
)

STRAIGHT = "straight"
CORNER = "corner"
APPROACH = "approach"
EXIT = "exit"

# (low, high) fractions of top speed, before the skill multiplier
SPEED_RANGES = {
    STRAIGHT: (0.85, 1.00),
    EXIT: (0.85, 1.00),
    CORNER: (0.60, 0.80),
    APPROACH: (0.70, 0.85),
}
THROTTLE_RANGES = {
    STRAIGHT: (95.0, 100.0),
    CORNER: (40.0, 70.0),
    APPROACH: (20.0, 40.0),
    EXIT: (70.0, 95.0),
}
BRAKE_RANGES = {
    STRAIGHT: (0.0, 0.0),
    EXIT: (0.0, 0.0),
    CORNER: (10.0, 30.0),
    APPROACH: (60.0, 100.0),
}

# Upper speed bound (km/h, exclusive) for gears 2..7; anything faster is 8th
GEAR_THRESHOLDS = (80, 120, 160, 200, 240, 280)

RandomSource = Union[int, np.random.Generator, None]


@dataclass(frozen=True)
class LapTelemetry:
    """A generated trace for one driver's lap. Never measured data."""

    circuit_id: str
    lap_time: float
    driver_skill: float
    average_speed: float
    points: Tuple[TelemetryPoint, ...]
    simulated: bool = True


@dataclass(frozen=True)
class TelemetryComparison:
    lap_number: int
    driver_a: str
    driver_b: str
    telemetry_a: LapTelemetry
    telemetry_b: LapTelemetry

    @property
    def lap_time_delta(self) -> float:
        return abs(self.telemetry_a.lap_time - self.telemetry_b.lap_time)


def get_circuit_profile(circuit_id: str) -> CircuitProfile:
    """Look up a circuit, falling back to the default profile."""
    profile = CIRCUITS.get(circuit_id)
    if profile is None:
        logger.debug(f"Unknown circuit '{circuit_id}', using default profile")
        return CIRCUITS["default"]
    return profile


def circuit_id_from_race_name(race_name: str) -> str:
    """Map a race name such as "Italian Grand Prix" to a circuit id."""
    name = race_name.lower()
    for circuit_id, keywords in _RACE_NAME_KEYWORDS:
        if any(keyword in name for keyword in keywords):
            return circuit_id
    return "default"


def gear_for_speed(speed: float) -> int:
    """Step function from speed (km/h) to gear."""
    for gear, threshold in enumerate(GEAR_THRESHOLDS, start=2):
        if speed < threshold:
            return gear
    return 8


def classify_zones(distances: np.ndarray, profile: CircuitProfile) -> np.ndarray:
    """Label each distance as corner, approach, exit or straight.

    Labels are mutually exclusive and checked in that priority order.
    """
    phase = 2 * np.pi * distances * profile.corner_count / profile.length
    wave = np.sin(phase)

    in_corner = np.sin(phase + np.pi / 4) > 0.3
    approaching = ~in_corner & (wave > 0.5) & (wave < 0.9)
    exiting = ~in_corner & ~approaching & (wave > -0.7) & (wave < -0.3)

    zones = np.full(distances.shape, STRAIGHT, dtype=object)
    zones[in_corner] = CORNER
    zones[approaching] = APPROACH
    zones[exiting] = EXIT
    return zones


def _draw(rng: np.random.Generator, zones: np.ndarray, ranges: Dict[str, Tuple[float, float]]) -> np.ndarray:
    low = np.array([ranges[zone][0] for zone in zones])
    high = np.array([ranges[zone][1] for zone in zones])
    return low + rng.random(len(zones)) * (high - low)


def generate_lap_telemetry(
    circuit_id: str = "default",
    lap_time: float = 90.0,
    driver_skill: float = 1.0,
    seed: RandomSource = None,
) -> LapTelemetry:
    """Generate a synthetic telemetry trace for one lap.

    Args:
        circuit_id: Key into ``CIRCUITS``; unknown ids use the default profile
        lap_time: Lap time in seconds
        driver_skill: Speed multiplier, clamped to [0.9, 1.1]
        seed: Integer seed or numpy Generator. The same seed always gives
            the same trace.

    Returns:
        200 samples equally spaced over the lap distance
    """
    if not MIN_DRIVER_SKILL <= driver_skill <= MAX_DRIVER_SKILL:
        clamped = min(max(driver_skill, MIN_DRIVER_SKILL), MAX_DRIVER_SKILL)
        logger.warning(f"Driver skill {driver_skill} outside [0.9, 1.1], using {clamped}")
        driver_skill = clamped

    profile = get_circuit_profile(circuit_id)
    rng = seed if isinstance(seed, np.random.Generator) else np.random.default_rng(seed)

    distances = np.arange(SAMPLES_PER_LAP) / SAMPLES_PER_LAP * profile.length
    zones = classify_zones(distances, profile)

    speeds = profile.top_speed * _draw(rng, zones, SPEED_RANGES) * driver_skill
    throttles = np.clip(_draw(rng, zones, THROTTLE_RANGES), 0, 100)
    brakes = np.clip(_draw(rng, zones, BRAKE_RANGES), 0, 100)

    points = []
    for distance, speed, throttle, brake in zip(distances, speeds, throttles, brakes):
        reported_speed = int(round(speed))
        points.append(
            TelemetryPoint(
                distance=int(round(distance)),
                speed=reported_speed,
                throttle=int(round(throttle)),
                brake=int(round(brake)),
                gear=gear_for_speed(reported_speed),
            )
        )

    average_speed = profile.length / lap_time * 3.6 if lap_time > 0 else 0.0
    return LapTelemetry(
        circuit_id=circuit_id if circuit_id in CIRCUITS else "default",
        lap_time=lap_time,
        driver_skill=driver_skill,
        average_speed=average_speed,
        points=tuple(points),
    )


def compare_lap_telemetry(
    laps: Sequence[LapRecord],
    lap_number: int,
    driver_a: str,
    driver_b: str,
    race_name: str = "",
    seed: RandomSource = None,
) -> Optional[TelemetryComparison]:
    """Generate head-to-head traces for two drivers on one lap.

    The second driver gets a slightly lower skill multiplier so the traces
    are visibly distinct.

    Returns:
        The pair of traces, or None if either driver has no usable time
    """
    logger.info(f"Generating telemetry comparison for {driver_a} vs {driver_b} on lap {lap_number}")

    lap = next((lap for lap in laps if lap.number == lap_number), None)
    if lap is None:
        logger.warning(f"Lap {lap_number} not found")
        return None

    timing_a = lap.timing_for(driver_a)
    timing_b = lap.timing_for(driver_b)
    if timing_a is None or timing_b is None:
        return None

    lap_time_a = parse_race_time(timing_a.time)
    lap_time_b = parse_race_time(timing_b.time)
    if math.isnan(lap_time_a) or math.isnan(lap_time_b):
        return None

    circuit_id = circuit_id_from_race_name(race_name)
    rng = seed if isinstance(seed, np.random.Generator) else np.random.default_rng(seed)

    return TelemetryComparison(
        lap_number=lap_number,
        driver_a=driver_a,
        driver_b=driver_b,
        telemetry_a=generate_lap_telemetry(circuit_id, lap_time_a, 1.0, rng),
        telemetry_b=generate_lap_telemetry(circuit_id, lap_time_b, 0.98, rng),
    )

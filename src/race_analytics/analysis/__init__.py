"""Analysis modules for race insights."""

from .race_timeline import *
from .gap_analysis import *
from .stint_analysis import *
from .sector_analysis import *
from .telemetry_synthesis import *
from .performance_metrics import *
from .race_report import *

__all__ = [
    "build_race_timeline",
    "calculate_gaps",
    "build_stints",
    "build_degradation_curve",
    "track_sector_bests",
    "generate_lap_telemetry",
    "compare_lap_telemetry",
    "compute_race_summary",
    "analyze_race",
]

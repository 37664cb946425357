"""Data processing utilities for race timing data."""

from .time_codec import *
from .loaders import *
from .preprocessors import *
from .transformers import *

__all__ = [
    "parse_race_time",
    "format_race_time",
    "is_valid_lap_time",
    "build_race_batch",
    "load_race_batch",
    "lap_records_from_frame",
    "FilterConfig",
    "apply_lap_filters",
    "filter_lap_time",
    "lap_time_series",
    "gaps_to_frame",
    "timeline_to_frame",
]

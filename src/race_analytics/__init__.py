"""Race Analytics Package.

Turns per-lap timing records and pit-stop events into gap, interval,
stint, degradation and sector series, and generates synthetic lap
telemetry when real sensor data is unavailable.
"""

__version__ = "0.1.0"

# Make key modules easily accessible
from . import data_processing
from . import analysis

__all__ = [
    "data_processing",
    "analysis",
]

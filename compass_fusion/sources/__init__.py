"""Sample sources: CSV replay, CSV recording and simulation."""

from .replay import ReplaySource, SourceError, parse_sample_line
from .recorder import SampleRecorder
from .simulated import SimulatedSensors

__all__ = [
    "ReplaySource",
    "SourceError",
    "parse_sample_line",
    "SampleRecorder",
    "SimulatedSensors",
]

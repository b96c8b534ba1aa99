"""Core types and rotation math for orientation fusion."""

from .errors import FusionError, DegenerateInputError, ConfigurationError
from .types import (
    SensorChannel,
    SensorSample,
    Vector3,
    Quaternion,
    ValidationResult,
    EstimatorStats,
)
from .quaternion import QuaternionOps
from .rotation import RotationMatrix
from .euler import EulerAngles, MatrixBranch, QuaternionBranch
from .validation import SampleValidator
from .config import Config, FusionMode, load_config, parse_filter_option

__all__ = [
    "FusionError",
    "DegenerateInputError",
    "ConfigurationError",
    "SensorChannel",
    "SensorSample",
    "Vector3",
    "Quaternion",
    "ValidationResult",
    "EstimatorStats",
    "QuaternionOps",
    "RotationMatrix",
    "EulerAngles",
    "MatrixBranch",
    "QuaternionBranch",
    "SampleValidator",
    "Config",
    "FusionMode",
    "load_config",
    "parse_filter_option",
]

"""Fusion filters and the orientation estimator."""

from .kalman import Kalman1D
from .strategies import (
    FusionStrategy,
    AccelerometerStrategy,
    GyroscopeStrategy,
    KalmanStrategy,
    ComplementaryStrategy,
    MagnetometerStrategy,
    create_strategy,
    accelerometer_angles,
)
from .estimator import (
    OrientationEstimator,
    OrientationSnapshot,
    compute_heading,
    display_rotation,
)

__all__ = [
    "Kalman1D",
    "FusionStrategy",
    "AccelerometerStrategy",
    "GyroscopeStrategy",
    "KalmanStrategy",
    "ComplementaryStrategy",
    "MagnetometerStrategy",
    "create_strategy",
    "accelerometer_angles",
    "OrientationEstimator",
    "OrientationSnapshot",
    "compute_heading",
    "display_rotation",
]

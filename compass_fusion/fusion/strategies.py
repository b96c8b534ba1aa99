"""Fusion strategies: one class per fusion mode.

Each strategy is driven by one sensor channel and reads the most recent
sample of the other channels from a cache. Strategies hold only the state
their mode needs and return a new EulerAngles estimate per driving sample.
"""

import logging
import math
from typing import Dict, Optional, Tuple

from ..core.config import Config, FusionMode
from ..core.euler import EulerAngles
from ..core.rotation import RotationMatrix
from ..core.types import MIN_VECTOR_NORM, SensorChannel, SensorSample, Vector3
from .kalman import Kalman1D

logger = logging.getLogger(__name__)

SampleCache = Dict[SensorChannel, SensorSample]
AngleTriple = Tuple[float, float, float]


def accelerometer_angles(
    sample: Optional[SensorSample],
    gravity: float = 9.81,
) -> AngleTriple:
    """Derive (alpha, beta, gamma) measurements from an acceleration sample.

    The device x and y axes are swapped to match the pitch/roll convention:
    beta follows the normalized y component scaled to +/-90 degrees, gamma
    the negated x component. alpha is the normalized z component, which is
    not a heading.

    A missing or zero-length sample gives (0, 0, 0).
    """
    if sample is None:
        return 0.0, 0.0, 0.0

    x = sample.y / gravity
    y = sample.x / gravity
    z = sample.z / gravity

    norm = math.sqrt(x * x + y * y + z * z)
    if not math.isfinite(norm) or norm < MIN_VECTOR_NORM:
        return 0.0, 0.0, 0.0

    return z / norm, (x / norm) * 90.0, (y / norm) * -90.0


def gyroscope_rates(sample: SensorSample) -> AngleTriple:
    """Angular rates in deg/s ordered (alpha, beta, gamma) = (z, x, y)."""
    return (
        math.degrees(sample.z),
        math.degrees(sample.x),
        math.degrees(sample.y),
    )


class FusionStrategy:
    """Base class for fusion strategies."""

    mode: FusionMode
    driver: SensorChannel

    def update(
        self,
        current: EulerAngles,
        sample: SensorSample,
        cache: SampleCache,
        dt: float,
    ) -> EulerAngles:
        """Compute the next estimate from a driving sample.

        Args:
            current: Estimate before this sample.
            sample: Sample from the driving channel.
            cache: Latest sample of every channel seen so far.
            dt: Seconds since the previous driving sample.
        """
        raise NotImplementedError

    def reset(self) -> None:
        """Clear any internal filter state."""


class AccelerometerStrategy(FusionStrategy):
    """Angles straight from the normalized acceleration vector."""

    mode = FusionMode.ACCELEROMETER
    driver = SensorChannel.ACCELEROMETER

    def __init__(self, gravity: float = 9.81):
        self.gravity = gravity

    def update(self, current, sample, cache, dt):
        alpha, beta, gamma = accelerometer_angles(sample, self.gravity)
        return EulerAngles(alpha=alpha, beta=beta, gamma=gamma)


class ComplementaryStrategy(FusionStrategy):
    """Weighted blend of gyroscope integration and accelerometer angles.

    angle = w * (previous + rate * dt) + (1 - w) * accelerometer_angle

    w = 0 reproduces the accelerometer angle, w = 1 is pure integration.
    """

    mode = FusionMode.COMPLEMENTARY
    driver = SensorChannel.GYROSCOPE

    def __init__(self, weight: float, gravity: float = 9.81):
        self.weight = weight
        self.gravity = gravity

    def update(self, current, sample, cache, dt):
        w = self.weight
        if w < 1.0:
            acc = accelerometer_angles(cache.get(SensorChannel.ACCELEROMETER), self.gravity)
        else:
            acc = (0.0, 0.0, 0.0)
        rates = gyroscope_rates(sample)
        previous = (current.alpha, current.beta, current.gamma)

        alpha, beta, gamma = (
            w * (prev + rate * dt) + (1.0 - w) * measured
            for prev, rate, measured in zip(previous, rates, acc)
        )
        return EulerAngles(alpha=alpha, beta=beta, gamma=gamma)


class GyroscopeStrategy(ComplementaryStrategy):
    """Pure gyroscope integration; accelerometer samples are never read."""

    mode = FusionMode.GYROSCOPE

    def __init__(self, gravity: float = 9.81):
        super().__init__(weight=1.0, gravity=gravity)


class KalmanStrategy(FusionStrategy):
    """Three independent Kalman1D filters, one per Euler angle."""

    mode = FusionMode.KALMAN
    driver = SensorChannel.GYROSCOPE

    def __init__(self, gravity: float = 9.81):
        self.gravity = gravity
        self.filter_alpha = Kalman1D()
        self.filter_beta = Kalman1D()
        self.filter_gamma = Kalman1D()

    def update(self, current, sample, cache, dt):
        acc_alpha, acc_beta, acc_gamma = accelerometer_angles(
            cache.get(SensorChannel.ACCELEROMETER), self.gravity
        )
        rate_alpha, rate_beta, rate_gamma = gyroscope_rates(sample)

        return EulerAngles(
            alpha=self.filter_alpha.step(acc_alpha, rate_alpha, dt),
            beta=self.filter_beta.step(acc_beta, rate_beta, dt),
            gamma=self.filter_gamma.step(acc_gamma, rate_gamma, dt),
        )

    def reset(self) -> None:
        self.filter_alpha.reset()
        self.filter_beta.reset()
        self.filter_gamma.reset()


class MagnetometerStrategy(FusionStrategy):
    """Tilt-compensated compass: alpha from the gravity/magnetic frame.

    beta and gamma keep their previous values. Until an accelerometer
    sample has arrived there is no gravity and the estimate is unchanged.
    """

    mode = FusionMode.MAGNETOMETER
    driver = SensorChannel.MAGNETOMETER

    def __init__(self, min_vector_norm: float = MIN_VECTOR_NORM):
        self.min_vector_norm = min_vector_norm

    def update(self, current, sample, cache, dt):
        accel = cache.get(SensorChannel.ACCELEROMETER)
        if accel is None:
            logger.debug("No gravity sample yet, magnetometer update skipped")
            return current

        matrix = RotationMatrix.from_vectors(
            accel.vector, sample.vector, min_norm=self.min_vector_norm
        )
        heading = EulerAngles.from_rotation_matrix(matrix)
        return EulerAngles(alpha=heading.alpha, beta=current.beta, gamma=current.gamma)


def create_strategy(config: Config) -> FusionStrategy:
    """Build the strategy selected by the configuration."""
    mode = config.fusion.mode
    gravity = config.sensor.gravity_nominal

    if mode is FusionMode.ACCELEROMETER:
        return AccelerometerStrategy(gravity=gravity)
    if mode is FusionMode.GYROSCOPE:
        return GyroscopeStrategy(gravity=gravity)
    if mode is FusionMode.KALMAN:
        return KalmanStrategy(gravity=gravity)
    if mode is FusionMode.COMPLEMENTARY:
        return ComplementaryStrategy(weight=config.fusion.weight, gravity=gravity)
    if mode is FusionMode.MAGNETOMETER:
        return MagnetometerStrategy(min_vector_norm=config.validation.min_vector_norm)
    raise ValueError(f"Unsupported fusion mode: {mode}")

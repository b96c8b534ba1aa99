"""Synthetic sensor samples for development without a device.

Generates accelerometer, gyroscope and magnetometer samples for a device
held at a fixed tilt and turning about the vertical at a constant rate.
Each channel ticks at its own configured rate and the three streams are
merged in timestamp order, as they would arrive from real sensors.
"""

import logging
import math
from typing import Iterator, List, Optional

import numpy as np

from ..core.config import Config
from ..core.rotation import RotationMatrix
from ..core.types import SensorChannel, SensorSample

logger = logging.getLogger(__name__)

# Horizontal and downward geomagnetic components (uT), mid-latitude values.
FIELD_HORIZONTAL_UT = 20.0
FIELD_VERTICAL_UT = 40.0


class SimulatedSensors:
    """Synthetic three-channel sensor source.

    The device orientation at time t is ZXY Euler
    (alpha0 + yaw_rate * t, beta, gamma). In that orientation the device
    reads gravity along the third row of the rotation matrix and the
    geomagnetic field as horizontal north plus a downward component.
    """

    def __init__(
        self,
        config: Optional[Config] = None,
        alpha: float = 0.0,
        beta: float = 0.0,
        gamma: float = 0.0,
        yaw_rate_dps: float = 0.0,
        field_horizontal_ut: float = FIELD_HORIZONTAL_UT,
        field_vertical_ut: float = FIELD_VERTICAL_UT,
        noise: bool = True,
        seed: Optional[int] = None,
        start_us: int = 0,
    ):
        """Initialize simulator.

        Args:
            config: Configuration providing channel rates and gravity.
            alpha, beta, gamma: Initial orientation in degrees.
            yaw_rate_dps: Constant turn rate about the vertical (deg/s).
            field_horizontal_ut: Horizontal field strength.
            field_vertical_ut: Downward field strength.
            noise: Add Gaussian sensor noise.
            seed: Random seed for reproducible noise.
            start_us: Timestamp of the first sample.
        """
        if config is None:
            config = Config()

        self._config = config
        self.alpha = alpha
        self.beta = beta
        self.gamma = gamma
        self.yaw_rate_dps = yaw_rate_dps
        self.field_horizontal_ut = field_horizontal_ut
        self.field_vertical_ut = field_vertical_ut
        self.noise = noise
        self.start_us = start_us
        self._rng = np.random.default_rng(seed)

    def orientation_at(self, t: float) -> RotationMatrix:
        """True device orientation t seconds after start."""
        return RotationMatrix.from_euler(self.alpha + self.yaw_rate_dps * t, self.beta, self.gamma)

    def _noise(self, sigma: float) -> np.ndarray:
        if not self.noise:
            return np.zeros(3)
        return self._rng.normal(0.0, sigma, 3)

    def sample_at(self, channel: SensorChannel, t: float) -> SensorSample:
        """Generate one sample of a channel at time t (seconds)."""
        R = self.orientation_at(t).to_array()
        timestamp_us = self.start_us + int(round(t * 1e6))

        if channel is SensorChannel.ACCELEROMETER:
            value = self._config.sensor.gravity_nominal * R[2] + self._noise(0.02)
        elif channel is SensorChannel.GYROSCOPE:
            value = np.array([0.0, 0.0, math.radians(self.yaw_rate_dps)]) + self._noise(0.001)
        else:
            value = (self.field_horizontal_ut * R[1]
                     - self.field_vertical_ut * R[2]
                     + self._noise(0.2))

        return SensorSample(channel, float(value[0]), float(value[1]), float(value[2]), timestamp_us)

    def _tick_times(self, channel: SensorChannel, duration_s: float) -> List[float]:
        sensor = self._config.sensor
        rate = {
            SensorChannel.ACCELEROMETER: sensor.accelerometer_rate_hz,
            SensorChannel.GYROSCOPE: sensor.gyroscope_rate_hz,
            SensorChannel.MAGNETOMETER: sensor.magnetometer_rate_hz,
        }[channel]
        count = int(duration_s * rate)
        return [i / rate for i in range(count)]

    def samples(self, duration_s: float) -> Iterator[SensorSample]:
        """Yield all channels' samples for duration_s, in timestamp order.

        Samples sharing a timestamp come accelerometer, gyroscope,
        magnetometer.
        """
        order = {ch: i for i, ch in enumerate(SensorChannel)}
        ticks = [
            (t, order[ch], ch)
            for ch in SensorChannel
            for t in self._tick_times(ch, duration_s)
        ]
        ticks.sort(key=lambda tick: (tick[0], tick[1]))

        logger.info("Simulating %.1f s, %d samples", duration_s, len(ticks))
        for t, _, channel in ticks:
            yield self.sample_at(channel, t)

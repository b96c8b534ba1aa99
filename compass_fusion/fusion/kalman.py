"""Scalar angle Kalman filter with gyroscope bias estimation.

State is [angle, bias]. The gyroscope rate drives the prediction and an
angle derived from the accelerometer is the measurement. One instance
tracks one axis.
"""

import numpy as np
from numpy.typing import NDArray

Q_ANGLE = 0.01
Q_GYRO = 0.0003
R_ANGLE = 0.01


class Kalman1D:
    """One-axis angle-plus-bias Kalman filter."""

    def __init__(
        self,
        q_angle: float = Q_ANGLE,
        q_gyro: float = Q_GYRO,
        r_angle: float = R_ANGLE,
    ):
        """Initialize filter.

        Args:
            q_angle: Process noise of the angle.
            q_gyro: Process noise of the gyroscope bias.
            r_angle: Measurement noise of the accelerometer angle.
        """
        self.q_angle = q_angle
        self.q_gyro = q_gyro
        self.r_angle = r_angle
        self.reset()

    def reset(self) -> None:
        """Zero the angle, bias and error covariance."""
        self.angle = 0.0
        self.bias = 0.0
        self.P00 = 0.0
        self.P01 = 0.0
        self.P10 = 0.0
        self.P11 = 0.0

    def step(self, measured_angle: float, rate: float, dt: float) -> float:
        """Run one predict/correct cycle.

        A dt of zero makes a null prediction; a large dt after a gap makes
        a large one. Neither raises.

        Args:
            measured_angle: Angle derived from acceleration (degrees).
            rate: Gyroscope rate on the same axis (deg/s).
            dt: Seconds since the previous step.

        Returns:
            Corrected angle estimate.
        """
        self.angle += dt * (rate - self.bias)

        self.P00 += -dt * (self.P10 + self.P01) + self.q_angle * dt
        self.P01 += -dt * self.P11
        self.P10 += -dt * self.P11
        self.P11 += self.q_gyro * dt

        innovation = measured_angle - self.angle
        S = self.P00 + self.r_angle
        K0 = self.P00 / S
        K1 = self.P10 / S

        self.angle += K0 * innovation
        self.bias += K1 * innovation

        # P10 and P11 use P00 and P01 from before this correction.
        P00, P01 = self.P00, self.P01
        self.P00 -= K0 * P00
        self.P01 -= K0 * P01
        self.P10 -= K1 * P00
        self.P11 -= K1 * P01

        return self.angle

    @property
    def covariance(self) -> NDArray[np.float64]:
        """2x2 error covariance [[P00, P01], [P10, P11]]."""
        return np.array([[self.P00, self.P01], [self.P10, self.P11]], dtype=np.float64)

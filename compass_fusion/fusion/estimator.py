"""Orientation estimator: the single entry point for sensor samples.

Main interface combining:
- SampleValidator to reject unusable samples
- a FusionStrategy selected once from the configuration
- ChannelRateMonitor for per-channel timing statistics

Each accepted sample from the strategy's driving channel produces a new
OrientationSnapshot holding the display rotation and the compass heading.
"""

import logging
import math
from dataclasses import dataclass
from typing import Dict, Optional
import numpy as np
from numpy.typing import NDArray

from ..core.config import Config, FusionMode
from ..core.errors import DegenerateInputError
from ..core.euler import EulerAngles
from ..core.quaternion import QuaternionOps
from ..core.rotation import AXIS_Z, MIN_DETERMINANT, RotationMatrix
from ..core.types import EstimatorStats, Quaternion, SensorChannel, SensorSample, Vector3
from ..core.validation import SampleValidator, validate_dt
from ..monitoring import ChannelRateMonitor
from .strategies import FusionStrategy, create_strategy

logger = logging.getLogger(__name__)


def compute_heading(alpha: float) -> int:
    """Compass heading in whole degrees [0, 360) for a yaw angle.

    The heading turns the opposite way to alpha: (360 - alpha) mod 360,
    floored. alpha = 0 gives 0, never 360.
    """
    return int(math.floor((360.0 - alpha) % 360.0)) % 360


def display_rotation(
    euler: EulerAngles,
    screen_orientation_deg: float = 0.0,
    min_determinant: float = MIN_DETERMINANT,
) -> RotationMatrix:
    """Rotation for rendering, compensated for the screen orientation.

    Raises:
        DegenerateInputError: If either renormalization finds a determinant
            below min_determinant.
    """
    matrix = euler.to_rotation_matrix(min_determinant)
    return matrix.rotate_about_axis(AXIS_Z, -math.radians(screen_orientation_deg), min_determinant)


@dataclass(frozen=True)
class OrientationSnapshot:
    """Immutable orientation published after each estimator update."""
    euler: EulerAngles          # raw filter estimate
    display_euler: EulerAngles  # re-extracted from the display rotation
    rotation: NDArray[np.float64]
    quaternion: Quaternion
    heading: int
    timestamp_us: Optional[int]
    mode: FusionMode

    @property
    def rotation_matrix(self) -> RotationMatrix:
        """Display rotation as a RotationMatrix."""
        return RotationMatrix(self.rotation)

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "timestamp_us": self.timestamp_us,
            "mode": self.mode.value,
            "heading": self.heading,
            "alpha": self.euler.alpha,
            "beta": self.euler.beta,
            "gamma": self.euler.gamma,
            "qw": self.quaternion.w,
            "qx": self.quaternion.x,
            "qy": self.quaternion.y,
            "qz": self.quaternion.z,
            "rotation": [float(v) for v in self.rotation.flatten()],
        }


class OrientationEstimator:
    """Maintains the (alpha, beta, gamma) estimate from sensor samples.

    Samples may arrive on the three channels in any interleaving. Samples
    from channels other than the strategy's driver are cached and read on
    the next driving sample.

    The latest snapshot is replaced by a single assignment, so a renderer
    on another thread can read ``snapshot`` without locking.

    Usage:
        estimator = OrientationEstimator(load_config())

        for sample in source:
            estimator.update(sample)
            heading = estimator.heading
    """

    def __init__(
        self,
        config: Optional[Config] = None,
        monitor: Optional[ChannelRateMonitor] = None,
    ):
        """Initialize estimator.

        Args:
            config: System configuration. If None, uses defaults.
            monitor: Rate monitor to feed. If None and monitoring is
                enabled, one is created.
        """
        if config is None:
            config = Config()

        self._config = config
        self._strategy: FusionStrategy = create_strategy(config)
        self._validator = SampleValidator(config)
        if monitor is None and config.monitoring.enabled:
            monitor = ChannelRateMonitor(config)
        self._monitor = monitor

        self._screen_orientation_deg = config.display.screen_orientation_deg
        self._estimate = EulerAngles()
        self._latest: Dict[SensorChannel, SensorSample] = {}
        self._last_driver_timestamp: Optional[int] = None
        self._stats = EstimatorStats()
        self._snapshot = self._rest_snapshot()

        logger.info(
            "Fusion mode: %s (driven by %s)",
            self._strategy.mode.value,
            self._strategy.driver.value,
        )

    def update(self, sample: SensorSample) -> Optional[OrientationSnapshot]:
        """Process one sensor sample.

        Never raises for bad sample data: invalid samples are rejected and
        degenerate math keeps the previous estimate.

        Args:
            sample: Sample from any channel.

        Returns:
            The new snapshot if the estimate was updated, else None.
        """
        self._stats.total_samples += 1

        validation = self._validator.validate(sample)
        if not validation.is_valid:
            self._stats.rejected_samples += 1
            for error in validation.errors:
                logger.warning("Rejected sample: %s", error)
            return None

        for warning in validation.warnings:
            logger.debug("Validation warning: %s", warning)

        if self._monitor is not None:
            self._monitor.record(sample)

        self._latest[sample.channel] = sample
        if sample.channel is not self._strategy.driver:
            return None

        dt = self._driver_dt(sample.timestamp_us)

        try:
            estimate = self._strategy.update(self._estimate, sample, self._latest, dt)
            snapshot = self._build_snapshot(estimate, sample.timestamp_us)
        except DegenerateInputError as e:
            self._stats.degenerate_updates += 1
            logger.warning("Degenerate input, keeping previous estimate: %s", e)
            return None

        self._estimate = estimate
        self._snapshot = snapshot
        self._stats.driver_updates += 1
        return snapshot

    def update_accelerometer(self, x: float, y: float, z: float, timestamp_us: int) -> Optional[OrientationSnapshot]:
        """Process an acceleration sample (m/s^2, gravity included)."""
        return self.update(SensorSample.accelerometer(x, y, z, timestamp_us))

    def update_gyroscope(self, x: float, y: float, z: float, timestamp_us: int) -> Optional[OrientationSnapshot]:
        """Process an angular-rate sample (rad/s)."""
        return self.update(SensorSample.gyroscope(x, y, z, timestamp_us))

    def update_magnetometer(self, x: float, y: float, z: float, timestamp_us: int) -> Optional[OrientationSnapshot]:
        """Process a magnetic-field sample (uT)."""
        return self.update(SensorSample.magnetometer(x, y, z, timestamp_us))

    def _driver_dt(self, timestamp_us: int) -> float:
        """Seconds since the previous driving sample, 0 for the first."""
        last = self._last_driver_timestamp
        self._last_driver_timestamp = timestamp_us
        if last is None:
            return 0.0

        dt = (timestamp_us - last) / 1e6
        result = validate_dt(dt, self._config)
        for warning in result.warnings:
            logger.debug("%s", warning)

        max_dt = self._config.validation.max_dt_s
        if max_dt is not None and dt > max_dt:
            return max_dt
        return dt

    def _build_snapshot(
        self,
        estimate: EulerAngles,
        timestamp_us: Optional[int],
        screen_orientation_deg: Optional[float] = None,
    ) -> OrientationSnapshot:
        if screen_orientation_deg is None:
            screen_orientation_deg = self._screen_orientation_deg
        matrix = display_rotation(
            estimate, screen_orientation_deg, self._config.validation.min_determinant
        )
        return self._snapshot_from(estimate, matrix, timestamp_us)

    def _rest_snapshot(self) -> OrientationSnapshot:
        """Snapshot for the zero estimate: only the screen compensation about Z."""
        q = QuaternionOps.from_axis_angle(
            Vector3(0.0, 0.0, 1.0), -math.radians(self._screen_orientation_deg)
        )
        return self._snapshot_from(EulerAngles(), RotationMatrix.from_quaternion(q), None)

    def _snapshot_from(
        self,
        estimate: EulerAngles,
        matrix: RotationMatrix,
        timestamp_us: Optional[int],
    ) -> OrientationSnapshot:
        display_euler = EulerAngles.from_rotation_matrix(matrix)

        return OrientationSnapshot(
            euler=estimate,
            display_euler=display_euler,
            rotation=matrix.to_array(),
            quaternion=matrix.to_quaternion(),
            heading=compute_heading(display_euler.alpha),
            timestamp_us=timestamp_us,
            mode=self._strategy.mode,
        )

    def set_screen_orientation(self, angle_deg: float) -> OrientationSnapshot:
        """Change the screen orientation angle and republish the snapshot.

        Raises:
            DegenerateInputError: If the display rotation cannot be
                renormalized. The previous angle and snapshot are kept.
        """
        angle_deg = float(angle_deg)
        snapshot = self._build_snapshot(self._estimate, self._snapshot.timestamp_us, angle_deg)
        self._screen_orientation_deg = angle_deg
        self._snapshot = snapshot
        return snapshot

    def reset(self) -> None:
        """Zero the estimate and forget cached samples and timestamps."""
        self._strategy.reset()
        self._validator.reset()
        if self._monitor is not None:
            self._monitor.reset()
        self._estimate = EulerAngles()
        self._latest.clear()
        self._last_driver_timestamp = None
        self._stats = EstimatorStats()
        self._snapshot = self._rest_snapshot()

    @property
    def mode(self) -> FusionMode:
        """Active fusion mode."""
        return self._strategy.mode

    @property
    def strategy(self) -> FusionStrategy:
        return self._strategy

    @property
    def snapshot(self) -> OrientationSnapshot:
        """Latest published orientation."""
        return self._snapshot

    @property
    def euler(self) -> EulerAngles:
        """Current raw estimate."""
        return self._estimate

    @property
    def heading(self) -> int:
        """Current compass heading in whole degrees."""
        return self._snapshot.heading

    @property
    def rotation_matrix(self) -> RotationMatrix:
        """Current display rotation."""
        return self._snapshot.rotation_matrix

    @property
    def stats(self) -> EstimatorStats:
        return self._stats

    @property
    def monitor(self) -> Optional[ChannelRateMonitor]:
        return self._monitor

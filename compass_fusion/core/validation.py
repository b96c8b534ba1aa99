"""Input validation for sensor samples."""

from typing import Dict
import numpy as np

from .config import Config
from .types import SensorChannel, SensorSample, ValidationResult


class SampleValidator:
    """Validates sensor samples for plausibility.

    Errors mark a sample that must not reach a filter (non-finite values,
    timestamps going backwards). Warnings flag readings that are usable but
    suspicious, such as a device under strong linear acceleration.
    """

    def __init__(self, config: Config):
        """Initialize validator with configuration.

        Args:
            config: System configuration with sensor expectations.
        """
        self._config = config
        self._last_timestamp: Dict[SensorChannel, int] = {}

    def validate(self, sample: SensorSample) -> ValidationResult:
        """Validate a single sample.

        Args:
            sample: Sensor sample to validate.

        Returns:
            ValidationResult with validation status and any errors/warnings.
        """
        result = ValidationResult(is_valid=True)

        self._check_finite(sample, result)
        self._check_timestamp(sample, result)

        if result.is_valid:
            if sample.channel is SensorChannel.ACCELEROMETER:
                self._check_accelerometer(sample, result)
            elif sample.channel is SensorChannel.MAGNETOMETER:
                self._check_magnetometer(sample, result)
            self._last_timestamp[sample.channel] = sample.timestamp_us

        return result

    def _check_finite(self, sample: SensorSample, result: ValidationResult) -> None:
        """Check all values are finite (not NaN or Inf)."""
        for axis, val in zip("xyz", (sample.x, sample.y, sample.z)):
            if not np.isfinite(val):
                result.add_error(f"Non-finite {sample.channel.value} {axis}: {val}")

    def _check_timestamp(self, sample: SensorSample, result: ValidationResult) -> None:
        """Validate per-channel timestamp monotonicity."""
        last = self._last_timestamp.get(sample.channel)
        if last is None:
            return

        dt_us = sample.timestamp_us - last
        if dt_us < 0:
            result.add_error(
                f"Non-monotonic {sample.channel.value} timestamp: dt={dt_us}us"
            )
        elif dt_us == 0:
            result.add_warning(f"Repeated {sample.channel.value} timestamp {sample.timestamp_us}")

    def _check_accelerometer(self, sample: SensorSample, result: ValidationResult) -> None:
        """Warn when the acceleration magnitude is far from gravity."""
        cfg = self._config.sensor
        magnitude = sample.magnitude

        if abs(magnitude - cfg.gravity_nominal) > cfg.gravity_tolerance:
            result.add_warning(
                f"Acceleration magnitude {magnitude:.2f} deviates from "
                f"expected {cfg.gravity_nominal:.2f} +/- {cfg.gravity_tolerance:.2f} m/s^2"
            )

    def _check_magnetometer(self, sample: SensorSample, result: ValidationResult) -> None:
        """Warn when the field strength is outside the geomagnetic range."""
        cfg = self._config.sensor
        magnitude = sample.magnitude

        if magnitude < cfg.min_field_ut:
            result.add_warning(f"Magnetic field too weak: {magnitude:.1f} uT")
        elif magnitude > cfg.max_field_ut:
            result.add_warning(f"Magnetic field too strong: {magnitude:.1f} uT")

    def reset(self) -> None:
        """Reset validator state."""
        self._last_timestamp.clear()


def validate_dt(dt: float, config: Config) -> ValidationResult:
    """Validate a filter time step.

    Args:
        dt: Time step in seconds.
        config: System configuration.

    Returns:
        ValidationResult with status. A dt above ``validation.max_dt_s``
        is a warning; the estimator clamps it.
    """
    result = ValidationResult(is_valid=True)
    max_dt = config.validation.max_dt_s

    if not np.isfinite(dt):
        result.add_error(f"Non-finite dt: {dt}")
    elif dt < 0:
        result.add_error(f"Negative dt: {dt}")
    elif max_dt is not None and dt > max_dt:
        result.add_warning(f"dt too large: {dt*1000:.2f}ms (clamped to {max_dt*1000:.2f}ms)")

    return result

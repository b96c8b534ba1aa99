"""Pytest fixtures for orientation fusion tests."""

from typing import List
import pytest
import numpy as np

from compass_fusion.core.config import Config, FusionMode
from compass_fusion.core.types import Quaternion, SensorSample


@pytest.fixture
def config() -> Config:
    """Create default configuration for tests."""
    return Config()


def _mode_config(mode: FusionMode, weight: float = 0.98, **validation) -> Config:
    """Configuration for one fusion mode, monitoring off."""
    cfg = Config()
    cfg.fusion.mode = mode
    cfg.fusion.weight = weight
    cfg.monitoring.enabled = False
    for key, value in validation.items():
        setattr(cfg.validation, key, value)
    return cfg


@pytest.fixture
def make_config():
    """Factory building a configuration for a given fusion mode."""
    return _mode_config


@pytest.fixture
def flat_accelerometer() -> SensorSample:
    """Device lying flat, screen up."""
    return SensorSample.accelerometer(0.0, 0.0, 9.81, 1_000_000)


@pytest.fixture
def north_field() -> SensorSample:
    """Field pointing north (+y) and downwards."""
    return SensorSample.magnetometer(0.0, 20.0, -40.0, 1_000_000)


@pytest.fixture
def stationary_samples() -> List[SensorSample]:
    """One second of interleaved samples from a flat, still device at 50 Hz.

    Accelerometer noise is Gaussian with a fixed seed.
    """
    rng = np.random.default_rng(42)
    samples = []
    for i in range(50):
        t = 1_000_000 + i * 20_000
        noise = rng.normal(0, 0.01, 3)
        samples.append(SensorSample.accelerometer(noise[0], noise[1], 9.81 + noise[2], t))
        samples.append(SensorSample.gyroscope(0.0, 0.0, 0.0, t + 1))
        samples.append(SensorSample.magnetometer(0.0, 20.0, -40.0, t + 2))
    return samples


@pytest.fixture
def identity_quaternion() -> Quaternion:
    """Create identity quaternion (no rotation)."""
    return Quaternion.identity()


@pytest.fixture
def sample_quaternion() -> Quaternion:
    """Create a sample non-identity quaternion.

    Represents a 30 degree rotation about Z axis.
    """
    angle = np.deg2rad(30)
    return Quaternion(
        w=np.cos(angle / 2),
        x=0.0,
        y=0.0,
        z=np.sin(angle / 2),
    )


@pytest.fixture
def random_quaternions() -> List[Quaternion]:
    """Seeded random unit quaternions away from gimbal lock."""
    rng = np.random.default_rng(7)
    result = []
    while len(result) < 200:
        q = Quaternion.from_array(rng.normal(size=4)).normalized()
        if abs(2 * (q.w * q.x + q.y * q.z)) < 0.999:
            result.append(q)
    return result

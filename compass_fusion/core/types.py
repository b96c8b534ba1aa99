"""Data types for orientation fusion."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Sequence
import numpy as np
from numpy.typing import NDArray

from .errors import DegenerateInputError

# Norm below which a vector has no usable direction.
MIN_VECTOR_NORM = 1e-9


class SensorChannel(str, Enum):
    """Independent notification channels a sample can arrive on."""
    ACCELEROMETER = "accelerometer"
    GYROSCOPE = "gyroscope"
    MAGNETOMETER = "magnetometer"


@dataclass(frozen=True)
class Vector3:
    """Three-component vector for gravity and geomagnetic samples."""
    x: float = 0.0
    y: float = 0.0
    z: float = 0.0

    @classmethod
    def zero(cls) -> "Vector3":
        """Return the zero vector."""
        return cls(0.0, 0.0, 0.0)

    @classmethod
    def from_array(cls, arr: Sequence[float]) -> "Vector3":
        """Create from any 3-element sequence or numpy array."""
        return cls(x=float(arr[0]), y=float(arr[1]), z=float(arr[2]))

    def to_array(self) -> NDArray[np.float64]:
        """Convert to numpy array [x, y, z]."""
        return np.array([self.x, self.y, self.z], dtype=np.float64)

    @property
    def norm(self) -> float:
        """Euclidean length."""
        return float(np.sqrt(self.x**2 + self.y**2 + self.z**2))

    def is_finite(self) -> bool:
        """Check all components are finite."""
        return bool(np.all(np.isfinite([self.x, self.y, self.z])))

    def cross(self, other: "Vector3") -> "Vector3":
        """Cross product self x other."""
        return Vector3(
            x=self.y * other.z - self.z * other.y,
            y=self.z * other.x - self.x * other.z,
            z=self.x * other.y - self.y * other.x,
        )

    def scaled(self, factor: float) -> "Vector3":
        """Return a copy multiplied by a scalar."""
        return Vector3(self.x * factor, self.y * factor, self.z * factor)

    def normalized(self, min_norm: float = MIN_VECTOR_NORM) -> "Vector3":
        """Return unit-length copy.

        Raises:
            DegenerateInputError: If the vector is shorter than min_norm
                or has non-finite components.
        """
        n = self.norm
        if not np.isfinite(n) or n < min_norm:
            raise DegenerateInputError(
                f"Cannot normalize vector ({self.x}, {self.y}, {self.z}): norm={n}"
            )
        return self.scaled(1.0 / n)


@dataclass(frozen=True)
class SensorSample:
    """Single reading from one sensor channel.

    Units:
    - Accelerometer: m/s^2, gravity included
    - Gyroscope: rad/s
    - Magnetometer: uT (microtesla)
    """
    channel: SensorChannel
    x: float
    y: float
    z: float
    timestamp_us: int  # monotonic microseconds

    @property
    def vector(self) -> Vector3:
        """Reading as a Vector3."""
        return Vector3(self.x, self.y, self.z)

    @property
    def magnitude(self) -> float:
        """Magnitude of the reading."""
        return self.vector.norm

    def is_finite(self) -> bool:
        """Check all components are finite."""
        return self.vector.is_finite()

    @classmethod
    def accelerometer(cls, x: float, y: float, z: float, timestamp_us: int) -> "SensorSample":
        return cls(SensorChannel.ACCELEROMETER, x, y, z, timestamp_us)

    @classmethod
    def gyroscope(cls, x: float, y: float, z: float, timestamp_us: int) -> "SensorSample":
        return cls(SensorChannel.GYROSCOPE, x, y, z, timestamp_us)

    @classmethod
    def magnetometer(cls, x: float, y: float, z: float, timestamp_us: int) -> "SensorSample":
        return cls(SensorChannel.MAGNETOMETER, x, y, z, timestamp_us)


@dataclass
class Quaternion:
    """Quaternion representing orientation.

    Convention: [w, x, y, z] where w is the scalar component.
    """
    w: float
    x: float
    y: float
    z: float

    @classmethod
    def identity(cls) -> "Quaternion":
        """Return identity quaternion (no rotation)."""
        return cls(w=1.0, x=0.0, y=0.0, z=0.0)

    @classmethod
    def from_array(cls, arr: NDArray[np.float64]) -> "Quaternion":
        """Create from numpy array [w, x, y, z]."""
        return cls(w=float(arr[0]), x=float(arr[1]),
                   y=float(arr[2]), z=float(arr[3]))

    def to_array(self) -> NDArray[np.float64]:
        """Convert to numpy array [w, x, y, z]."""
        return np.array([self.w, self.x, self.y, self.z], dtype=np.float64)

    @property
    def norm(self) -> float:
        """Euclidean norm of quaternion."""
        return float(np.sqrt(self.w**2 + self.x**2 + self.y**2 + self.z**2))

    def is_valid(self, tolerance: float = 0.01) -> bool:
        """Check if quaternion is unit quaternion within tolerance."""
        return abs(self.norm - 1.0) <= tolerance and self._is_finite()

    def _is_finite(self) -> bool:
        """Check all components are finite."""
        return all(np.isfinite([self.w, self.x, self.y, self.z]))

    def normalized(self) -> "Quaternion":
        """Return normalized copy."""
        n = self.norm
        if n < 1e-10:
            return Quaternion.identity()
        return Quaternion(w=self.w/n, x=self.x/n, y=self.y/n, z=self.z/n)


@dataclass
class ValidationResult:
    """Result of sensor sample validation."""
    is_valid: bool
    errors: list = field(default_factory=list)
    warnings: list = field(default_factory=list)

    def add_error(self, message: str) -> None:
        """Add validation error."""
        self.is_valid = False
        self.errors.append(message)

    def add_warning(self, message: str) -> None:
        """Add validation warning."""
        self.warnings.append(message)


@dataclass
class EstimatorStats:
    """Counters for the estimator update loop."""
    total_samples: int = 0
    driver_updates: int = 0
    rejected_samples: int = 0
    degenerate_updates: int = 0

    @property
    def rejection_rate(self) -> float:
        """Fraction of samples rejected by validation."""
        if self.total_samples == 0:
            return 0.0
        return self.rejected_samples / self.total_samples

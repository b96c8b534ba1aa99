"""3x3 rotation matrix used by the fusion engine.

Elements are stored row-major. The ZXY Euler construction in
:meth:`RotationMatrix.from_euler` is the convention that
:mod:`compass_fusion.core.euler` extracts angles from, so the two modules
must change together.
"""

from typing import Iterable, Optional, Sequence, Tuple, Union
import numpy as np
from numpy.typing import NDArray

from .errors import DegenerateInputError
from .quaternion import QuaternionOps
from .types import MIN_VECTOR_NORM, Quaternion, Vector3

# Smallest |det| accepted by normalize().
MIN_DETERMINANT = 1e-9

AXIS_X: Tuple[float, float, float] = (1.0, 0.0, 0.0)
AXIS_Y: Tuple[float, float, float] = (0.0, 1.0, 0.0)
AXIS_Z: Tuple[float, float, float] = (0.0, 0.0, 1.0)

AxisLike = Union[Vector3, Sequence[float]]


def _axis_tuple(axis: AxisLike) -> Tuple[float, ...]:
    if isinstance(axis, Vector3):
        return (axis.x, axis.y, axis.z)
    return tuple(float(a) for a in axis)


def _elemental_rotation(axis: Tuple[float, ...], angle_rad: float) -> Optional[NDArray[np.float64]]:
    """Rotation about one canonical axis, or None for any other axis."""
    s = np.sin(angle_rad)
    c = np.cos(angle_rad)

    if axis == AXIS_X:
        return np.array([[1.0, 0.0, 0.0],
                         [0.0, c, -s],
                         [0.0, s, c]])
    if axis == AXIS_Y:
        return np.array([[c, 0.0, s],
                         [0.0, 1.0, 0.0],
                         [-s, 0.0, c]])
    if axis == AXIS_Z:
        return np.array([[c, -s, 0.0],
                         [s, c, 0.0],
                         [0.0, 0.0, 1.0]])
    return None


class RotationMatrix:
    """Orthonormal 3x3 matrix, identity by default.

    Mutating operations (multiply, rotate_*, normalize) change the matrix in
    place and return self so they can be chained.
    """

    def __init__(self, elements: Optional[Iterable[float]] = None):
        """Create a matrix.

        Args:
            elements: 9 values row-major, or a 3x3 array. None gives identity.
        """
        if elements is None:
            self._m = np.eye(3, dtype=np.float64)
        else:
            m = np.asarray(elements, dtype=np.float64)
            if m.size != 9:
                raise ValueError(f"Rotation matrix needs 9 elements, got {m.size}")
            self._m = m.reshape(3, 3).copy()

    @classmethod
    def identity(cls) -> "RotationMatrix":
        """Return identity matrix."""
        return cls()

    @classmethod
    def from_vectors(
        cls,
        gravity: Vector3,
        magnetic: Vector3,
        min_norm: float = MIN_VECTOR_NORM,
    ) -> "RotationMatrix":
        """Build the device-to-world matrix from gravity and geomagnetic field.

        Rows are (H, M, A): H = magnetic x gravity points east, A is
        gravity normalized, M = A x H points towards magnetic north.

        Args:
            gravity: Accelerometer reading including gravity.
            magnetic: Magnetometer reading.
            min_norm: Norm below which a vector is treated as degenerate.

        Raises:
            DegenerateInputError: If either vector is near zero length or
                they are parallel (free fall, magnetic pole, bad sensor).
        """
        h = magnetic.cross(gravity)
        try:
            h = h.normalized(min_norm)
            a = gravity.normalized(min_norm)
        except DegenerateInputError as e:
            raise DegenerateInputError(
                f"Gravity {gravity} and magnetic field {magnetic} do not span a frame"
            ) from e
        m = a.cross(h)

        return cls([h.x, h.y, h.z,
                    m.x, m.y, m.z,
                    a.x, a.y, a.z])

    @classmethod
    def from_euler(
        cls,
        alpha: float,
        beta: float,
        gamma: float,
        min_determinant: float = MIN_DETERMINANT,
    ) -> "RotationMatrix":
        """Build a ZXY rotation from Euler angles in degrees.

        Args:
            alpha: Rotation about Z (yaw).
            beta: Rotation about X (pitch).
            gamma: Rotation about Y (roll).
            min_determinant: Passed to normalize().
        """
        z = np.deg2rad(alpha)
        x = np.deg2rad(beta)
        y = np.deg2rad(gamma)

        cX, cY, cZ = np.cos(x), np.cos(y), np.cos(z)
        sX, sY, sZ = np.sin(x), np.sin(y), np.sin(z)

        matrix = cls([
            cZ * cY - sZ * sX * sY, -cX * sZ, cY * sZ * sX + cZ * sY,
            cY * sZ + cZ * sX * sY, cZ * cX, sZ * sY - cZ * cY * sX,
            -cX * sY, sX, cX * cY,
        ])
        return matrix.normalize(min_determinant)

    @classmethod
    def from_quaternion(cls, q: Quaternion) -> "RotationMatrix":
        """Build a rotation matrix from a quaternion."""
        sqw = q.w * q.w
        sqx = q.x * q.x
        sqy = q.y * q.y
        sqz = q.z * q.z

        return cls([
            sqw + sqx - sqy - sqz,
            2 * (q.x * q.y - q.w * q.z),
            2 * (q.x * q.z + q.w * q.y),

            2 * (q.x * q.y + q.w * q.z),
            sqw - sqx + sqy - sqz,
            2 * (q.y * q.z - q.w * q.x),

            2 * (q.x * q.z - q.w * q.y),
            2 * (q.y * q.z + q.w * q.x),
            sqw - sqx - sqy + sqz,
        ])

    @property
    def elements(self) -> NDArray[np.float64]:
        """Flat row-major copy of the 9 elements."""
        return self._m.flatten()

    @property
    def determinant(self) -> float:
        """Determinant of the matrix."""
        return float(np.linalg.det(self._m))

    def to_array(self) -> NDArray[np.float64]:
        """Return a 3x3 copy."""
        return self._m.copy()

    def to_quaternion(self) -> Quaternion:
        """Convert to a unit quaternion."""
        return QuaternionOps.from_rotation_matrix(self._m)

    def copy(self) -> "RotationMatrix":
        return RotationMatrix(self._m)

    def is_orthonormal(self, tolerance: float = 1e-6) -> bool:
        """Check R * R^T == I within tolerance."""
        return bool(np.allclose(self._m @ self._m.T, np.eye(3), atol=tolerance))

    def multiply(self, other: "RotationMatrix") -> "RotationMatrix":
        """Compose in place: self = self . other."""
        self._m = self._m @ other._m
        return self

    def normalize(self, min_determinant: float = MIN_DETERMINANT) -> "RotationMatrix":
        """Scale every element by the cube root of the determinant.

        Afterwards the determinant is 1, so repeated calls do not amplify
        drift. This bounds scale drift after chained multiplications; it is
        not a Gram-Schmidt orthogonalization.

        Raises:
            DegenerateInputError: If the determinant is not finite or its
                magnitude is below min_determinant.
        """
        det = self.determinant
        if not np.isfinite(det) or abs(det) < min_determinant:
            raise DegenerateInputError(f"Cannot normalize matrix with determinant {det}")
        self._m = self._m / np.cbrt(det)
        return self

    def rotate_about_axis(
        self,
        axis: AxisLike,
        angle_rad: float,
        min_determinant: float = MIN_DETERMINANT,
    ) -> "RotationMatrix":
        """Rotate about one of the canonical X, Y, Z unit axes.

        Any other axis leaves the matrix unchanged; this is not a general
        axis-angle rotation.

        Args:
            axis: (1, 0, 0), (0, 1, 0) or (0, 0, 1).
            angle_rad: Rotation angle in radians.
            min_determinant: Passed to normalize().
        """
        transform = _elemental_rotation(_axis_tuple(axis), angle_rad)
        if transform is None:
            return self

        self.multiply(RotationMatrix(transform))
        return self.normalize(min_determinant)

    def rotate_x(self, angle_rad: float) -> "RotationMatrix":
        return self.rotate_about_axis(AXIS_X, angle_rad)

    def rotate_y(self, angle_rad: float) -> "RotationMatrix":
        return self.rotate_about_axis(AXIS_Y, angle_rad)

    def rotate_z(self, angle_rad: float) -> "RotationMatrix":
        return self.rotate_about_axis(AXIS_Z, angle_rad)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, RotationMatrix):
            return NotImplemented
        return bool(np.array_equal(self._m, other._m))

    def __repr__(self) -> str:
        rows = ", ".join(
            "[" + ", ".join(f"{v:.6f}" for v in row) + "]" for row in self._m
        )
        return f"RotationMatrix([{rows}])"

"""Quaternion operations and utilities."""

import numpy as np
from numpy.typing import NDArray

from .types import Quaternion, Vector3


class QuaternionOps:
    """Static methods for quaternion operations."""

    @staticmethod
    def from_rotation_matrix(R: NDArray[np.float64]) -> Quaternion:
        """Convert rotation matrix to quaternion.

        Uses Shepperd's method: the largest of the trace and the diagonal
        terms picks the component computed from a square root, the others
        follow from off-diagonal sums and differences.

        Args:
            R: 3x3 rotation matrix.

        Returns:
            Unit quaternion representing the same rotation, with w >= 0.
        """
        trace = np.trace(R)

        if trace > 0:
            s = 0.5 / np.sqrt(trace + 1.0)
            w = 0.25 / s
            x = (R[2, 1] - R[1, 2]) * s
            y = (R[0, 2] - R[2, 0]) * s
            z = (R[1, 0] - R[0, 1]) * s
        elif R[0, 0] > R[1, 1] and R[0, 0] > R[2, 2]:
            s = 2.0 * np.sqrt(1.0 + R[0, 0] - R[1, 1] - R[2, 2])
            w = (R[2, 1] - R[1, 2]) / s
            x = 0.25 * s
            y = (R[0, 1] + R[1, 0]) / s
            z = (R[0, 2] + R[2, 0]) / s
        elif R[1, 1] > R[2, 2]:
            s = 2.0 * np.sqrt(1.0 + R[1, 1] - R[0, 0] - R[2, 2])
            w = (R[0, 2] - R[2, 0]) / s
            x = (R[0, 1] + R[1, 0]) / s
            y = 0.25 * s
            z = (R[1, 2] + R[2, 1]) / s
        else:
            s = 2.0 * np.sqrt(1.0 + R[2, 2] - R[0, 0] - R[1, 1])
            w = (R[1, 0] - R[0, 1]) / s
            x = (R[0, 2] + R[2, 0]) / s
            y = (R[1, 2] + R[2, 1]) / s
            z = 0.25 * s

        if w < 0:
            w, x, y, z = -w, -x, -y, -z

        q = Quaternion(w=float(w), x=float(x), y=float(y), z=float(z))
        return q.normalized()

    @staticmethod
    def from_axis_angle(axis: Vector3, angle_rad: float) -> Quaternion:
        """Build the quaternion rotating by angle_rad about axis.

        Args:
            axis: Rotation axis, any non-zero length.
            angle_rad: Rotation angle in radians.

        Returns:
            Unit quaternion.
        """
        u = axis.normalized()
        half = 0.5 * angle_rad
        s = np.sin(half)
        return Quaternion(w=float(np.cos(half)), x=u.x * s, y=u.y * s, z=u.z * s)

"""Euler angles (alpha, beta, gamma) and their conversions.

Angles follow the ZXY convention of :meth:`RotationMatrix.from_euler`:
alpha is yaw about Z, beta is pitch about X, gamma is roll about Y, all in
degrees. Conversions from a matrix or a quaternion branch on sign patterns;
each branch is named so it can be tested on its own.
"""

import math
from dataclasses import dataclass
from enum import Enum
from typing import Sequence, Tuple

from .rotation import AXIS_X, AXIS_Y, AXIS_Z, MIN_DETERMINANT, AxisLike, RotationMatrix
from .types import Quaternion

# Tolerance on w*x + y*z when detecting a quaternion at gimbal lock.
GIMBAL_EPSILON = 1e-6

RadianTriple = Tuple[float, float, float]


class MatrixBranch(str, Enum):
    """Sign pattern of a rotation matrix that selects the extraction formulas."""
    COS_BETA_POSITIVE = "cos_beta_positive"
    COS_BETA_NEGATIVE = "cos_beta_negative"
    COS_GAMMA_ZERO_POSITIVE = "cos_gamma_zero_positive"
    COS_GAMMA_ZERO_NEGATIVE = "cos_gamma_zero_negative"
    GIMBAL_LOCK = "gimbal_lock"


class QuaternionBranch(str, Enum):
    """Quaternion case that selects the extraction formulas."""
    NORTH_POLE = "north_pole"
    SOUTH_POLE = "south_pole"
    GX_POSITIVE = "gx_positive"
    GX_NEGATIVE = "gx_negative"


def classify_matrix(R: Sequence[float]) -> MatrixBranch:
    """Pick the extraction branch from the flat row-major elements."""
    if R[8] > 0:
        return MatrixBranch.COS_BETA_POSITIVE
    if R[8] < 0:
        return MatrixBranch.COS_BETA_NEGATIVE
    if R[6] > 0:
        return MatrixBranch.COS_GAMMA_ZERO_POSITIVE
    if R[6] < 0:
        return MatrixBranch.COS_GAMMA_ZERO_NEGATIVE
    return MatrixBranch.GIMBAL_LOCK


def _asin(value: float) -> float:
    return math.asin(max(-1.0, min(1.0, value)))


def _fold_beta(beta: float) -> float:
    # [-pi, -pi/2) U (pi/2, pi]
    return beta - math.pi if beta >= 0 else beta + math.pi


def matrix_to_euler_radians(R: Sequence[float]) -> RadianTriple:
    """Extract (alpha, beta, gamma) in radians from a rotation matrix.

    alpha is left in [-pi, pi]; callers wrap it.

    Args:
        R: Flat row-major matrix elements.
    """
    branch = classify_matrix(R)

    if branch is MatrixBranch.COS_BETA_POSITIVE:
        alpha = math.atan2(-R[1], R[4])
        beta = _asin(R[7])
        gamma = math.atan2(-R[6], R[8])
    elif branch is MatrixBranch.COS_BETA_NEGATIVE:
        alpha = math.atan2(R[1], -R[4])
        beta = _fold_beta(-_asin(R[7]))
        gamma = math.atan2(R[6], -R[8])
    elif branch is MatrixBranch.COS_GAMMA_ZERO_POSITIVE:
        alpha = math.atan2(-R[1], R[4])
        beta = _asin(R[7])
        gamma = -math.pi / 2
    elif branch is MatrixBranch.COS_GAMMA_ZERO_NEGATIVE:
        alpha = math.atan2(R[1], -R[4])
        beta = _fold_beta(-_asin(R[7]))
        gamma = -math.pi / 2
    else:
        alpha = math.atan2(R[3], R[0])
        beta = math.pi / 2 if R[7] > 0 else -math.pi / 2
        gamma = 0.0

    return alpha, beta, gamma


def classify_quaternion(q: Quaternion) -> QuaternionBranch:
    """Pick the extraction branch for a quaternion of any length."""
    unit_length = q.w * q.w + q.x * q.x + q.y * q.y + q.z * q.z
    wxyz = q.w * q.x + q.y * q.z

    if wxyz > (0.5 - GIMBAL_EPSILON) * unit_length:
        return QuaternionBranch.NORTH_POLE
    if wxyz < (-0.5 + GIMBAL_EPSILON) * unit_length:
        return QuaternionBranch.SOUTH_POLE

    gX = q.w * q.w - q.x * q.x - q.y * q.y + q.z * q.z
    if gX > 0:
        return QuaternionBranch.GX_POSITIVE
    return QuaternionBranch.GX_NEGATIVE


def quaternion_to_euler_radians(q: Quaternion) -> RadianTriple:
    """Extract (alpha, beta, gamma) in radians from a quaternion.

    The quaternion need not be normalized; its squared length is used as
    the correction divisor.
    """
    branch = classify_quaternion(q)

    if branch is QuaternionBranch.NORTH_POLE:
        return 2 * math.atan2(q.y, q.w), math.pi / 2, 0.0
    if branch is QuaternionBranch.SOUTH_POLE:
        return -2 * math.atan2(q.y, q.w), -math.pi / 2, 0.0

    sqw, sqx, sqy, sqz = q.w * q.w, q.x * q.x, q.y * q.y, q.z * q.z
    unit_length = sqw + sqx + sqy + sqz
    wxyz = q.w * q.x + q.y * q.z

    aX = sqw - sqx + sqy - sqz
    aY = 2 * (q.w * q.z - q.x * q.y)
    gX = sqw - sqx - sqy + sqz
    gY = 2 * (q.w * q.y - q.x * q.z)
    sin_beta = max(-1.0, min(1.0, 2 * wxyz / unit_length))

    if branch is QuaternionBranch.GX_POSITIVE:
        alpha = math.atan2(aY, aX)
        beta = math.asin(sin_beta)
        gamma = math.atan2(gY, gX)
    else:
        alpha = math.atan2(-aY, -aX)
        beta = -math.asin(sin_beta)
        beta += math.pi if beta < 0 else -math.pi
        gamma = math.atan2(-gY, -gX)

    return alpha, beta, gamma


def wrap_degrees(angle: float) -> float:
    """Wrap an angle in degrees into [0, 360)."""
    wrapped = angle % 360.0
    # -1e-15 % 360 rounds to 360.0
    return 0.0 if wrapped >= 360.0 else wrapped


def _to_degrees(radians: RadianTriple) -> "EulerAngles":
    alpha, beta, gamma = radians
    if alpha < 0:
        alpha += 2 * math.pi
    return EulerAngles(
        alpha=wrap_degrees(math.degrees(alpha)),
        beta=math.degrees(beta),
        gamma=math.degrees(gamma),
    )


@dataclass(frozen=True)
class EulerAngles:
    """Euler angles in degrees, ZXY convention.

    The conversions produce alpha in [0, 360). Angles built directly (for
    instance by a fusion filter) are stored as given.
    """
    alpha: float = 0.0  # yaw about Z
    beta: float = 0.0   # pitch about X
    gamma: float = 0.0  # roll about Y

    @classmethod
    def from_rotation_matrix(cls, matrix: RotationMatrix) -> "EulerAngles":
        """Extract Euler angles from a ZXY rotation matrix."""
        return _to_degrees(matrix_to_euler_radians(matrix.elements))

    @classmethod
    def from_quaternion(cls, q: Quaternion) -> "EulerAngles":
        """Extract Euler angles directly from a quaternion."""
        return _to_degrees(quaternion_to_euler_radians(q))

    @property
    def alpha_rad(self) -> float:
        return math.radians(self.alpha)

    @property
    def beta_rad(self) -> float:
        return math.radians(self.beta)

    @property
    def gamma_rad(self) -> float:
        return math.radians(self.gamma)

    def is_finite(self) -> bool:
        return all(math.isfinite(v) for v in (self.alpha, self.beta, self.gamma))

    def to_rotation_matrix(self, min_determinant: float = MIN_DETERMINANT) -> RotationMatrix:
        """Build the equivalent ZXY rotation matrix."""
        return RotationMatrix.from_euler(self.alpha, self.beta, self.gamma, min_determinant)

    def to_quaternion(self) -> Quaternion:
        """Convert through the rotation matrix."""
        return self.to_rotation_matrix().to_quaternion()

    def rotate_about_axis(self, axis: AxisLike, angle_rad: float) -> "EulerAngles":
        """Rotate through the matrix representation and convert back.

        Returns a new EulerAngles; a non-canonical axis returns the
        re-extracted (wrapped) angles unchanged in rotation.
        """
        matrix = self.to_rotation_matrix().rotate_about_axis(axis, angle_rad)
        return EulerAngles.from_rotation_matrix(matrix)

    def rotate_x(self, angle_rad: float) -> "EulerAngles":
        return self.rotate_about_axis(AXIS_X, angle_rad)

    def rotate_y(self, angle_rad: float) -> "EulerAngles":
        return self.rotate_about_axis(AXIS_Y, angle_rad)

    def rotate_z(self, angle_rad: float) -> "EulerAngles":
        return self.rotate_about_axis(AXIS_Z, angle_rad)

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {"alpha": self.alpha, "beta": self.beta, "gamma": self.gamma}

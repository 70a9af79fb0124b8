"""Rotation representations and conversions.

This module provides the quaternion and rotation-matrix operations needed by
strapdown integration:
- Quaternion algebra (Hamilton product, conjugate, normalization)
- Exponential/logarithm maps between rotation vectors and unit quaternions
- Conversions between unit quaternions and rotation matrices (SO(3))
- Spherical linear interpolation (slerp) between two attitudes

Conventions:
- Quaternions: [qw, qx, qy, qz] where qw is the scalar part
- A quaternion/matrix describes the body-to-navigation rotation, so that
  v_nav = R @ v_body
- Rotation vectors: axis * angle, angle in radians
"""

import numpy as np
from numpy.typing import NDArray

# Rotation-vector norms below this are treated as "no rotation".
SMALL_ANGLE_EPS = 1e-12


def quat_normalize(q: NDArray[np.float64]) -> NDArray[np.float64]:
    """Scale a quaternion to unit length.

    Args:
        q: Quaternion [qw, qx, qy, qz].

    Returns:
        Unit quaternion with the same direction as q.

    Raises:
        ValueError: If q is not a 4-element array or has zero norm.
    """
    q = np.asarray(q, dtype=np.float64)
    if q.shape != (4,):
        raise ValueError(f"Expected 4-element quaternion, got shape {q.shape}")

    norm = np.linalg.norm(q)
    if norm == 0.0:
        raise ValueError("Cannot normalize a zero quaternion")

    return q / norm


def quat_multiply(
    q1: NDArray[np.float64],
    q2: NDArray[np.float64],
) -> NDArray[np.float64]:
    """Hamilton product q1 ⊗ q2.

    With body-to-navigation quaternions, ``quat_multiply(q_nb, dq)`` applies
    an increment dq expressed in the body frame.

    Args:
        q1: Left quaternion [qw, qx, qy, qz].
        q2: Right quaternion [qw, qx, qy, qz].

    Returns:
        Product quaternion [qw, qx, qy, qz] (not renormalized).

    Example:
        >>> qz90 = np.array([np.cos(np.pi / 4), 0.0, 0.0, np.sin(np.pi / 4)])
        >>> q = quat_multiply(qz90, qz90)  # 180° about z
        >>> print(np.round(q, 6))  # [0, 0, 0, 1]
    """
    w1, x1, y1, z1 = q1
    w2, x2, y2, z2 = q2

    return np.array(
        [
            w1 * w2 - x1 * x2 - y1 * y2 - z1 * z2,
            w1 * x2 + x1 * w2 + y1 * z2 - z1 * y2,
            w1 * y2 - x1 * z2 + y1 * w2 + z1 * x2,
            w1 * z2 + x1 * y2 - y1 * x2 + z1 * w2,
        ],
        dtype=np.float64,
    )


def quat_conjugate(q: NDArray[np.float64]) -> NDArray[np.float64]:
    """Return the conjugate [qw, -qx, -qy, -qz] (inverse for unit quaternions)."""
    return np.array([q[0], -q[1], -q[2], -q[3]], dtype=np.float64)


def quat_from_rotvec(
    rotvec: NDArray[np.float64],
    eps: float = SMALL_ANGLE_EPS,
) -> NDArray[np.float64]:
    """Exponential map from a rotation vector to a unit quaternion.

    The rotation vector θ is split into magnitude m = ||θ|| and unit axis
    d = θ / m, and the quaternion is built as:

        q = [cos(m/2), sin(m/2) * d]

    A rotation vector whose norm is at or below ``eps`` has no well-defined
    axis; the identity quaternion is returned instead of dividing by zero.

    Args:
        rotvec: Rotation vector (axis * angle), shape (3,). Units: rad.
        eps: Magnitude threshold for the zero-rotation guard.

    Returns:
        Unit quaternion [qw, qx, qy, qz].

    Raises:
        ValueError: If rotvec is not a 3-element array.

    Example:
        >>> q = quat_from_rotvec(np.array([0.0, 0.0, np.pi / 2]))
        >>> print(np.round(q, 4))  # [0.7071, 0, 0, 0.7071]
        >>> quat_from_rotvec(np.zeros(3))  # identity, no NaN
        array([1., 0., 0., 0.])
    """
    rotvec = np.asarray(rotvec, dtype=np.float64)
    if rotvec.shape != (3,):
        raise ValueError(f"rotvec must have shape (3,), got {rotvec.shape}")

    magnitude = np.linalg.norm(rotvec)
    if magnitude <= eps:
        return np.array([1.0, 0.0, 0.0, 0.0], dtype=np.float64)

    direction = rotvec / magnitude
    half = 0.5 * magnitude

    return np.concatenate(([np.cos(half)], np.sin(half) * direction))


def rotvec_from_quat(q: NDArray[np.float64]) -> NDArray[np.float64]:
    """Logarithm map from a unit quaternion to a rotation vector.

    The returned angle lies in [0, π]; q and -q give the same result.
    """
    q = quat_normalize(q)
    if q[0] < 0.0:
        q = -q

    vec_norm = np.linalg.norm(q[1:])
    if vec_norm <= SMALL_ANGLE_EPS:
        return np.zeros(3, dtype=np.float64)

    angle = 2.0 * np.arctan2(vec_norm, q[0])
    return angle * q[1:] / vec_norm


def quat_to_rotation_matrix(q: NDArray[np.float64]) -> NDArray[np.float64]:
    """Convert quaternion to rotation matrix.

    The quaternion is normalized first, so the result is orthonormal even if
    q has drifted slightly from unit length.

    Args:
        q: Quaternion as numpy array [qw, qx, qy, qz].

    Returns:
        3x3 rotation matrix R such that v_nav = R @ v_body.

    Raises:
        ValueError: If q is not a 4-element array.

    Example:
        >>> q = np.array([1.0, 0.0, 0.0, 0.0])  # Identity rotation
        >>> R = quat_to_rotation_matrix(q)
        >>> print(f"Rotation matrix:\\n{R}")  # Should be identity
    """
    qw, qx, qy, qz = quat_normalize(q)

    R = np.array(
        [
            [
                1.0 - 2.0 * (qy * qy + qz * qz),
                2.0 * (qx * qy - qw * qz),
                2.0 * (qx * qz + qw * qy),
            ],
            [
                2.0 * (qx * qy + qw * qz),
                1.0 - 2.0 * (qx * qx + qz * qz),
                2.0 * (qy * qz - qw * qx),
            ],
            [
                2.0 * (qx * qz - qw * qy),
                2.0 * (qy * qz + qw * qx),
                1.0 - 2.0 * (qx * qx + qy * qy),
            ],
        ],
        dtype=np.float64,
    )

    return R


def rotation_matrix_to_quat(R: NDArray[np.float64]) -> NDArray[np.float64]:
    """Convert rotation matrix to quaternion.

    Extracts a unit quaternion from a 3x3 rotation matrix using
    Shepperd's method for numerical stability.

    Args:
        R: 3x3 rotation matrix (orthogonal matrix in SO(3)).

    Returns:
        Unit quaternion as numpy array [qw, qx, qy, qz].

    Raises:
        ValueError: If R is not a 3x3 matrix.

    Example:
        >>> R = np.eye(3)  # Identity rotation
        >>> q = rotation_matrix_to_quat(R)
        >>> print(f"Quaternion: {q}")  # Should be [1, 0, 0, 0]
    """
    R = np.asarray(R, dtype=np.float64)
    if R.shape != (3, 3):
        raise ValueError(f"Expected 3x3 matrix, got shape {R.shape}")

    # Shepperd's method: choose largest diagonal element for stability
    trace = np.trace(R)

    if trace > 0:
        s = 0.5 / np.sqrt(trace + 1.0)
        qw = 0.25 / s
        qx = (R[2, 1] - R[1, 2]) * s
        qy = (R[0, 2] - R[2, 0]) * s
        qz = (R[1, 0] - R[0, 1]) * s
    elif R[0, 0] > R[1, 1] and R[0, 0] > R[2, 2]:
        s = 2.0 * np.sqrt(1.0 + R[0, 0] - R[1, 1] - R[2, 2])
        qw = (R[2, 1] - R[1, 2]) / s
        qx = 0.25 * s
        qy = (R[0, 1] + R[1, 0]) / s
        qz = (R[0, 2] + R[2, 0]) / s
    elif R[1, 1] > R[2, 2]:
        s = 2.0 * np.sqrt(1.0 + R[1, 1] - R[0, 0] - R[2, 2])
        qw = (R[0, 2] - R[2, 0]) / s
        qx = (R[0, 1] + R[1, 0]) / s
        qy = 0.25 * s
        qz = (R[1, 2] + R[2, 1]) / s
    else:
        s = 2.0 * np.sqrt(1.0 + R[2, 2] - R[0, 0] - R[1, 1])
        qw = (R[1, 0] - R[0, 1]) / s
        qx = (R[0, 2] + R[2, 0]) / s
        qy = (R[1, 2] + R[2, 1]) / s
        qz = 0.25 * s

    return quat_normalize(np.array([qw, qx, qy, qz], dtype=np.float64))


def quat_slerp(
    q0: NDArray[np.float64],
    q1: NDArray[np.float64],
    fraction: float,
) -> NDArray[np.float64]:
    """Spherical linear interpolation between two attitudes.

    Interpolates along the shorter arc: if the quaternions lie in opposite
    hemispheres, q1 is negated first. For nearly identical attitudes the
    normalized linear blend is used, which avoids dividing by sin(~0).

    Args:
        q0: Start quaternion [qw, qx, qy, qz] (fraction = 0).
        q1: End quaternion [qw, qx, qy, qz] (fraction = 1).
        fraction: Interpolation parameter, normally in [0, 1].

    Returns:
        Interpolated unit quaternion [qw, qx, qy, qz].

    Example:
        >>> q0 = np.array([1.0, 0.0, 0.0, 0.0])
        >>> q1 = quat_from_rotvec(np.array([0.0, 0.0, 1.0]))
        >>> q = quat_slerp(q0, q1, 0.5)  # 0.5 rad about z
    """
    q0 = quat_normalize(q0)
    q1 = quat_normalize(q1)

    cos_half = float(np.dot(q0, q1))
    if cos_half < 0.0:
        q1 = -q1
        cos_half = -cos_half

    if cos_half > 1.0 - 1e-9:
        return quat_normalize((1.0 - fraction) * q0 + fraction * q1)

    half = np.arccos(min(cos_half, 1.0))
    sin_half = np.sin(half)
    w0 = np.sin((1.0 - fraction) * half) / sin_half
    w1 = np.sin(fraction * half) / sin_half

    return quat_normalize(w0 * q0 + w1 * q1)


def quat_to_xyzw(q: NDArray[np.float64]) -> NDArray[np.float64]:
    """Reorder a scalar-first quaternion into [qx, qy, qz, qw] (message order)."""
    return np.array([q[1], q[2], q[3], q[0]], dtype=np.float64)


def is_rotation_matrix(R: NDArray[np.float64], atol: float = 1e-6) -> bool:
    """Check that R is in SO(3): R^T R = I and det(R) = +1 within atol."""
    R = np.asarray(R, dtype=np.float64)
    if R.shape != (3, 3):
        return False
    if not np.all(np.isfinite(R)):
        return False

    orthonormal = np.allclose(R.T @ R, np.eye(3), atol=atol)
    proper = bool(np.isclose(np.linalg.det(R), 1.0, atol=atol))

    return bool(orthonormal and proper)

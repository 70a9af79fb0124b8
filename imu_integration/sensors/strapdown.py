"""
Strapdown integration: attitude, velocity, and position propagation.

This module implements the per-cycle strapdown equations used by the
inertial odometry engine. Given two consecutive IMU samples (previous p and
current c, with dt = t_c - t_p > 0):

    Attitude (mid-value rule):
        Δθ = 0.5 * dt * (ω̂_c + ω̂_p)
        dq = [cos(|Δθ|/2), sin(|Δθ|/2) * Δθ/|Δθ|]
        q_new = q_old ⊗ dq                     (increment applied in body frame)

    Velocity (mid-value rule):
        Δv = 0.5 * dt * (a(f_c, R_c) + a(f_p, R_p))
        with a(f, R) = R (f - b_a) - g_N

    Position (constant acceleration over the step):
        p += dt * v + 0.5 * dt * Δv
        v += Δv

The first-order (Euler) variant uses only the previous sample:
    Δθ = dt * ω̂_p,   Δv = dt * a(f_p, R_p)

Frame Conventions:
    - B: Body frame (IMU/sensor frame)
    - N: Navigation frame
    - Quaternion q / matrix R represent the rotation from B to N: v_N = R @ v_B

Quaternion Convention:
    - Scalar-first: q = [qw, qx, qy, qz]
    - Identity quaternion: [1, 0, 0, 0] (body aligned with navigation frame)

Failure handling:
    Delta computations return None instead of raising when the sample pair is
    unusable (indices out of range or not strictly increasing in time). The
    caller skips the cycle.
"""

from typing import Callable, Dict, Optional, Sequence, Tuple

import numpy as np

from imu_integration.coords.rotations import (
    quat_from_rotvec,
    quat_multiply,
    quat_normalize,
    quat_to_rotation_matrix,
    rotation_matrix_to_quat,
)
from imu_integration.sensors.imu_models import (
    unbiased_angular_velocity,
    unbiased_specific_force,
)
from imu_integration.sensors.types import (
    CalibrationConstants,
    InertialSample,
    IntegrationScheme,
    NavigationState,
)


def select_samples(
    buffer: Sequence[InertialSample],
    index_curr: int,
    index_prev: int,
) -> Optional[Tuple[InertialSample, InertialSample, float]]:
    """
    Pick the (current, previous) sample pair for one integration step.

    Args:
        buffer: Inertial samples in timestamp order.
        index_curr: Index of the current (newer) sample.
        index_prev: Index of the previous (older) sample.

    Returns:
        Tuple (curr, prev, dt), or None if the indices are out of range,
        not ordered (index_curr <= index_prev), or the timestamps are not
        strictly increasing (dt <= 0).
    """
    if index_prev < 0 or index_curr <= index_prev or index_curr >= len(buffer):
        return None

    curr = buffer[index_curr]
    prev = buffer[index_prev]

    dt = curr.timestamp - prev.timestamp
    if not dt > 0.0:
        return None

    return curr, prev, dt


# ============================================================================
# Attitude
# ============================================================================

def _angular_delta_mid_value(
    curr: InertialSample,
    prev: InertialSample,
    dt: float,
    calibration: CalibrationConstants,
) -> np.ndarray:
    w_curr = unbiased_angular_velocity(curr.angular_velocity, calibration)
    w_prev = unbiased_angular_velocity(prev.angular_velocity, calibration)

    return 0.5 * dt * (w_curr + w_prev)


def _angular_delta_euler(
    curr: InertialSample,
    prev: InertialSample,
    dt: float,
    calibration: CalibrationConstants,
) -> np.ndarray:
    w_prev = unbiased_angular_velocity(prev.angular_velocity, calibration)

    return dt * w_prev


_ANGULAR_RULES: Dict[IntegrationScheme, Callable[..., np.ndarray]] = {
    IntegrationScheme.MID_VALUE: _angular_delta_mid_value,
    IntegrationScheme.EULER: _angular_delta_euler,
}


def angular_delta(
    buffer: Sequence[InertialSample],
    index_curr: int,
    index_prev: int,
    calibration: CalibrationConstants,
    scheme: IntegrationScheme = IntegrationScheme.MID_VALUE,
) -> Optional[np.ndarray]:
    """
    Rotation vector accumulated between two IMU samples.

    Mid-value (trapezoidal) rule:
        Δθ = 0.5 * dt * (ω̂_c + ω̂_p)

    Euler rule:
        Δθ = dt * ω̂_p

    where ω̂ is the bias-corrected angular velocity.

    Args:
        buffer: Inertial samples in timestamp order.
        index_curr: Index of the current sample.
        index_prev: Index of the previous sample.
        calibration: Session calibration (gyro bias).
        scheme: Integration rule.

    Returns:
        Rotation vector Δθ in body frame, shape (3,), units rad; or None if
        the sample pair is unusable (see select_samples).

    Example:
        >>> buf = [
        ...     InertialSample(0.0, np.array([0.0, 0.0, 1.0]), np.zeros(3)),
        ...     InertialSample(0.1, np.array([0.0, 0.0, 1.0]), np.zeros(3)),
        ... ]
        >>> angular_delta(buf, 1, 0, CalibrationConstants())  # [0, 0, 0.1]
    """
    selected = select_samples(buffer, index_curr, index_prev)
    if selected is None:
        return None

    curr, prev, dt = selected

    return _ANGULAR_RULES[IntegrationScheme(scheme)](curr, prev, dt, calibration)


def update_orientation(
    delta_theta: np.ndarray,
    state: NavigationState,
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Apply an incremental rotation to the navigation state.

    The increment is built with the exponential map and composed on the
    right, because Δθ is expressed in the body frame at the time of the
    update:

        q_new = normalize(q_old ⊗ exp(Δθ))

    A zero (or numerically zero) Δθ yields the identity increment.

    Args:
        delta_theta: Rotation vector in body frame, shape (3,). Units: rad.
        state: Navigation state; ``state.rotation`` is updated in place.

    Returns:
        Tuple (R_curr, R_prev): the newly committed rotation matrix and the
        rotation matrix before the update. Both are needed by the velocity
        integrator.
    """
    R_prev = state.rotation.copy()

    dq = quat_from_rotvec(delta_theta)
    q = quat_multiply(rotation_matrix_to_quat(R_prev), dq)

    state.rotation = quat_to_rotation_matrix(quat_normalize(q))

    return state.rotation.copy(), R_prev


# ============================================================================
# Velocity / position
# ============================================================================

def _velocity_delta_mid_value(
    curr: InertialSample,
    prev: InertialSample,
    dt: float,
    R_curr: np.ndarray,
    R_prev: np.ndarray,
    calibration: CalibrationConstants,
) -> np.ndarray:
    a_curr = unbiased_specific_force(curr.specific_force, R_curr, calibration)
    a_prev = unbiased_specific_force(prev.specific_force, R_prev, calibration)

    return 0.5 * dt * (a_curr + a_prev)


def _velocity_delta_euler(
    curr: InertialSample,
    prev: InertialSample,
    dt: float,
    R_curr: np.ndarray,
    R_prev: np.ndarray,
    calibration: CalibrationConstants,
) -> np.ndarray:
    a_prev = unbiased_specific_force(prev.specific_force, R_prev, calibration)

    return dt * a_prev


_VELOCITY_RULES: Dict[IntegrationScheme, Callable[..., np.ndarray]] = {
    IntegrationScheme.MID_VALUE: _velocity_delta_mid_value,
    IntegrationScheme.EULER: _velocity_delta_euler,
}


def velocity_delta(
    buffer: Sequence[InertialSample],
    index_curr: int,
    index_prev: int,
    R_curr: np.ndarray,
    R_prev: np.ndarray,
    calibration: CalibrationConstants,
    scheme: IntegrationScheme = IntegrationScheme.MID_VALUE,
) -> Optional[Tuple[float, np.ndarray]]:
    """
    Velocity change between two IMU samples.

    Mid-value rule:
        Δv = 0.5 * dt * (R_c (f_c - b_a) - g + R_p (f_p - b_a) - g)

    Euler rule:
        Δv = dt * (R_p (f_p - b_a) - g)

    Args:
        buffer: Inertial samples in timestamp order.
        index_curr: Index of the current sample.
        index_prev: Index of the previous sample.
        R_curr: Body-to-navigation rotation at the current sample.
        R_prev: Body-to-navigation rotation at the previous sample.
        calibration: Session calibration (accel bias, gravity).
        scheme: Integration rule.

    Returns:
        Tuple (dt, Δv) with dt in seconds and Δv in navigation frame
        (shape (3,), m/s); or None if the sample pair is unusable.
    """
    selected = select_samples(buffer, index_curr, index_prev)
    if selected is None:
        return None

    curr, prev, dt = selected
    rule = _VELOCITY_RULES[IntegrationScheme(scheme)]

    return dt, rule(curr, prev, dt, R_curr, R_prev, calibration)


def update_position(
    dt: float,
    delta_v: np.ndarray,
    state: NavigationState,
) -> None:
    """
    Advance position and velocity by one step.

        p += dt * v + 0.5 * dt * Δv
        v += Δv

    Position is advanced with the velocity from *before* this step, so the
    two updates must happen in this order.
    """
    state.position = state.position + dt * state.velocity + 0.5 * dt * delta_v
    state.velocity = state.velocity + delta_v


def integrate_step(
    buffer: Sequence[InertialSample],
    index_curr: int,
    index_prev: int,
    state: NavigationState,
    calibration: CalibrationConstants,
    scheme: IntegrationScheme = IntegrationScheme.MID_VALUE,
) -> bool:
    """
    One complete strapdown update between two buffered samples.

    Order: attitude → velocity → position. The sample pair is validated
    before anything is written, so a failed step leaves ``state`` untouched.

    Returns:
        True if the state was advanced, False if the step was skipped.

    Example:
        >>> state = NavigationState(initialized=True)
        >>> buf = [
        ...     InertialSample(0.0, np.zeros(3), np.array([0.0, 0.0, -9.81])),
        ...     InertialSample(0.1, np.zeros(3), np.array([0.0, 0.0, -9.81])),
        ... ]
        >>> integrate_step(buf, 1, 0, state, CalibrationConstants())
        True
    """
    if select_samples(buffer, index_curr, index_prev) is None:
        return False

    delta_theta = angular_delta(buffer, index_curr, index_prev, calibration, scheme)
    R_curr, R_prev = update_orientation(delta_theta, state)

    dt, delta_v = velocity_delta(
        buffer, index_curr, index_prev, R_curr, R_prev, calibration, scheme
    )
    update_position(dt, delta_v, state)

    return True

"""
Generate synthetic IMU measurements from a ground truth trajectory.

Accelerometers measure specific force, not acceleration. The compensation
used by the integrator is

    a_N = R (f_b - b_a) - g_N

so the ideal forward model is its inverse:

    f_b = Rᵀ (a_N + g_N)

For a level body at rest with the default g_N = [0, 0, -9.81] this gives
f_b = [0, 0, -9.81], which compensates back to zero.

Gyro readings are body-frame angular velocity. When only an attitude time
series is available they are recovered from consecutive relative rotations:

    ω_k ≈ log(q_{k-1}* ⊗ q_k) / dt

which is exact for a constant-rate rotation.
"""

from typing import List, Optional, Sequence, Tuple

import numpy as np

from imu_integration.coords.rotations import (
    quat_conjugate,
    quat_multiply,
    quat_to_rotation_matrix,
    rotvec_from_quat,
)
from imu_integration.sensors.types import AuxiliaryPoseSample, InertialSample
from imu_integration.sim.trajectories import SyntheticTrajectory

DEFAULT_GRAVITY = np.array([0.0, 0.0, -9.81])


def compute_specific_force_body(
    accel_nav: np.ndarray,
    quat_b_to_n: np.ndarray,
    gravity: Optional[np.ndarray] = None,
) -> np.ndarray:
    """
    Specific force in body frame from true acceleration in navigation frame.

        f_b = Rᵀ (a_N + g_N)

    Args:
        accel_nav: True acceleration, shape (N, 3) or (3,). Units: m/s².
        quat_b_to_n: Body-to-navigation quaternions [qw, qx, qy, qz],
                     shape (N, 4) or (4,).
        gravity: Gravity vector as configured for the engine.
                 Default: [0, 0, -9.81].

    Returns:
        Specific force, shape (N, 3) or (3,). Units: m/s².

    Example:
        >>> compute_specific_force_body(np.zeros(3), np.array([1.0, 0, 0, 0]))
        array([ 0.  ,  0.  , -9.81])
    """
    g_n = DEFAULT_GRAVITY if gravity is None else np.asarray(gravity, dtype=np.float64)

    accel_nav = np.asarray(accel_nav, dtype=np.float64)
    quat_b_to_n = np.asarray(quat_b_to_n, dtype=np.float64)

    single_sample = accel_nav.ndim == 1
    if single_sample:
        accel_nav = accel_nav.reshape(1, -1)
        quat_b_to_n = quat_b_to_n.reshape(1, -1)

    if accel_nav.shape[0] != quat_b_to_n.shape[0]:
        raise ValueError(
            f"accel_nav and quat_b_to_n must have the same length, got "
            f"{accel_nav.shape[0]} and {quat_b_to_n.shape[0]}"
        )

    f_b = np.zeros((accel_nav.shape[0], 3))
    for i in range(accel_nav.shape[0]):
        R = quat_to_rotation_matrix(quat_b_to_n[i])
        f_b[i] = R.T @ (accel_nav[i] + g_n)

    if single_sample:
        return f_b[0]
    return f_b


def compute_gyro_body(quat_series: np.ndarray, dt: float) -> np.ndarray:
    """
    Body-frame angular velocity from an attitude time series.

    Args:
        quat_series: Body-to-navigation quaternions, shape (N, 4).
        dt: Sample interval in seconds.

    Returns:
        Angular velocity, shape (N, 3), rad/s. Sample k holds the rate over
        [t_{k-1}, t_k]; the first sample copies the second.
    """
    if dt <= 0:
        raise ValueError(f"dt must be positive, got {dt}")

    quat_series = np.asarray(quat_series, dtype=np.float64)
    n = quat_series.shape[0]
    omega = np.zeros((n, 3))

    for i in range(1, n):
        dq = quat_multiply(quat_conjugate(quat_series[i - 1]), quat_series[i])
        omega[i] = rotvec_from_quat(dq) / dt

    if n > 1:
        omega[0] = omega[1]

    return omega


def corrupt_imu(
    gyro: np.ndarray,
    accel: np.ndarray,
    gyro_bias: Optional[Sequence[float]] = None,
    accel_bias: Optional[Sequence[float]] = None,
    gyro_noise_std: float = 0.0,
    accel_noise_std: float = 0.0,
    seed: Optional[int] = None,
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Add constant biases and white noise to ideal measurements.

        ω̃ = ω + b_g + n_g,   f̃ = f + b_a + n_a

    Returns:
        Tuple (gyro_meas, accel_meas), same shapes as the inputs.
    """
    rng = np.random.default_rng(seed)

    gyro_meas = np.array(gyro, dtype=np.float64)
    accel_meas = np.array(accel, dtype=np.float64)

    if gyro_bias is not None:
        gyro_meas = gyro_meas + np.asarray(gyro_bias, dtype=np.float64)
    if accel_bias is not None:
        accel_meas = accel_meas + np.asarray(accel_bias, dtype=np.float64)

    if gyro_noise_std > 0:
        gyro_meas = gyro_meas + rng.normal(0.0, gyro_noise_std, gyro_meas.shape)
    if accel_noise_std > 0:
        accel_meas = accel_meas + rng.normal(0.0, accel_noise_std, accel_meas.shape)

    return gyro_meas, accel_meas


def build_inertial_samples(
    t: np.ndarray, gyro: np.ndarray, accel: np.ndarray
) -> List[InertialSample]:
    """Wrap measurement arrays as InertialSample packets."""
    if not (len(t) == len(gyro) == len(accel)):
        raise ValueError(
            f"t, gyro, accel must have equal lengths, got "
            f"{len(t)}, {len(gyro)}, {len(accel)}"
        )
    return [InertialSample(t[i], gyro[i], accel[i]) for i in range(len(t))]


def build_pose_samples(
    t: np.ndarray,
    quat_b_to_n: np.ndarray,
    pos_nav: np.ndarray,
    vel_nav: np.ndarray,
    stride: int = 1,
    time_offset: float = 0.0,
) -> List[AuxiliaryPoseSample]:
    """
    Wrap ground truth arrays as AuxiliaryPoseSample packets.

    Args:
        stride: Keep every ``stride``-th sample (reference stream rate
                = IMU rate / stride).
        time_offset: Added to every timestamp, to desynchronize the streams.
    """
    if stride < 1:
        raise ValueError(f"stride must be >= 1, got {stride}")

    return [
        AuxiliaryPoseSample.from_quaternion(
            t[i] + time_offset, quat_b_to_n[i], pos_nav[i], vel_nav[i]
        )
        for i in range(0, len(t), stride)
    ]


def generate_imu_from_trajectory(
    trajectory: SyntheticTrajectory,
    gravity: Optional[np.ndarray] = None,
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Ideal IMU measurements for a synthetic trajectory.

    Uses the closed-form acceleration and body rate carried by the
    trajectory, so no numerical differentiation error is introduced.

    Returns:
        Tuple (accel_body, gyro_body), each shape (N, 3).
    """
    accel_body = compute_specific_force_body(
        trajectory.acceleration, trajectory.quaternion, gravity
    )
    gyro_body = np.array(trajectory.angular_velocity, dtype=np.float64)

    return accel_body, gyro_body

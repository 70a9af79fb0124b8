"""
Synthetic data for exercising the inertial odometry engine.

Modules:
    trajectories: Closed-form reference trajectories (stationary, constant
                  rotation, figure-8)
    imu_from_trajectory: IMU forward model (specific force, body rate),
                         bias/noise corruption, sample packet builders

The forward model is the inverse of the integrator's compensation
a_N = R (f_b - b_a) - g_N:
    f_b = Rᵀ (a_N + g_N)
"""

from imu_integration.sim.imu_from_trajectory import (
    build_inertial_samples,
    build_pose_samples,
    compute_gyro_body,
    compute_specific_force_body,
    corrupt_imu,
    generate_imu_from_trajectory,
)
from imu_integration.sim.trajectories import (
    TRAJECTORIES,
    SyntheticTrajectory,
    constant_rotation,
    figure_eight,
    stationary,
)

__all__ = [
    "SyntheticTrajectory",
    "TRAJECTORIES",
    "stationary",
    "constant_rotation",
    "figure_eight",
    "compute_specific_force_body",
    "compute_gyro_body",
    "corrupt_imu",
    "generate_imu_from_trajectory",
    "build_inertial_samples",
    "build_pose_samples",
]

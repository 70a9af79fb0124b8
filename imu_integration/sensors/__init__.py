"""
Inertial sensor models and strapdown integration.

Modules:
    types: Sample packets, calibration constants, navigation state
    imu_models: Bias and gravity compensation of raw IMU readings
    strapdown: Attitude and velocity/position integrators (mid-value, Euler)
    synchronization: Bracket interpolation of the auxiliary pose stream

Primary data structures (from types module):
    InertialSample: One IMU reading (timestamp, angular velocity, specific force)
    AuxiliaryPoseSample: Reference pose + velocity used for initialization
    CalibrationConstants: Gravity and constant sensor biases
    NavigationState: Rotation, position, velocity, init time
    IntegrationScheme: MID_VALUE or EULER

Compensation functions (from imu_models module):
    unbiased_angular_velocity: ω = ω̃ - b_g
    unbiased_specific_force: a = R (f̃ - b_a) - g

Strapdown functions (from strapdown module):
    angular_delta: Rotation vector between two samples
    update_orientation: q ← normalize(q ⊗ exp(Δθ))
    velocity_delta: Velocity change between two samples
    update_position: p ← p + dt v + 0.5 dt Δv, v ← v + Δv
    integrate_step: Complete attitude/velocity/position update

Example:
    >>> import numpy as np
    >>> from imu_integration.sensors import (
    ...     CalibrationConstants, InertialSample, NavigationState, integrate_step
    ... )
    >>> state = NavigationState(initialized=True)
    >>> buf = [
    ...     InertialSample(0.0, np.zeros(3), np.array([0.0, 0.0, -9.81])),
    ...     InertialSample(0.1, np.zeros(3), np.array([0.0, 0.0, -9.81])),
    ... ]
    >>> integrate_step(buf, 1, 0, state, CalibrationConstants())
    True
    >>> state.velocity  # stationary: unchanged
    array([0., 0., 0.])
"""

from imu_integration.sensors.types import (
    AuxiliaryPoseSample,
    CalibrationConstants,
    InertialSample,
    IntegrationScheme,
    NavigationState,
)

from imu_integration.sensors.imu_models import (
    unbiased_angular_velocity,
    unbiased_specific_force,
)

from imu_integration.sensors.strapdown import (
    angular_delta,
    integrate_step,
    select_samples,
    update_orientation,
    update_position,
    velocity_delta,
)

from imu_integration.sensors.synchronization import (
    PoseSynchronizer,
    interpolate_pose,
    sync_pose_sample,
)

__all__ = [
    # Data types
    "AuxiliaryPoseSample",
    "CalibrationConstants",
    "InertialSample",
    "IntegrationScheme",
    "NavigationState",
    # Compensation
    "unbiased_angular_velocity",
    "unbiased_specific_force",
    # Strapdown integration
    "angular_delta",
    "integrate_step",
    "select_samples",
    "update_orientation",
    "update_position",
    "velocity_delta",
    # Synchronization
    "PoseSynchronizer",
    "interpolate_pose",
    "sync_pose_sample",
]

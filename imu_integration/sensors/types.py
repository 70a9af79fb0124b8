"""
Data structures for strapdown inertial odometry.

This module defines the shared data types used across the integration engine:
    - Inertial samples (timestamp, angular velocity, specific force)
    - Auxiliary pose samples (reference pose + velocity, used for initialization)
    - Calibration constants (gravity, gyro bias, accel bias)
    - The navigation state (rotation, position, velocity, init time)
    - The integration scheme selector (mid-value or Euler)

Time Base Convention:
    All timestamps are float seconds (monotonic).

Frame Conventions:
    - B: Body frame (IMU/sensor frame)
    - N: Navigation frame (fixed external frame)
    - Rotations map body vectors into the navigation frame: v_N = R @ v_B

Design notes:
    - Sample packets are frozen (immutable) dataclasses.
    - NavigationState is mutable; the engine owns it and updates it in place.
"""

import warnings
from dataclasses import dataclass, field
from enum import Enum

import numpy as np

from imu_integration.coords.rotations import (
    is_rotation_matrix,
    quat_to_rotation_matrix,
    rotation_matrix_to_quat,
)


def _as_vec3(value, name: str) -> np.ndarray:
    """Coerce value to a float64 (3,) array or raise ValueError."""
    arr = np.asarray(value, dtype=np.float64)
    if arr.shape != (3,):
        raise ValueError(f"{name} must have shape (3,), got {arr.shape}")
    if not np.all(np.isfinite(arr)):
        raise ValueError(f"{name} must be finite, got {arr}")
    return arr


class IntegrationScheme(str, Enum):
    """
    Numerical rule used to turn two samples into rotation/velocity increments.

    Members:
        MID_VALUE: Trapezoidal rule, averages the two endpoint samples.
        EULER: First-order rule, uses only the previous sample.

    The scheme is fixed for the lifetime of an engine; the two are never mixed.
    """

    MID_VALUE = "mid_value"
    EULER = "euler"


@dataclass(frozen=True, eq=False)
class InertialSample:
    """
    A single IMU measurement.

    Attributes:
        timestamp: Sample time in seconds.
        angular_velocity: Raw gyro reading in body frame B, shape (3,). Units: rad/s.
        specific_force: Raw accelerometer reading in body frame B, shape (3,).
                        Units: m/s². A level body at rest reads the configured
                        gravity vector, e.g. [0, 0, -9.81] by default.

    Example:
        >>> sample = InertialSample(
        ...     timestamp=0.01,
        ...     angular_velocity=np.zeros(3),
        ...     specific_force=np.array([0.0, 0.0, -9.81]),
        ... )
    """

    timestamp: float
    angular_velocity: np.ndarray
    specific_force: np.ndarray

    def __post_init__(self) -> None:
        """Validate shapes and store float64 copies."""
        if not np.isfinite(self.timestamp):
            raise ValueError(
                f"InertialSample.timestamp must be finite, got {self.timestamp}"
            )
        object.__setattr__(self, "timestamp", float(self.timestamp))
        object.__setattr__(
            self,
            "angular_velocity",
            _as_vec3(self.angular_velocity, "InertialSample.angular_velocity"),
        )
        object.__setattr__(
            self,
            "specific_force",
            _as_vec3(self.specific_force, "InertialSample.specific_force"),
        )


@dataclass(frozen=True, eq=False)
class AuxiliaryPoseSample:
    """
    A reference pose measurement (e.g. ground truth odometry).

    Only used to seed the navigation state; after initialization it is kept
    purely for logging the reference trajectory.

    Attributes:
        timestamp: Sample time in seconds.
        rotation: Body-to-navigation rotation matrix, shape (3, 3).
        position: Position in navigation frame N, shape (3,). Units: m.
        velocity: Velocity in navigation frame N, shape (3,). Units: m/s.
    """

    timestamp: float
    rotation: np.ndarray
    position: np.ndarray
    velocity: np.ndarray

    def __post_init__(self) -> None:
        """Validate shapes and store float64 copies."""
        if not np.isfinite(self.timestamp):
            raise ValueError(
                f"AuxiliaryPoseSample.timestamp must be finite, got {self.timestamp}"
            )
        rotation = np.asarray(self.rotation, dtype=np.float64)
        if rotation.shape != (3, 3):
            raise ValueError(
                f"AuxiliaryPoseSample.rotation must have shape (3, 3), "
                f"got {rotation.shape}"
            )
        object.__setattr__(self, "timestamp", float(self.timestamp))
        object.__setattr__(self, "rotation", rotation)
        object.__setattr__(
            self, "position", _as_vec3(self.position, "AuxiliaryPoseSample.position")
        )
        object.__setattr__(
            self, "velocity", _as_vec3(self.velocity, "AuxiliaryPoseSample.velocity")
        )

    @classmethod
    def from_quaternion(
        cls,
        timestamp: float,
        quaternion: np.ndarray,
        position: np.ndarray,
        velocity: np.ndarray,
    ) -> "AuxiliaryPoseSample":
        """Build a sample from a scalar-first quaternion [qw, qx, qy, qz]."""
        return cls(
            timestamp=timestamp,
            rotation=quat_to_rotation_matrix(np.asarray(quaternion, dtype=np.float64)),
            position=position,
            velocity=velocity,
        )

    @property
    def quaternion(self) -> np.ndarray:
        """Attitude as a unit quaternion [qw, qx, qy, qz]."""
        return rotation_matrix_to_quat(self.rotation)

    def pose_matrix(self) -> np.ndarray:
        """Homogeneous 4x4 transform [R | p; 0 0 0 1]."""
        T = np.eye(4)
        T[:3, :3] = self.rotation
        T[:3, 3] = self.position
        return T


@dataclass(frozen=True, eq=False)
class CalibrationConstants:
    """
    Fixed sensor calibration for one session.

    Attributes:
        gravity: Gravity vector in navigation frame N, shape (3,). Units: m/s².
                 Default: [0, 0, -9.81]. Subtracted from the rotated
                 accelerometer reading, so it equals the reading of a
                 stationary level sensor.
        angular_velocity_bias: Constant gyro bias in body frame B, shape (3,).
                               Units: rad/s. Default: zeros.
        specific_force_bias: Constant accelerometer bias in body frame B,
                             shape (3,). Units: m/s². Default: zeros.
    """

    gravity: np.ndarray = field(
        default_factory=lambda: np.array([0.0, 0.0, -9.81])
    )
    angular_velocity_bias: np.ndarray = field(default_factory=lambda: np.zeros(3))
    specific_force_bias: np.ndarray = field(default_factory=lambda: np.zeros(3))

    def __post_init__(self) -> None:
        """Validate shapes and store read-only float64 copies."""
        for name in ("gravity", "angular_velocity_bias", "specific_force_bias"):
            arr = _as_vec3(getattr(self, name), f"CalibrationConstants.{name}").copy()
            arr.setflags(write=False)
            object.__setattr__(self, name, arr)


@dataclass
class NavigationState:
    """
    Running navigation solution: rotation, position, velocity.

    Constructed uninitialized (identity rotation, zero position and velocity).
    ``initialize`` seeds it exactly once from a synchronized reference pose;
    afterwards the integrators update it in place every cycle.

    Attributes:
        rotation: Body-to-navigation rotation matrix, shape (3, 3).
        position: Position in navigation frame N, shape (3,). Units: m.
        velocity: Velocity in navigation frame N, shape (3,). Units: m/s.
        init_time: Timestamp of the seeding reference sample (seconds).
        initialized: Whether the state has been seeded.

    Notes:
        - This is a MUTABLE dataclass; publishers receive snapshots instead.
        - The rotation is kept orthonormal by the attitude integrator, which
          renormalizes its quaternion before writing the matrix back.
    """

    rotation: np.ndarray = field(default_factory=lambda: np.eye(3))
    position: np.ndarray = field(default_factory=lambda: np.zeros(3))
    velocity: np.ndarray = field(default_factory=lambda: np.zeros(3))
    init_time: float = 0.0
    initialized: bool = False

    def __post_init__(self) -> None:
        """Validate shape and basic consistency of navigation state."""
        self.rotation = np.array(self.rotation, dtype=np.float64)
        if self.rotation.shape != (3, 3):
            raise ValueError(
                f"NavigationState.rotation must have shape (3, 3), "
                f"got {self.rotation.shape}"
            )
        self.position = _as_vec3(self.position, "NavigationState.position").copy()
        self.velocity = _as_vec3(self.velocity, "NavigationState.velocity").copy()

        if not is_rotation_matrix(self.rotation, atol=1e-3):
            warnings.warn(
                "NavigationState initialized with a rotation that is not in SO(3). "
                "Consider orthonormalizing.",
                UserWarning,
            )

    def initialize(self, sample: AuxiliaryPoseSample) -> None:
        """
        Seed the state from a synchronized reference pose.

        Copies rotation, position and velocity, fixes ``init_time`` to the
        sample timestamp and sets ``initialized``. Allowed once per session.

        Raises:
            RuntimeError: If the state is already initialized.
        """
        if self.initialized:
            raise RuntimeError("NavigationState is already initialized")

        self.rotation = quat_to_rotation_matrix(rotation_matrix_to_quat(sample.rotation))
        self.position = sample.position.copy()
        self.velocity = sample.velocity.copy()
        self.init_time = sample.timestamp
        self.initialized = True

    @property
    def quaternion(self) -> np.ndarray:
        """Attitude as a unit quaternion [qw, qx, qy, qz]."""
        return rotation_matrix_to_quat(self.rotation)

    def pose_matrix(self) -> np.ndarray:
        """Homogeneous 4x4 transform [R | p; 0 0 0 1]."""
        T = np.eye(4)
        T[:3, :3] = self.rotation
        T[:3, 3] = self.position
        return T

    def copy(self) -> "NavigationState":
        """Deep copy, used for read-only snapshots."""
        return NavigationState(
            rotation=self.rotation.copy(),
            position=self.position.copy(),
            velocity=self.velocity.copy(),
            init_time=self.init_time,
            initialized=self.initialized,
        )

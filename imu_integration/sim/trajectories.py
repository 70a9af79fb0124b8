"""
Analytic reference trajectories for exercising the integrator.

Each generator returns a SyntheticTrajectory sampled on a uniform time grid,
with closed-form position, velocity, acceleration, attitude and body-frame
angular velocity. Because the derivatives are exact, any drift seen when
integrating the derived IMU stream comes from the integration scheme itself.

Trajectories:
    stationary: Body at rest, level.
    constant_rotation: Body at rest, spinning about a fixed body axis.
    figure_eight: Planar Lissajous figure-8 with the body heading along the
                  velocity (yaw only).
"""

from dataclasses import dataclass
from typing import Optional, Sequence

import numpy as np

from imu_integration.coords.rotations import quat_from_rotvec


@dataclass(frozen=True, eq=False)
class SyntheticTrajectory:
    """
    Ground truth sampled at the IMU rate.

    Attributes:
        t: Timestamps, shape (N,). Units: s.
        position: Position in navigation frame, shape (N, 3). Units: m.
        velocity: Velocity in navigation frame, shape (N, 3). Units: m/s.
        acceleration: Acceleration in navigation frame, shape (N, 3). Units: m/s².
        quaternion: Body-to-navigation attitude [qw, qx, qy, qz], shape (N, 4).
        angular_velocity: Body-frame angular velocity, shape (N, 3). Units: rad/s.
    """

    t: np.ndarray
    position: np.ndarray
    velocity: np.ndarray
    acceleration: np.ndarray
    quaternion: np.ndarray
    angular_velocity: np.ndarray

    def __len__(self) -> int:
        return len(self.t)

    @property
    def dt(self) -> float:
        return float(self.t[1] - self.t[0]) if len(self.t) > 1 else 0.0


def _time_grid(duration: float, rate_hz: float, t0: float) -> np.ndarray:
    if duration <= 0:
        raise ValueError(f"duration must be positive, got {duration}")
    if rate_hz <= 0:
        raise ValueError(f"rate_hz must be positive, got {rate_hz}")

    n = int(round(duration * rate_hz)) + 1
    return t0 + np.arange(n) / rate_hz


def stationary(
    duration: float = 10.0,
    rate_hz: float = 100.0,
    position: Optional[Sequence[float]] = None,
    t0: float = 0.0,
) -> SyntheticTrajectory:
    """Body at rest, level, at a fixed position."""
    t = _time_grid(duration, rate_hz, t0)
    n = len(t)
    p0 = np.zeros(3) if position is None else np.asarray(position, dtype=np.float64)

    return SyntheticTrajectory(
        t=t,
        position=np.tile(p0, (n, 1)),
        velocity=np.zeros((n, 3)),
        acceleration=np.zeros((n, 3)),
        quaternion=np.tile([1.0, 0.0, 0.0, 0.0], (n, 1)),
        angular_velocity=np.zeros((n, 3)),
    )


def constant_rotation(
    duration: float = 10.0,
    rate_hz: float = 100.0,
    angular_velocity: Sequence[float] = (0.0, 0.0, 0.5),
    t0: float = 0.0,
) -> SyntheticTrajectory:
    """
    Body at rest at the origin, rotating at a constant body rate.

    q(t) = exp((t - t0) ω), so the attitude has a closed form at every sample.
    """
    t = _time_grid(duration, rate_hz, t0)
    n = len(t)
    omega = np.asarray(angular_velocity, dtype=np.float64)

    quats = np.array([quat_from_rotvec((ti - t0) * omega) for ti in t])

    return SyntheticTrajectory(
        t=t,
        position=np.zeros((n, 3)),
        velocity=np.zeros((n, 3)),
        acceleration=np.zeros((n, 3)),
        quaternion=quats,
        angular_velocity=np.tile(omega, (n, 1)),
    )


def figure_eight(
    duration: float = 20.0,
    rate_hz: float = 100.0,
    amplitude_x: float = 10.0,
    amplitude_y: float = 5.0,
    period: float = 20.0,
    height: float = 0.0,
    t0: float = 0.0,
) -> SyntheticTrajectory:
    """
    Planar figure-8 (Lissajous 1:2) with the body yawed along the velocity.

        x = A sin(Ωτ),  y = B sin(2Ωτ),  z = height,  τ = t - t0

    Heading ψ = atan2(ẏ, ẋ); body rate ω_z = (ẋÿ - ẏẍ) / (ẋ² + ẏ²).
    Speed never vanishes (when ẋ = 0, |ẏ| = 2BΩ), so ψ is well defined.
    """
    if period <= 0:
        raise ValueError(f"period must be positive, got {period}")
    if amplitude_y <= 0:
        raise ValueError(f"amplitude_y must be positive, got {amplitude_y}")

    t = _time_grid(duration, rate_hz, t0)
    tau = t - t0
    w = 2.0 * np.pi / period

    s1, c1 = np.sin(w * tau), np.cos(w * tau)
    s2, c2 = np.sin(2 * w * tau), np.cos(2 * w * tau)

    pos = np.column_stack([amplitude_x * s1, amplitude_y * s2, np.full_like(t, height)])
    vel = np.column_stack(
        [amplitude_x * w * c1, 2 * amplitude_y * w * c2, np.zeros_like(t)]
    )
    acc = np.column_stack(
        [-amplitude_x * w**2 * s1, -4 * amplitude_y * w**2 * s2, np.zeros_like(t)]
    )

    yaw = np.unwrap(np.arctan2(vel[:, 1], vel[:, 0]))
    speed_sq = vel[:, 0] ** 2 + vel[:, 1] ** 2
    yaw_rate = (vel[:, 0] * acc[:, 1] - vel[:, 1] * acc[:, 0]) / speed_sq

    quats = np.column_stack(
        [np.cos(yaw / 2), np.zeros_like(t), np.zeros_like(t), np.sin(yaw / 2)]
    )
    gyro = np.column_stack([np.zeros_like(t), np.zeros_like(t), yaw_rate])

    return SyntheticTrajectory(
        t=t,
        position=pos,
        velocity=vel,
        acceleration=acc,
        quaternion=quats,
        angular_velocity=gyro,
    )


TRAJECTORIES = {
    "stationary": stationary,
    "constant_rotation": constant_rotation,
    "figure_eight": figure_eight,
}

"""
Unit tests for imu_integration/sim (trajectories and IMU forward model).
"""

import unittest

import numpy as np
import pytest
from scipy.spatial.transform import Rotation

from imu_integration.coords.rotations import quat_from_rotvec
from imu_integration.sensors.imu_models import unbiased_specific_force
from imu_integration.sensors.types import CalibrationConstants
from imu_integration.sim import (
    TRAJECTORIES,
    build_inertial_samples,
    build_pose_samples,
    compute_gyro_body,
    compute_specific_force_body,
    constant_rotation,
    corrupt_imu,
    figure_eight,
    generate_imu_from_trajectory,
    stationary,
)


class TestTrajectories(unittest.TestCase):

    def test_time_grid(self) -> None:
        traj = stationary(duration=2.0, rate_hz=50.0, t0=1.0)

        assert len(traj) == 101
        assert traj.t[0] == 1.0
        assert traj.t[-1] == pytest.approx(3.0)
        assert traj.dt == pytest.approx(0.02)

    def test_invalid_grid(self) -> None:
        with pytest.raises(ValueError, match="duration"):
            stationary(duration=0.0)
        with pytest.raises(ValueError, match="rate_hz"):
            constant_rotation(rate_hz=-1.0)

    def test_constant_rotation_attitude(self) -> None:
        w = np.array([0.0, 0.3, 0.0])
        traj = constant_rotation(duration=1.0, rate_hz=10.0, angular_velocity=w)

        np.testing.assert_array_almost_equal(traj.quaternion[-1], quat_from_rotvec(w))
        np.testing.assert_array_equal(traj.angular_velocity[3], w)

    def test_figure_eight_derivatives(self) -> None:
        traj = figure_eight(duration=20.0, rate_hz=200.0)
        dt = traj.dt

        vel_fd = np.gradient(traj.position, dt, axis=0)
        acc_fd = np.gradient(traj.velocity, dt, axis=0)

        np.testing.assert_allclose(vel_fd[1:-1], traj.velocity[1:-1], atol=1e-3)
        np.testing.assert_allclose(acc_fd[1:-1], traj.acceleration[1:-1], atol=1e-3)

    def test_figure_eight_heading_follows_velocity(self) -> None:
        traj = figure_eight(duration=20.0, rate_hz=100.0)

        forward = Rotation.from_quat(traj.quaternion[:, [1, 2, 3, 0]]).apply([1.0, 0.0, 0.0])
        direction = traj.velocity / np.linalg.norm(traj.velocity, axis=1, keepdims=True)

        np.testing.assert_allclose(forward, direction, atol=1e-9)

    def test_figure_eight_yaw_rate(self) -> None:
        traj = figure_eight(duration=20.0, rate_hz=200.0)

        gyro_fd = compute_gyro_body(traj.quaternion, traj.dt)
        # Backward difference approximates the rate half a step earlier.
        mid_rate = 0.5 * (traj.angular_velocity[1:] + traj.angular_velocity[:-1])

        np.testing.assert_allclose(gyro_fd[1:], mid_rate, atol=1e-4)

    def test_registry(self) -> None:
        assert set(TRAJECTORIES) == {"stationary", "constant_rotation", "figure_eight"}


class TestSpecificForce(unittest.TestCase):

    def test_stationary_level_reads_gravity(self) -> None:
        f = compute_specific_force_body(np.zeros(3), np.array([1.0, 0.0, 0.0, 0.0]))
        np.testing.assert_array_almost_equal(f, [0.0, 0.0, -9.81])

    def test_inverse_of_compensation(self) -> None:
        rng = np.random.default_rng(3)
        calib = CalibrationConstants()

        for _ in range(10):
            q = quat_from_rotvec(rng.normal(0.0, 1.0, 3))
            a = rng.normal(0.0, 2.0, 3)
            f = compute_specific_force_body(a, q)
            R = Rotation.from_quat([q[1], q[2], q[3], q[0]]).as_matrix()

            np.testing.assert_array_almost_equal(unbiased_specific_force(f, R, calib), a)

    def test_batch_shapes(self) -> None:
        accel = np.zeros((5, 3))
        quats = np.tile([1.0, 0.0, 0.0, 0.0], (5, 1))

        assert compute_specific_force_body(accel, quats).shape == (5, 3)
        with pytest.raises(ValueError, match="same length"):
            compute_specific_force_body(accel, quats[:4])

    def test_generate_stationary(self) -> None:
        accel, gyro = generate_imu_from_trajectory(stationary(duration=1.0, rate_hz=10.0))

        np.testing.assert_array_almost_equal(accel, np.tile([0.0, 0.0, -9.81], (11, 1)))
        np.testing.assert_array_equal(gyro, np.zeros((11, 3)))


class TestGyro(unittest.TestCase):

    def test_constant_yaw_rate(self) -> None:
        traj = constant_rotation(duration=1.0, rate_hz=100.0, angular_velocity=(0.0, 0.0, 0.8))

        gyro = compute_gyro_body(traj.quaternion, traj.dt)

        np.testing.assert_allclose(gyro, np.tile([0.0, 0.0, 0.8], (len(traj), 1)), atol=1e-9)

    def test_invalid_dt(self) -> None:
        with pytest.raises(ValueError, match="dt"):
            compute_gyro_body(np.tile([1.0, 0.0, 0.0, 0.0], (3, 1)), 0.0)


class TestCorruptAndPackets(unittest.TestCase):

    def test_bias_only(self) -> None:
        gyro, accel = corrupt_imu(
            np.zeros((4, 3)), np.zeros((4, 3)), gyro_bias=[0.1, 0.0, 0.0], accel_bias=[0.0, 0.2, 0.0]
        )

        np.testing.assert_array_equal(gyro, np.tile([0.1, 0.0, 0.0], (4, 1)))
        np.testing.assert_array_equal(accel, np.tile([0.0, 0.2, 0.0], (4, 1)))

    def test_noise_is_seeded(self) -> None:
        g1, a1 = corrupt_imu(np.zeros((100, 3)), np.zeros((100, 3)), 0, 0, 0.01, 0.1, seed=5)
        g2, a2 = corrupt_imu(np.zeros((100, 3)), np.zeros((100, 3)), 0, 0, 0.01, 0.1, seed=5)

        np.testing.assert_array_equal(g1, g2)
        np.testing.assert_array_equal(a1, a2)
        assert 0.05 < np.std(a1) < 0.15

    def test_inputs_untouched(self) -> None:
        gyro = np.zeros((2, 3))
        corrupt_imu(gyro, np.zeros((2, 3)), gyro_bias=[1.0, 1.0, 1.0])

        np.testing.assert_array_equal(gyro, np.zeros((2, 3)))

    def test_inertial_packets(self) -> None:
        t = np.array([0.0, 0.1])
        samples = build_inertial_samples(t, np.zeros((2, 3)), np.ones((2, 3)))

        assert [s.timestamp for s in samples] == [0.0, 0.1]
        with pytest.raises(ValueError, match="equal lengths"):
            build_inertial_samples(t, np.zeros((3, 3)), np.ones((2, 3)))

    def test_pose_packets_stride_and_offset(self) -> None:
        traj = stationary(duration=1.0, rate_hz=10.0, position=[1.0, 2.0, 3.0])

        poses = build_pose_samples(
            traj.t, traj.quaternion, traj.position, traj.velocity, stride=5, time_offset=0.003
        )

        assert [p.timestamp for p in poses] == pytest.approx([0.003, 0.503, 1.003])
        np.testing.assert_array_equal(poses[0].position, [1.0, 2.0, 3.0])

        with pytest.raises(ValueError, match="stride"):
            build_pose_samples(traj.t, traj.quaternion, traj.position, traj.velocity, stride=0)

"""
Unit tests for imu_integration/sensors/types.py.

Tests cover:
    - Sample validation and float64 coercion
    - CalibrationConstants defaults and immutability
    - NavigationState construction, one-shot initialization, copies
"""

import unittest

import numpy as np
import pytest

from imu_integration.coords.rotations import quat_from_rotvec, quat_to_rotation_matrix
from imu_integration.sensors.types import (
    AuxiliaryPoseSample,
    CalibrationConstants,
    InertialSample,
    IntegrationScheme,
    NavigationState,
)


class TestInertialSample(unittest.TestCase):

    def test_coerces_to_float_arrays(self) -> None:
        sample = InertialSample(1, [0, 0, 1], (0, 0, 9.81))

        assert isinstance(sample.timestamp, float)
        assert sample.angular_velocity.dtype == np.float64
        np.testing.assert_array_equal(sample.specific_force, [0.0, 0.0, 9.81])

    def test_rejects_wrong_shape(self) -> None:
        with pytest.raises(ValueError, match="angular_velocity"):
            InertialSample(0.0, np.zeros(2), np.zeros(3))

    def test_rejects_non_finite(self) -> None:
        with pytest.raises(ValueError, match="finite"):
            InertialSample(0.0, np.zeros(3), np.array([0.0, np.nan, 0.0]))
        with pytest.raises(ValueError, match="timestamp"):
            InertialSample(np.inf, np.zeros(3), np.zeros(3))

    def test_frozen(self) -> None:
        sample = InertialSample(0.0, np.zeros(3), np.zeros(3))
        with pytest.raises(AttributeError):
            sample.timestamp = 1.0


class TestAuxiliaryPoseSample(unittest.TestCase):

    def test_from_quaternion(self) -> None:
        q = quat_from_rotvec(np.array([0.0, 0.0, 0.3]))
        sample = AuxiliaryPoseSample.from_quaternion(2.0, q, [1, 2, 3], [0.1, 0, 0])

        np.testing.assert_array_almost_equal(sample.rotation, quat_to_rotation_matrix(q))
        np.testing.assert_array_almost_equal(sample.quaternion, q)

    def test_pose_matrix(self) -> None:
        sample = AuxiliaryPoseSample(0.0, np.eye(3), np.array([1.0, 2.0, 3.0]), np.zeros(3))
        T = sample.pose_matrix()

        np.testing.assert_array_equal(T[:3, 3], [1.0, 2.0, 3.0])
        np.testing.assert_array_equal(T[3], [0.0, 0.0, 0.0, 1.0])

    def test_rejects_bad_rotation_shape(self) -> None:
        with pytest.raises(ValueError, match="rotation"):
            AuxiliaryPoseSample(0.0, np.eye(4), np.zeros(3), np.zeros(3))


class TestCalibrationConstants(unittest.TestCase):

    def test_defaults(self) -> None:
        calib = CalibrationConstants()

        np.testing.assert_array_equal(calib.gravity, [0.0, 0.0, -9.81])
        np.testing.assert_array_equal(calib.angular_velocity_bias, np.zeros(3))
        np.testing.assert_array_equal(calib.specific_force_bias, np.zeros(3))

    def test_arrays_are_read_only(self) -> None:
        calib = CalibrationConstants()
        with pytest.raises(ValueError):
            calib.gravity[2] = 0.0

    def test_source_array_not_aliased(self) -> None:
        bias = np.array([0.1, 0.2, 0.3])
        calib = CalibrationConstants(angular_velocity_bias=bias)
        bias[0] = 99.0

        assert calib.angular_velocity_bias[0] == pytest.approx(0.1)


class TestIntegrationScheme(unittest.TestCase):

    def test_from_string(self) -> None:
        assert IntegrationScheme("mid_value") is IntegrationScheme.MID_VALUE
        assert IntegrationScheme("euler") is IntegrationScheme.EULER


class TestNavigationState:

    def test_default_is_uninitialized_identity(self) -> None:
        state = NavigationState()

        assert not state.initialized
        np.testing.assert_array_equal(state.rotation, np.eye(3))
        np.testing.assert_array_equal(state.position, np.zeros(3))
        np.testing.assert_array_equal(state.quaternion, [1.0, 0.0, 0.0, 0.0])

    def test_warns_on_non_rotation(self) -> None:
        with pytest.warns(UserWarning, match="SO\\(3\\)"):
            NavigationState(rotation=2.0 * np.eye(3))

    def test_initialize_copies_sample(self) -> None:
        q = quat_from_rotvec(np.array([0.1, -0.2, 0.3]))
        sample = AuxiliaryPoseSample.from_quaternion(5.0, q, [1, 2, 3], [4, 5, 6])
        state = NavigationState()

        state.initialize(sample)

        assert state.initialized
        assert state.init_time == 5.0
        np.testing.assert_array_almost_equal(state.rotation, sample.rotation)
        np.testing.assert_array_equal(state.position, [1.0, 2.0, 3.0])
        np.testing.assert_array_equal(state.velocity, [4.0, 5.0, 6.0])

        state.position[0] = 100.0
        assert sample.position[0] == 1.0

    def test_initialize_twice_raises(self) -> None:
        sample = AuxiliaryPoseSample(0.0, np.eye(3), np.zeros(3), np.zeros(3))
        state = NavigationState()
        state.initialize(sample)

        with pytest.raises(RuntimeError, match="already initialized"):
            state.initialize(sample)

    def test_copy_is_independent(self) -> None:
        state = NavigationState(position=np.array([1.0, 0.0, 0.0]), initialized=True)
        snapshot = state.copy()
        state.position[0] = 2.0

        assert snapshot.position[0] == 1.0
        assert snapshot.initialized

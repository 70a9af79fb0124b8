"""
Unit tests for imu_integration/coords/rotations.py.

Tests cover:
    - Exponential map with the zero-rotation guard
    - Logarithm map (inverse of the exponential map)
    - Hamilton product and its matrix equivalent
    - Quaternion ↔ rotation matrix conversions
    - Slerp (endpoints, midpoint, shortest arc)

scipy.spatial.transform.Rotation is used as an independent reference.
Note scipy orders quaternions [x, y, z, w]; this package uses [w, x, y, z].
"""

import unittest

import numpy as np
import pytest
from scipy.spatial.transform import Rotation

from imu_integration.coords.rotations import (
    is_rotation_matrix,
    quat_conjugate,
    quat_from_rotvec,
    quat_multiply,
    quat_normalize,
    quat_slerp,
    quat_to_rotation_matrix,
    quat_to_xyzw,
    rotation_matrix_to_quat,
    rotvec_from_quat,
)


def _wxyz(rotation: Rotation) -> np.ndarray:
    x, y, z, w = rotation.as_quat()
    return np.array([w, x, y, z])


def _assert_same_attitude(q_a: np.ndarray, q_b: np.ndarray, decimal: int = 10) -> None:
    """q and -q describe the same rotation."""
    if np.dot(q_a, q_b) < 0:
        q_b = -q_b
    np.testing.assert_array_almost_equal(q_a, q_b, decimal=decimal)


class TestQuatFromRotvec(unittest.TestCase):
    """Exponential map."""

    def test_zero_rotation_returns_identity(self) -> None:
        q = quat_from_rotvec(np.zeros(3))
        np.testing.assert_array_equal(q, [1.0, 0.0, 0.0, 0.0])

    def test_below_threshold_returns_identity(self) -> None:
        """Magnitudes at or below the guard never produce NaN."""
        q = quat_from_rotvec(np.array([1e-13, 0.0, 0.0]))
        np.testing.assert_array_equal(q, [1.0, 0.0, 0.0, 0.0])
        assert np.all(np.isfinite(q))

    def test_quarter_turn_about_z(self) -> None:
        q = quat_from_rotvec(np.array([0.0, 0.0, np.pi / 2]))
        expected = np.array([np.cos(np.pi / 4), 0.0, 0.0, np.sin(np.pi / 4)])
        np.testing.assert_array_almost_equal(q, expected)

    def test_matches_scipy(self) -> None:
        rng = np.random.default_rng(0)
        for _ in range(20):
            rotvec = rng.uniform(-2.0, 2.0, 3)
            _assert_same_attitude(quat_from_rotvec(rotvec), _wxyz(Rotation.from_rotvec(rotvec)))

    def test_unit_norm(self) -> None:
        q = quat_from_rotvec(np.array([0.3, -1.2, 0.7]))
        assert np.isclose(np.linalg.norm(q), 1.0)

    def test_invalid_shape(self) -> None:
        with pytest.raises(ValueError, match="shape"):
            quat_from_rotvec(np.array([1.0, 2.0]))


class TestRotvecFromQuat(unittest.TestCase):
    """Logarithm map."""

    def test_inverse_of_exponential_map(self) -> None:
        rotvec = np.array([0.4, -0.2, 1.1])
        np.testing.assert_array_almost_equal(rotvec_from_quat(quat_from_rotvec(rotvec)), rotvec)

    def test_sign_invariant(self) -> None:
        q = quat_from_rotvec(np.array([0.0, 0.5, 0.0]))
        np.testing.assert_array_almost_equal(rotvec_from_quat(q), rotvec_from_quat(-q))

    def test_identity_is_zero(self) -> None:
        np.testing.assert_array_equal(rotvec_from_quat(np.array([1.0, 0, 0, 0])), np.zeros(3))


class TestQuatAlgebra(unittest.TestCase):
    """Hamilton product, conjugate, normalization."""

    def test_product_matches_matrix_product(self) -> None:
        q1 = quat_from_rotvec(np.array([0.1, 0.2, 0.3]))
        q2 = quat_from_rotvec(np.array([-0.5, 0.4, 0.0]))

        R_product = quat_to_rotation_matrix(quat_multiply(q1, q2))
        R_expected = quat_to_rotation_matrix(q1) @ quat_to_rotation_matrix(q2)

        np.testing.assert_array_almost_equal(R_product, R_expected)

    def test_product_matches_scipy_composition(self) -> None:
        r1 = Rotation.from_rotvec([0.3, 0.0, 0.9])
        r2 = Rotation.from_rotvec([0.0, -0.7, 0.2])
        q = quat_multiply(_wxyz(r1), _wxyz(r2))
        _assert_same_attitude(q, _wxyz(r1 * r2))

    def test_two_quarter_turns_make_half_turn(self) -> None:
        qz90 = np.array([np.cos(np.pi / 4), 0.0, 0.0, np.sin(np.pi / 4)])
        np.testing.assert_array_almost_equal(quat_multiply(qz90, qz90), [0.0, 0.0, 0.0, 1.0])

    def test_conjugate_is_inverse(self) -> None:
        q = quat_from_rotvec(np.array([0.2, -0.9, 0.4]))
        np.testing.assert_array_almost_equal(
            quat_multiply(q, quat_conjugate(q)), [1.0, 0.0, 0.0, 0.0]
        )

    def test_normalize(self) -> None:
        np.testing.assert_array_almost_equal(
            quat_normalize(np.array([2.0, 0.0, 0.0, 0.0])), [1.0, 0.0, 0.0, 0.0]
        )

    def test_normalize_zero_raises(self) -> None:
        with pytest.raises(ValueError, match="zero quaternion"):
            quat_normalize(np.zeros(4))

    def test_xyzw_order(self) -> None:
        np.testing.assert_array_equal(
            quat_to_xyzw(np.array([1.0, 2.0, 3.0, 4.0])), [2.0, 3.0, 4.0, 1.0]
        )


class TestMatrixConversions(unittest.TestCase):
    """Quaternion ↔ rotation matrix."""

    def test_identity(self) -> None:
        np.testing.assert_array_almost_equal(
            quat_to_rotation_matrix(np.array([1.0, 0, 0, 0])), np.eye(3)
        )
        np.testing.assert_array_almost_equal(
            rotation_matrix_to_quat(np.eye(3)), [1.0, 0.0, 0.0, 0.0]
        )

    def test_matches_scipy(self) -> None:
        rng = np.random.default_rng(1)
        for _ in range(20):
            r = Rotation.from_rotvec(rng.uniform(-3.0, 3.0, 3))
            np.testing.assert_array_almost_equal(
                quat_to_rotation_matrix(_wxyz(r)), r.as_matrix()
            )
            _assert_same_attitude(rotation_matrix_to_quat(r.as_matrix()), _wxyz(r))

    def test_half_turns_round_trip(self) -> None:
        """Trace ≈ -1 exercises the non-qw branches of the conversion."""
        for axis in np.eye(3):
            R = Rotation.from_rotvec(np.pi * axis).as_matrix()
            np.testing.assert_array_almost_equal(
                quat_to_rotation_matrix(rotation_matrix_to_quat(R)), R
            )

    def test_unnormalized_quaternion_gives_orthonormal_matrix(self) -> None:
        R = quat_to_rotation_matrix(np.array([2.0, 0.4, -0.2, 0.1]))
        assert is_rotation_matrix(R)

    def test_is_rotation_matrix_rejects(self) -> None:
        assert not is_rotation_matrix(np.diag([1.0, 1.0, -1.0]))
        assert not is_rotation_matrix(2.0 * np.eye(3))
        assert not is_rotation_matrix(np.eye(2))


class TestQuatSlerp:
    """Spherical linear interpolation."""

    def test_endpoints(self) -> None:
        q0 = np.array([1.0, 0.0, 0.0, 0.0])
        q1 = quat_from_rotvec(np.array([0.0, 0.0, 1.0]))

        _assert_same_attitude(quat_slerp(q0, q1, 0.0), q0)
        _assert_same_attitude(quat_slerp(q0, q1, 1.0), q1)

    def test_midpoint_halves_angle(self) -> None:
        q0 = np.array([1.0, 0.0, 0.0, 0.0])
        q1 = quat_from_rotvec(np.array([0.0, 0.0, np.pi / 2]))

        q_mid = quat_slerp(q0, q1, 0.5)

        _assert_same_attitude(q_mid, quat_from_rotvec(np.array([0.0, 0.0, np.pi / 4])))

    def test_shortest_arc(self) -> None:
        """Negating the end quaternion does not change the path."""
        q0 = quat_from_rotvec(np.array([0.2, 0.0, 0.0]))
        q1 = quat_from_rotvec(np.array([0.8, 0.0, 0.0]))

        _assert_same_attitude(quat_slerp(q0, q1, 0.25), quat_slerp(q0, -q1, 0.25))
        _assert_same_attitude(
            quat_slerp(q0, q1, 0.25), quat_from_rotvec(np.array([0.35, 0.0, 0.0]))
        )

    def test_nearly_identical_inputs(self) -> None:
        q0 = np.array([1.0, 0.0, 0.0, 0.0])
        q1 = quat_from_rotvec(np.array([1e-10, 0.0, 0.0]))

        q = quat_slerp(q0, q1, 0.5)

        assert np.all(np.isfinite(q))
        assert np.isclose(np.linalg.norm(q), 1.0)

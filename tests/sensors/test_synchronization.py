"""
Unit tests for imu_integration/sensors/synchronization.py.

Run with: pytest tests/sensors/test_synchronization.py -v
"""

import unittest
from collections import deque

import numpy as np
import pytest
from scipy.spatial.transform import Rotation

from imu_integration.sensors.synchronization import (
    PoseSynchronizer,
    interpolate_pose,
    sync_pose_sample,
)
from imu_integration.sensors.types import AuxiliaryPoseSample


def _pose(t: float, x: float = 0.0, yaw: float = 0.0, vx: float = 0.0) -> AuxiliaryPoseSample:
    R = Rotation.from_euler("z", yaw).as_matrix()
    return AuxiliaryPoseSample(t, R, np.array([x, 0.0, 0.0]), np.array([vx, 0.0, 0.0]))


class TestInterpolatePose(unittest.TestCase):

    def test_midpoint_linear_blend(self) -> None:
        synced = interpolate_pose(_pose(0.0, 0.0, vx=0.0), _pose(1.0, 1.0, vx=2.0), 0.5)

        assert synced.timestamp == 0.5
        np.testing.assert_array_almost_equal(synced.position, [0.5, 0.0, 0.0])
        np.testing.assert_array_almost_equal(synced.velocity, [1.0, 0.0, 0.0])
        np.testing.assert_array_almost_equal(synced.rotation, np.eye(3))

    def test_rotation_is_slerped(self) -> None:
        synced = interpolate_pose(_pose(0.0, yaw=0.0), _pose(2.0, yaw=1.0), 0.5)

        expected = Rotation.from_euler("z", 0.25).as_matrix()
        np.testing.assert_array_almost_equal(synced.rotation, expected)

    def test_endpoints_reproduce_samples(self) -> None:
        left = _pose(1.0, 3.0, yaw=0.2)
        right = _pose(2.0, 5.0, yaw=0.6)

        np.testing.assert_array_almost_equal(interpolate_pose(left, right, 1.0).position, left.position)
        np.testing.assert_array_almost_equal(interpolate_pose(left, right, 2.0).rotation, right.rotation)


class TestSyncPoseSample(unittest.TestCase):

    def test_bracket_found_and_left_dropped(self) -> None:
        buffer = deque([_pose(0.0, 0.0), _pose(1.0, 1.0), _pose(2.0, 2.0)])

        synced = sync_pose_sample(buffer, 0.5)

        np.testing.assert_array_almost_equal(synced.position, [0.5, 0.0, 0.0])
        assert [s.timestamp for s in buffer] == [1.0, 2.0]

    def test_scan_skips_stale_samples(self) -> None:
        buffer = deque([_pose(0.0, 0.0), _pose(1.0, 1.0), _pose(2.0, 2.0), _pose(3.0, 3.0)])

        synced = sync_pose_sample(buffer, 2.25)

        np.testing.assert_array_almost_equal(synced.position, [2.25, 0.0, 0.0])
        assert [s.timestamp for s in buffer] == [3.0]

    def test_target_before_first_sample(self) -> None:
        buffer = deque([_pose(1.0), _pose(2.0)])

        assert sync_pose_sample(buffer, 0.5) is None
        assert len(buffer) == 2

    def test_target_after_last_sample(self) -> None:
        buffer = deque([_pose(0.0), _pose(1.0), _pose(2.0)])

        assert sync_pose_sample(buffer, 5.0) is None
        assert [s.timestamp for s in buffer] == [2.0]

    def test_single_sample_never_brackets(self) -> None:
        buffer = deque([_pose(1.0)])
        assert sync_pose_sample(buffer, 1.0) is None

    def test_exact_timestamp_match(self) -> None:
        buffer = deque([_pose(0.0, 0.0), _pose(1.0, 4.0)])

        synced = sync_pose_sample(buffer, 1.0)

        np.testing.assert_array_almost_equal(synced.position, [4.0, 0.0, 0.0])

    def test_gap_limit_rejects_wide_bracket(self) -> None:
        buffer = deque([_pose(0.0), _pose(1.0), _pose(1.2)])

        assert sync_pose_sample(buffer, 0.5, max_bracket_gap=0.15) is None
        assert [s.timestamp for s in buffer] == [1.0, 1.2]

        synced = sync_pose_sample(buffer, 1.1, max_bracket_gap=0.15)
        assert synced is not None
        assert synced.timestamp == pytest.approx(1.1)


class TestPoseSynchronizer(unittest.TestCase):

    def test_sync(self) -> None:
        sync = PoseSynchronizer()
        sync.add(_pose(0.0, 0.0))
        sync.add(_pose(1.0, 1.0))

        np.testing.assert_array_almost_equal(sync.sync(0.5).position, [0.5, 0.0, 0.0])
        assert len(sync) == 1

    def test_out_of_order_sample_dropped(self) -> None:
        sync = PoseSynchronizer()
        assert sync.add(_pose(1.0))

        with pytest.warns(RuntimeWarning, match="out-of-order"):
            assert not sync.add(_pose(0.5))

        assert len(sync) == 1
        assert sync.latest.timestamp == 1.0

    def test_negative_gap_rejected(self) -> None:
        with pytest.raises(ValueError, match="max_bracket_gap"):
            PoseSynchronizer(max_bracket_gap=-1.0)

    def test_discard_before_keeps_usable_left_bracket(self) -> None:
        sync = PoseSynchronizer()
        for t in (0.0, 0.1, 0.2, 0.3):
            sync.add(_pose(t, t))

        assert sync.discard_before(0.25) == 2
        assert len(sync) == 2
        np.testing.assert_array_almost_equal(sync.sync(0.25).position, [0.25, 0.0, 0.0])

    def test_discard_before_keeps_newest(self) -> None:
        sync = PoseSynchronizer()
        sync.add(_pose(0.0))
        sync.add(_pose(0.1))

        sync.discard_before(10.0)

        assert len(sync) == 1
        assert sync.latest.timestamp == 0.1

    def test_clear(self) -> None:
        sync = PoseSynchronizer()
        sync.add(_pose(0.0))
        sync.clear()

        assert len(sync) == 0
        assert sync.latest is None

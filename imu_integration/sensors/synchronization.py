"""
Reference pose synchronization by bracket interpolation.

The inertial engine is seeded from an auxiliary pose stream (e.g. ground
truth odometry) whose timestamps do not line up with the IMU. Before
initialization, the auxiliary samples are buffered and interpolated at the
timestamp of the newest IMU sample:

    1. Scan forward for two consecutive samples t_prev <= t <= t_curr.
    2. α = (t - t_prev) / (t_curr - t_prev)
    3. Position and velocity: linear blend; rotation: slerp.

Samples that can no longer bracket any future target time are dropped from
the buffer as the scan passes them, and on success the left bracket goes
too. Failure is not an error: the caller retries with the next target time.
"""

import warnings
from collections import deque
from typing import Deque, Optional

import numpy as np

from imu_integration.coords.rotations import (
    quat_slerp,
    quat_to_rotation_matrix,
    rotation_matrix_to_quat,
)
from imu_integration.sensors.types import AuxiliaryPoseSample


def interpolate_pose(
    left: AuxiliaryPoseSample,
    right: AuxiliaryPoseSample,
    target_time: float,
) -> AuxiliaryPoseSample:
    """
    Blend two pose samples at an intermediate time.

    Args:
        left: Earlier sample (t_prev).
        right: Later sample (t_curr), with t_curr > t_prev.
        target_time: Query time, normally in [t_prev, t_curr].

    Returns:
        AuxiliaryPoseSample stamped at target_time.

    Example:
        >>> a = AuxiliaryPoseSample(0.0, np.eye(3), np.zeros(3), np.zeros(3))
        >>> b = AuxiliaryPoseSample(1.0, np.eye(3), np.array([1.0, 0, 0]), np.zeros(3))
        >>> interpolate_pose(a, b, 0.5).position  # [0.5, 0, 0]
    """
    alpha = (target_time - left.timestamp) / (right.timestamp - left.timestamp)

    q = quat_slerp(
        rotation_matrix_to_quat(left.rotation),
        rotation_matrix_to_quat(right.rotation),
        alpha,
    )

    return AuxiliaryPoseSample(
        timestamp=target_time,
        rotation=quat_to_rotation_matrix(q),
        position=(1.0 - alpha) * left.position + alpha * right.position,
        velocity=(1.0 - alpha) * left.velocity + alpha * right.velocity,
    )


def sync_pose_sample(
    unsynced: Deque[AuxiliaryPoseSample],
    target_time: float,
    max_bracket_gap: Optional[float] = None,
) -> Optional[AuxiliaryPoseSample]:
    """
    Interpolate the buffered pose stream at target_time.

    Args:
        unsynced: Pose samples in ascending timestamp order. Modified in
                  place: samples at or before the used left bracket are
                  removed, as are samples the scan has moved past.
        target_time: Time to synchronize to (seconds).
        max_bracket_gap: If given, a bracket endpoint farther than this from
                         target_time is rejected and the left sample dropped.

    Returns:
        The interpolated sample, or None when no valid bracket exists yet
        (target before the first sample, after the last one, or rejected by
        the gap limit).
    """
    while len(unsynced) >= 2:
        left = unsynced[0]
        right = unsynced[1]

        if right.timestamp <= left.timestamp:
            unsynced.popleft()
            continue

        if target_time < left.timestamp:
            return None

        if right.timestamp < target_time:
            unsynced.popleft()
            continue

        if max_bracket_gap is not None:
            if (
                target_time - left.timestamp > max_bracket_gap
                or right.timestamp - target_time > max_bracket_gap
            ):
                unsynced.popleft()
                return None

        synced = interpolate_pose(left, right, target_time)
        unsynced.popleft()

        return synced

    return None


class PoseSynchronizer:
    """
    Owns the auxiliary pose buffer used until the engine is initialized.

    Attributes:
        max_bracket_gap: Optional bracket gap limit in seconds.

    Example:
        >>> sync = PoseSynchronizer()
        >>> sync.add(AuxiliaryPoseSample(0.0, np.eye(3), np.zeros(3), np.zeros(3)))
        >>> sync.add(AuxiliaryPoseSample(1.0, np.eye(3), np.array([1.0, 0, 0]), np.zeros(3)))
        >>> sync.sync(0.5).position
        array([0.5, 0. , 0. ])
    """

    def __init__(self, max_bracket_gap: Optional[float] = None) -> None:
        if max_bracket_gap is not None and max_bracket_gap < 0:
            raise ValueError(
                f"max_bracket_gap must be non-negative, got {max_bracket_gap}"
            )
        self.max_bracket_gap = max_bracket_gap
        self._unsynced: Deque[AuxiliaryPoseSample] = deque()

    def __len__(self) -> int:
        return len(self._unsynced)

    @property
    def latest(self) -> Optional[AuxiliaryPoseSample]:
        """Newest buffered sample, if any."""
        return self._unsynced[-1] if self._unsynced else None

    def add(self, sample: AuxiliaryPoseSample) -> bool:
        """
        Buffer a pose sample.

        Returns:
            False (with a RuntimeWarning) if the sample is not newer than the
            last buffered one; it is then discarded.
        """
        if self._unsynced and sample.timestamp <= self._unsynced[-1].timestamp:
            warnings.warn(
                f"Dropping out-of-order auxiliary pose sample at "
                f"t={sample.timestamp:.6f}s (last buffered "
                f"t={self._unsynced[-1].timestamp:.6f}s)",
                RuntimeWarning,
            )
            return False

        self._unsynced.append(sample)
        return True

    def sync(self, target_time: float) -> Optional[AuxiliaryPoseSample]:
        """Interpolate the buffer at target_time (see sync_pose_sample)."""
        return sync_pose_sample(self._unsynced, target_time, self.max_bracket_gap)

    def discard_before(self, target_time: float) -> int:
        """
        Drop samples that can no longer bracket target_time or anything later.

        A sample is dropped when its successor is already older than
        target_time, the same rule the bracket scan applies.

        Returns:
            Number of samples removed.
        """
        removed = 0
        while len(self._unsynced) >= 2 and self._unsynced[1].timestamp < target_time:
            self._unsynced.popleft()
            removed += 1
        return removed

    def clear(self) -> None:
        self._unsynced.clear()

"""Input streams and output sinks for the integration engine.

- trajectory: KITTI/TUM trajectory writers, in-memory sink, odometry snapshots
- datasets: Loading sample streams from .npz archives and replaying them
"""

from imu_integration.io.datasets import (
    load_inertial_samples,
    load_pose_samples,
    merge_streams,
    replay_streams,
    save_inertial_samples,
    save_pose_samples,
)
from imu_integration.io.trajectory import (
    KittiTrajectoryWriter,
    MemoryTrajectorySink,
    OdometrySnapshot,
    PosePublisher,
    RecordingPublisher,
    TrajectorySink,
    TumTrajectoryWriter,
    build_trajectory_writers,
    format_kitti_line,
    format_tum_line,
)

__all__ = [
    # Datasets
    "load_inertial_samples",
    "load_pose_samples",
    "merge_streams",
    "replay_streams",
    "save_inertial_samples",
    "save_pose_samples",
    # Trajectory output
    "KittiTrajectoryWriter",
    "MemoryTrajectorySink",
    "OdometrySnapshot",
    "PosePublisher",
    "RecordingPublisher",
    "TrajectorySink",
    "TumTrajectoryWriter",
    "build_trajectory_writers",
    "format_kitti_line",
    "format_tum_line",
]

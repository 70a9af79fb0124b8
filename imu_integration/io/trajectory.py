"""Trajectory sinks and odometry publication.

After every successful integration cycle the engine hands its result to two
kinds of collaborators:

- PosePublisher: receives an OdometrySnapshot (orientation, position, linear
  velocity in the navigation frame), the equivalent of an odometry message.
- TrajectorySink: records the estimate and the reference pose, one line per
  cycle, in one of two text formats:

    KITTI:  r11 r12 r13 tx r21 r22 r23 ty r31 r32 r33 tz
            (row-major 3x4 [R | t], no header, no timestamp)
    TUM:    time x y z qx qy qz qw
            (time relative to the navigation state's init_time)

File writers keep their handles as instance fields, open them on the first
emitted line and release them in close().
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import IO, Dict, List, Optional, Union

import numpy as np

from imu_integration.coords.rotations import quat_to_xyzw
from imu_integration.sensors.types import AuxiliaryPoseSample, NavigationState

ESTIMATE_FILENAME = "laser_odom.txt"
REFERENCE_FILENAME = "ground_truth.txt"


def format_kitti_line(pose: np.ndarray) -> str:
    """Row-major 3x4 transform as twelve space-separated floats.

    Args:
        pose: 4x4 (or 3x4) homogeneous transform.

    Example:
        >>> format_kitti_line(np.eye(4))
        '1 0 0 0 0 1 0 0 0 0 1 0'
    """
    pose = np.asarray(pose, dtype=np.float64)
    return " ".join(f"{v:.10g}" for v in pose[:3, :4].reshape(-1))


def format_tum_line(time: float, position: np.ndarray, quaternion: np.ndarray) -> str:
    """``time x y z qx qy qz qw`` from a scalar-first quaternion.

    Example:
        >>> format_tum_line(0.5, np.zeros(3), np.array([1.0, 0.0, 0.0, 0.0]))
        '0.5 0 0 0 0 0 0 1'
    """
    values = [time, *np.asarray(position, dtype=np.float64), *quat_to_xyzw(quaternion)]
    return " ".join(f"{v:.10g}" for v in values)


# ============================================================================
# Publication
# ============================================================================

@dataclass(frozen=True, eq=False)
class OdometrySnapshot:
    """Read-only copy of the navigation state for publication.

    Attributes:
        timestamp: Time of the newest integrated IMU sample (seconds).
        frame_id: Navigation frame name.
        child_frame_id: Body frame name.
        orientation: Unit quaternion in message order [qx, qy, qz, qw].
        position: Position in navigation frame (m).
        linear_velocity: Velocity in navigation frame (m/s).
    """

    timestamp: float
    frame_id: str
    child_frame_id: str
    orientation: np.ndarray
    position: np.ndarray
    linear_velocity: np.ndarray

    @classmethod
    def from_state(
        cls,
        state: NavigationState,
        timestamp: float,
        frame_id: str = "inertial",
        child_frame_id: Optional[str] = None,
    ) -> "OdometrySnapshot":
        return cls(
            timestamp=float(timestamp),
            frame_id=frame_id,
            child_frame_id=child_frame_id if child_frame_id is not None else frame_id,
            orientation=quat_to_xyzw(state.quaternion),
            position=state.position.copy(),
            linear_velocity=state.velocity.copy(),
        )


class PosePublisher(ABC):
    """Receiver of odometry snapshots."""

    @abstractmethod
    def publish(self, snapshot: OdometrySnapshot) -> None:
        """Deliver one snapshot."""
        pass


class RecordingPublisher(PosePublisher):
    """Publisher that keeps every snapshot in memory."""

    def __init__(self) -> None:
        self.snapshots: List[OdometrySnapshot] = []

    def publish(self, snapshot: OdometrySnapshot) -> None:
        self.snapshots.append(snapshot)


# ============================================================================
# Trajectory sinks
# ============================================================================

class TrajectorySink(ABC):
    """Destination for per-cycle estimate and reference poses."""

    @abstractmethod
    def emit_estimate(self, timestamp: float, state: NavigationState) -> None:
        """Record the integrated estimate at ``timestamp``."""
        pass

    @abstractmethod
    def emit_reference(self, sample: AuxiliaryPoseSample, init_time: float) -> None:
        """Record the reference (auxiliary) pose."""
        pass

    def close(self) -> None:
        """Release any resources. Safe to call more than once."""
        pass


class MemoryTrajectorySink(TrajectorySink):
    """Keeps both trajectories in memory for evaluation.

    Times are stored relative to init_time, as in the TUM format.
    """

    def __init__(self) -> None:
        self._estimate: Dict[str, list] = {"t": [], "p": [], "q": [], "v": []}
        self._reference: Dict[str, list] = {"t": [], "p": [], "q": [], "v": []}

    def __len__(self) -> int:
        return len(self._estimate["t"])

    def emit_estimate(self, timestamp: float, state: NavigationState) -> None:
        self._estimate["t"].append(timestamp - state.init_time)
        self._estimate["p"].append(state.position.copy())
        self._estimate["q"].append(state.quaternion)
        self._estimate["v"].append(state.velocity.copy())

    def emit_reference(self, sample: AuxiliaryPoseSample, init_time: float) -> None:
        self._reference["t"].append(sample.timestamp - init_time)
        self._reference["p"].append(sample.position.copy())
        self._reference["q"].append(sample.quaternion)
        self._reference["v"].append(sample.velocity.copy())

    @staticmethod
    def _stack(track: Dict[str, list]) -> Dict[str, np.ndarray]:
        return {
            "t": np.asarray(track["t"], dtype=np.float64),
            "p": np.asarray(track["p"], dtype=np.float64).reshape(-1, 3),
            "q": np.asarray(track["q"], dtype=np.float64).reshape(-1, 4),
            "v": np.asarray(track["v"], dtype=np.float64).reshape(-1, 3),
        }

    def estimate_arrays(self) -> Dict[str, np.ndarray]:
        """Estimate as arrays: t (N,), p (N, 3), q (N, 4) [qw..], v (N, 3)."""
        return self._stack(self._estimate)

    def reference_arrays(self) -> Dict[str, np.ndarray]:
        """Reference as arrays, same layout as estimate_arrays()."""
        return self._stack(self._reference)


class _FileTrajectoryWriter(TrajectorySink):
    """Shared file handling for the text-format writers."""

    def __init__(
        self,
        output_dir: Union[str, Path],
        estimate_filename: str = ESTIMATE_FILENAME,
        reference_filename: str = REFERENCE_FILENAME,
    ) -> None:
        self.output_dir = Path(output_dir)
        self.estimate_path = self.output_dir / estimate_filename
        self.reference_path = self.output_dir / reference_filename
        self._estimate_file: Optional[IO[str]] = None
        self._reference_file: Optional[IO[str]] = None

    def _ensure_open(self) -> None:
        if self._estimate_file is not None:
            return
        self.output_dir.mkdir(parents=True, exist_ok=True)
        self._estimate_file = open(self.estimate_path, "w", encoding="utf-8")
        self._reference_file = open(self.reference_path, "w", encoding="utf-8")

    def _write_estimate(self, line: str) -> None:
        self._ensure_open()
        self._estimate_file.write(line + "\n")

    def _write_reference(self, line: str) -> None:
        self._ensure_open()
        self._reference_file.write(line + "\n")

    def close(self) -> None:
        for f in (self._estimate_file, self._reference_file):
            if f is not None:
                f.close()
        self._estimate_file = None
        self._reference_file = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


class KittiTrajectoryWriter(_FileTrajectoryWriter):
    """Writes row-major 3x4 poses, one per line."""

    def emit_estimate(self, timestamp: float, state: NavigationState) -> None:
        self._write_estimate(format_kitti_line(state.pose_matrix()))

    def emit_reference(self, sample: AuxiliaryPoseSample, init_time: float) -> None:
        self._write_reference(format_kitti_line(sample.pose_matrix()))


class TumTrajectoryWriter(_FileTrajectoryWriter):
    """Writes ``time x y z qx qy qz qw`` lines, time relative to init_time."""

    def emit_estimate(self, timestamp: float, state: NavigationState) -> None:
        self._write_estimate(
            format_tum_line(timestamp - state.init_time, state.position, state.quaternion)
        )

    def emit_reference(self, sample: AuxiliaryPoseSample, init_time: float) -> None:
        self._write_reference(
            format_tum_line(sample.timestamp - init_time, sample.position, sample.quaternion)
        )


def build_trajectory_writers(
    output_dir: Union[str, Path],
    formats=("tum",),
) -> List[TrajectorySink]:
    """Create one file writer per requested format.

    With a single format the files go directly into output_dir; with several,
    each format gets its own subdirectory (``output_dir/kitti``, ...) so the
    file names do not collide.
    """
    writers = {"kitti": KittiTrajectoryWriter, "tum": TumTrajectoryWriter}
    output_dir = Path(output_dir)
    formats = list(formats)

    sinks: List[TrajectorySink] = []
    for fmt in formats:
        try:
            writer_cls = writers[fmt]
        except KeyError:
            raise ValueError(
                f"Unknown trajectory format {fmt!r}; expected one of {sorted(writers)}"
            ) from None
        target = output_dir if len(formats) == 1 else output_dir / fmt
        sinks.append(writer_cls(target))

    return sinks

"""Sample stream loading and replay.

Datasets are stored as NumPy archives, one per stream:

    imu.npz
        t:     (N,)   timestamps [s]
        gyro:  (N, 3) angular velocity, body frame [rad/s]
        accel: (N, 3) specific force, body frame [m/s²]

    ground_truth.npz
        t: (M,)   timestamps [s]
        q: (M, 4) body-to-navigation quaternion [qw, qx, qy, qz]
        p: (M, 3) position, navigation frame [m]
        v: (M, 3) velocity, navigation frame [m/s]

replay_streams() feeds both streams to an engine in timestamp order, the way
live subscribers would, running the engine's drain loop as data arrives.
"""

import heapq
from pathlib import Path
from typing import TYPE_CHECKING, Iterable, Iterator, List, Sequence, Tuple, Union

import numpy as np
from tqdm import tqdm

from imu_integration.sensors.types import AuxiliaryPoseSample, InertialSample

if TYPE_CHECKING:
    from imu_integration.estimator.engine import InertialOdometryEngine

PathLike = Union[str, Path]


def _require(data, keys: Sequence[str], path: Path) -> None:
    missing = [k for k in keys if k not in data]
    if missing:
        raise ValueError(f"{path}: missing arrays {missing}")


def save_inertial_samples(path: PathLike, samples: Sequence[InertialSample]) -> None:
    """Write IMU samples to an .npz archive (t, gyro, accel)."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    np.savez(
        path,
        t=np.array([s.timestamp for s in samples], dtype=np.float64),
        gyro=np.array([s.angular_velocity for s in samples], dtype=np.float64).reshape(-1, 3),
        accel=np.array([s.specific_force for s in samples], dtype=np.float64).reshape(-1, 3),
    )


def load_inertial_samples(path: PathLike) -> List[InertialSample]:
    """Read IMU samples from an .npz archive.

    Raises:
        FileNotFoundError: If the archive does not exist.
        ValueError: If arrays are missing or have inconsistent shapes.
    """
    path = Path(path)
    with np.load(path) as data:
        _require(data, ("t", "gyro", "accel"), path)
        t = np.asarray(data["t"], dtype=np.float64)
        gyro = np.asarray(data["gyro"], dtype=np.float64)
        accel = np.asarray(data["accel"], dtype=np.float64)

    n = t.shape[0]
    if t.ndim != 1 or gyro.shape != (n, 3) or accel.shape != (n, 3):
        raise ValueError(
            f"{path}: expected t (N,), gyro (N, 3), accel (N, 3); got "
            f"{t.shape}, {gyro.shape}, {accel.shape}"
        )

    return [InertialSample(t[i], gyro[i], accel[i]) for i in range(n)]


def save_pose_samples(path: PathLike, samples: Sequence[AuxiliaryPoseSample]) -> None:
    """Write pose samples to an .npz archive (t, q, p, v)."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    np.savez(
        path,
        t=np.array([s.timestamp for s in samples], dtype=np.float64),
        q=np.array([s.quaternion for s in samples], dtype=np.float64).reshape(-1, 4),
        p=np.array([s.position for s in samples], dtype=np.float64).reshape(-1, 3),
        v=np.array([s.velocity for s in samples], dtype=np.float64).reshape(-1, 3),
    )


def load_pose_samples(path: PathLike) -> List[AuxiliaryPoseSample]:
    """Read pose samples from an .npz archive.

    Raises:
        FileNotFoundError: If the archive does not exist.
        ValueError: If arrays are missing or have inconsistent shapes.
    """
    path = Path(path)
    with np.load(path) as data:
        _require(data, ("t", "q", "p", "v"), path)
        t = np.asarray(data["t"], dtype=np.float64)
        q = np.asarray(data["q"], dtype=np.float64)
        p = np.asarray(data["p"], dtype=np.float64)
        v = np.asarray(data["v"], dtype=np.float64)

    n = t.shape[0]
    if t.ndim != 1 or q.shape != (n, 4) or p.shape != (n, 3) or v.shape != (n, 3):
        raise ValueError(
            f"{path}: expected t (N,), q (N, 4), p (N, 3), v (N, 3); got "
            f"{t.shape}, {q.shape}, {p.shape}, {v.shape}"
        )

    return [AuxiliaryPoseSample.from_quaternion(t[i], q[i], p[i], v[i]) for i in range(n)]


def merge_streams(
    imu_samples: Iterable[InertialSample],
    aux_samples: Iterable[AuxiliaryPoseSample],
    reference_lead: float = 0.0,
) -> Iterator[Tuple[str, Union[InertialSample, AuxiliaryPoseSample]]]:
    """Interleave both streams by timestamp.

    Yields ("aux", sample) or ("imu", sample). At equal timestamps the
    auxiliary sample comes first, so it can bracket that IMU time.

    Args:
        reference_lead: Deliver each auxiliary sample this many seconds
            earlier than its timestamp, as if the reference stream were
            available ahead of the IMU (e.g. recorded ground truth).
    """
    tagged_aux = ((s.timestamp - reference_lead, 0, "aux", s) for s in aux_samples)
    tagged_imu = ((s.timestamp, 1, "imu", s) for s in imu_samples)

    for _, _, kind, sample in heapq.merge(
        tagged_aux, tagged_imu, key=lambda item: (item[0], item[1])
    ):
        yield kind, sample


def replay_streams(
    engine: "InertialOdometryEngine",
    imu_samples: Sequence[InertialSample],
    aux_samples: Sequence[AuxiliaryPoseSample],
    batch_size: int = 1,
    progress: bool = False,
    reference_lead: float = 0.0,
) -> int:
    """Feed recorded streams to an engine in timestamp order.

    After every ``batch_size`` IMU samples the engine drains its buffers
    (process_available), mimicking a node that reads all queued messages and
    then integrates them.

    The engine seeds itself at the newest queued IMU time, which needs a
    reference sample at or after that time. With strict timestamp order this
    only happens when a reference timestamp coincides with a drained IMU
    timestamp; a reference stream that is offset or sparser than the IMU
    needs ``reference_lead`` of at least one reference period.

    Args:
        engine: Engine to feed.
        imu_samples: IMU samples in timestamp order.
        aux_samples: Reference pose samples in timestamp order.
        batch_size: IMU samples per drain call (>= 1).
        progress: Show a tqdm progress bar.
        reference_lead: Seconds by which reference samples are delivered
            ahead of their timestamps (>= 0).

    Returns:
        Total number of integration cycles run.
    """
    if batch_size < 1:
        raise ValueError(f"batch_size must be >= 1, got {batch_size}")
    if reference_lead < 0:
        raise ValueError(f"reference_lead must be >= 0, got {reference_lead}")

    cycles = 0
    since_drain = 0
    bar = tqdm(
        total=len(imu_samples),
        desc="Integrating IMU",
        unit="sample",
        disable=not progress,
    )
    try:
        for kind, sample in merge_streams(imu_samples, aux_samples, reference_lead):
            if kind == "aux":
                engine.add_auxiliary_sample(sample)
                continue

            engine.add_inertial_sample(sample)
            bar.update(1)
            since_drain += 1
            if since_drain >= batch_size:
                cycles += engine.process_available()
                since_drain = 0

        cycles += engine.process_available()
    finally:
        bar.close()

    return cycles

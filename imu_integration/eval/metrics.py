"""
Trajectory error metrics.

Compares the integrated estimate against the reference trajectory recorded
alongside it (see io.trajectory.MemoryTrajectorySink):

    - associate_by_time: pair estimate and reference samples by timestamp
    - compute_position_errors / compute_rotation_errors: per-sample errors
    - compute_rmse, compute_error_stats: summary statistics
"""

from typing import Dict, Optional, Tuple, Union

import numpy as np

from imu_integration.coords.rotations import (
    quat_conjugate,
    quat_multiply,
    rotvec_from_quat,
)


def associate_by_time(
    t_est: np.ndarray,
    t_ref: np.ndarray,
    max_difference: float = 1e-6,
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Pair each estimate sample with the nearest reference sample in time.

    Args:
        t_est: Estimate timestamps, ascending, shape (N,).
        t_ref: Reference timestamps, ascending, shape (M,).
        max_difference: Pairs further apart than this (seconds) are dropped.

    Returns:
        Tuple (idx_est, idx_ref) of equal-length integer index arrays.
    """
    t_est = np.asarray(t_est, dtype=np.float64)
    t_ref = np.asarray(t_ref, dtype=np.float64)

    if t_est.size == 0 or t_ref.size == 0:
        empty = np.zeros(0, dtype=int)
        return empty, empty

    if t_ref.size == 1:
        nearest = np.zeros(t_est.size, dtype=int)
    else:
        right = np.clip(np.searchsorted(t_ref, t_est), 1, t_ref.size - 1)
        left = right - 1
        nearest = np.where(
            np.abs(t_ref[left] - t_est) <= np.abs(t_ref[right] - t_est), left, right
        )

    keep = np.abs(t_ref[nearest] - t_est) <= max_difference

    return np.nonzero(keep)[0], nearest[keep]


def compute_position_errors(truth: np.ndarray, estimated: np.ndarray) -> np.ndarray:
    """
    Position error vectors (estimated - truth).

    Args:
        truth: True positions, shape (N, 3)
        estimated: Estimated positions, shape (N, 3)

    Raises:
        ValueError: If inputs have incompatible shapes
    """
    truth = np.asarray(truth)
    estimated = np.asarray(estimated)

    if truth.shape != estimated.shape:
        raise ValueError(
            f"Shape mismatch: truth {truth.shape} vs estimated {estimated.shape}"
        )

    return estimated - truth


def compute_rotation_errors(q_truth: np.ndarray, q_estimated: np.ndarray) -> np.ndarray:
    """
    Angle of the relative rotation q_truth* ⊗ q_estimated, per sample.

    Args:
        q_truth: True attitudes [qw, qx, qy, qz], shape (N, 4)
        q_estimated: Estimated attitudes, shape (N, 4)

    Returns:
        Angles in radians, shape (N,), each in [0, π].
    """
    q_truth = np.asarray(q_truth, dtype=np.float64)
    q_estimated = np.asarray(q_estimated, dtype=np.float64)

    if q_truth.shape != q_estimated.shape:
        raise ValueError(
            f"Shape mismatch: truth {q_truth.shape} vs estimated {q_estimated.shape}"
        )

    angles = np.zeros(q_truth.shape[0])
    for i in range(q_truth.shape[0]):
        dq = quat_multiply(quat_conjugate(q_truth[i]), q_estimated[i])
        angles[i] = np.linalg.norm(rotvec_from_quat(dq))

    return angles


def compute_rmse(errors: np.ndarray, axis: Optional[int] = None) -> Union[float, np.ndarray]:
    """
    Root Mean Square Error.

    Args:
        errors: Error vectors, shape (N, d) or (N,)
        axis: None for a scalar over everything, 0 per dimension, 1 per sample
    """
    errors = np.asarray(errors)

    if axis is None:
        return float(np.sqrt(np.mean(errors**2)))
    return np.sqrt(np.mean(errors**2, axis=axis))


def compute_error_stats(errors: np.ndarray) -> Dict[str, float]:
    """
    Summary statistics of error magnitudes.

    Args:
        errors: Error vectors, shape (N, d), or magnitudes, shape (N,)

    Returns:
        Dictionary with 'mean', 'median', 'std', 'rmse', 'p90', 'max' and
        'final' (magnitude of the last error, i.e. end-point drift).
    """
    errors = np.asarray(errors)
    if errors.size == 0:
        raise ValueError("errors must not be empty")

    if errors.ndim > 1:
        magnitudes = np.linalg.norm(errors, axis=1)
    else:
        magnitudes = np.abs(errors)

    return {
        "mean": float(np.mean(magnitudes)),
        "median": float(np.median(magnitudes)),
        "std": float(np.std(magnitudes)),
        "rmse": float(np.sqrt(np.mean(magnitudes**2))),
        "p90": float(np.percentile(magnitudes, 90)),
        "max": float(np.max(magnitudes)),
        "final": float(magnitudes[-1]),
    }


def evaluate_trajectory(
    estimate: Dict[str, np.ndarray],
    reference: Dict[str, np.ndarray],
    max_difference: float = 1e-6,
) -> Dict[str, Dict[str, float]]:
    """
    Position and attitude statistics for an estimate against a reference.

    Both arguments use the MemoryTrajectorySink array layout (t, p, q, v).

    Returns:
        {"position": stats [m], "rotation": stats [rad], "count": {"n": pairs}}

    Raises:
        ValueError: If no samples can be associated.
    """
    idx_est, idx_ref = associate_by_time(estimate["t"], reference["t"], max_difference)
    if idx_est.size == 0:
        raise ValueError("No estimate/reference samples could be associated by time")

    pos_err = compute_position_errors(reference["p"][idx_ref], estimate["p"][idx_est])
    rot_err = compute_rotation_errors(reference["q"][idx_ref], estimate["q"][idx_est])

    return {
        "position": compute_error_stats(pos_err),
        "rotation": compute_error_stats(rot_err),
        "count": {"n": float(idx_est.size)},
    }

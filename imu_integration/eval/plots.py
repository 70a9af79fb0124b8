"""
Trajectory plots for inertial odometry runs.

All functions return matplotlib Figure objects for flexible display/saving.
"""

from pathlib import Path
from typing import Dict, List, Tuple, Union

import matplotlib.pyplot as plt
import numpy as np


def plot_trajectory_2d(
    truth_xy: np.ndarray,
    est_xy_dict: Dict[str, np.ndarray],
    title: str = "Trajectory (top view)",
) -> plt.Figure:
    """
    Plot reference and estimated trajectories in the x-y plane.

    Args:
        truth_xy: Reference trajectory, shape (N, 2) or (N, 3)
        est_xy_dict: Estimated trajectories {name: array}
        title: Plot title
    """
    fig, ax = plt.subplots(figsize=(10, 8))

    ax.plot(truth_xy[:, 0], truth_xy[:, 1], "k-", linewidth=2, label="Reference", zorder=10)
    ax.plot(truth_xy[0, 0], truth_xy[0, 1], "go", markersize=10, label="Start", zorder=11)

    colors = ["blue", "red", "green", "orange", "purple"]
    linestyles = ["-", "--", "-.", ":", "-"]

    for i, (name, est_xy) in enumerate(est_xy_dict.items()):
        ax.plot(
            est_xy[:, 0],
            est_xy[:, 1],
            linestyle=linestyles[i % len(linestyles)],
            color=colors[i % len(colors)],
            linewidth=1.5,
            label=name,
            alpha=0.7,
        )

    ax.set_xlabel("X (m)", fontsize=12)
    ax.set_ylabel("Y (m)", fontsize=12)
    ax.set_title(title, fontsize=14, fontweight="bold")
    ax.legend(fontsize=10)
    ax.grid(True, alpha=0.3)
    ax.axis("equal")

    plt.tight_layout()
    return fig


def plot_position_error_time(
    t: np.ndarray,
    errors_dict: Dict[str, np.ndarray],
    title: str = "Position Error vs Time",
) -> plt.Figure:
    """
    Plot x/y/z position error components over time.

    Args:
        t: Time axis in seconds, shape (N,)
        errors_dict: Error arrays {name: (N, 3)}
        title: Plot title
    """
    fig, axes_arr = plt.subplots(3, 1, figsize=(12, 10), sharex=True)
    colors = ["blue", "red", "green", "orange", "purple"]

    for i, axis_label in enumerate(["X", "Y", "Z"]):
        ax = axes_arr[i]
        for j, (name, errors) in enumerate(errors_dict.items()):
            ax.plot(t, errors[:, i], label=name, color=colors[j % len(colors)], linewidth=1.5)

        ax.set_ylabel(f"{axis_label} Error (m)", fontsize=11)
        ax.legend(fontsize=9)
        ax.grid(True, alpha=0.3)
        ax.axhline(y=0, color="k", linestyle="--", linewidth=0.8, alpha=0.5)

    axes_arr[-1].set_xlabel("Time (s)", fontsize=11)
    fig.suptitle(title, fontsize=14, fontweight="bold")
    plt.tight_layout()
    return fig


def save_figure(
    fig: plt.Figure,
    out_dir: Union[str, Path],
    name: str,
    formats: Tuple[str, ...] = ("png",),
) -> List[Path]:
    """Save a figure in each of ``formats``; returns the written paths."""
    out_dir = Path(out_dir)
    out_dir.mkdir(parents=True, exist_ok=True)

    paths = []
    for fmt in formats:
        filepath = out_dir / f"{name}.{fmt}"
        fig.savefig(filepath, dpi=150, bbox_inches="tight")
        paths.append(filepath)

    return paths

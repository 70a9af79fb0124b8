"""
Evaluation of integrated trajectories.

Modules:
    metrics: Time association, position/attitude errors, summary statistics
    plots: Trajectory and error plots
"""

from imu_integration.eval.metrics import (
    associate_by_time,
    compute_error_stats,
    compute_position_errors,
    compute_rmse,
    compute_rotation_errors,
    evaluate_trajectory,
)
from imu_integration.eval.plots import (
    plot_position_error_time,
    plot_trajectory_2d,
    save_figure,
)

__all__ = [
    # Metrics
    "associate_by_time",
    "compute_position_errors",
    "compute_rotation_errors",
    "compute_rmse",
    "compute_error_stats",
    "evaluate_trajectory",
    # Plots
    "plot_trajectory_2d",
    "plot_position_error_time",
    "save_figure",
]

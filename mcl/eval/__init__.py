"""
Evaluation and Visualization Module.

Modules:
    metrics: Pose error metrics (position, wrapped heading, RMSE)
    plots: Read-only visualization of map, particles and estimate
"""

from .metrics import compute_error_stats, compute_pose_errors, compute_rmse
from .plots import plot_localization, plot_pose_errors, save_figure

__all__ = [
    # Metrics
    "compute_pose_errors",
    "compute_rmse",
    "compute_error_stats",
    # Plots
    "plot_localization",
    "plot_pose_errors",
    "save_figure",
]

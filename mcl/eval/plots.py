"""
Visualization of the localization state.

Draws the map line segments, the particle population, the mean pose and
(optionally) the laser points projected from the mean pose. These functions
only read estimator state; nothing drawn here feeds back into estimation.

All functions return matplotlib Figure objects for flexible display/saving.
"""

from pathlib import Path
from typing import List, Optional, Tuple, Union

import matplotlib.pyplot as plt
import numpy as np

from mcl.filter import ParticleSet
from mcl.geometry import Pose2
from mcl.world import MapLineSegments


def _draw_lines(ax: plt.Axes, lines: MapLineSegments) -> None:
    for start, end in zip(lines.starts, lines.ends):
        ax.plot([start[0], end[0]], [start[1], end[1]], "k-", linewidth=1.5)


def _draw_heading(ax: plt.Axes, pose: Pose2, length: float, **kwargs) -> None:
    ax.arrow(
        pose.x,
        pose.y,
        length * np.cos(pose.yaw),
        length * np.sin(pose.yaw),
        head_width=0.3 * length,
        length_includes_head=True,
        **kwargs,
    )


def plot_localization(
    lines: MapLineSegments,
    particle_set: ParticleSet,
    mean_pose: Optional[Pose2] = None,
    truth: Optional[Pose2] = None,
    scan_points: Optional[np.ndarray] = None,
    title: str = "Monte Carlo Localization",
) -> plt.Figure:
    """
    Plot the map, the particles and the pose estimate.

    Args:
        lines: Map line segments.
        particle_set: Population to draw (marker size follows weight).
        mean_pose: Estimated pose, drawn as a red arrow.
        truth: True pose, drawn as a green arrow.
        scan_points: Laser points already transformed to the map frame, (M, 2).
        title: Plot title.

    Returns:
        fig: Matplotlib figure
    """
    fig, ax = plt.subplots(figsize=(9, 8))

    _draw_lines(ax, lines)

    if not particle_set.empty:
        w = particle_set.normalized_weights()
        sizes = 4.0 + 60.0 * w / max(w.max(), 1e-12)
        ax.scatter(
            particle_set.poses[:, 0],
            particle_set.poses[:, 1],
            s=sizes,
            c="tab:blue",
            alpha=0.4,
            label=f"Particles ({len(particle_set)})",
        )

    if scan_points is not None and len(scan_points):
        ax.plot(scan_points[:, 0], scan_points[:, 1], ".", color="tab:orange", markersize=3, label="Scan")

    if truth is not None:
        _draw_heading(ax, truth, 0.5, color="tab:green", label="Truth")
    if mean_pose is not None:
        _draw_heading(ax, mean_pose, 0.5, color="tab:red", label="Estimate")

    ax.set_xlabel("x [m]")
    ax.set_ylabel("y [m]")
    ax.set_title(title)
    ax.set_aspect("equal")
    ax.grid(True, alpha=0.3)
    ax.legend(loc="upper right")
    fig.tight_layout()
    return fig


def plot_pose_errors(
    t: np.ndarray,
    position_errors: np.ndarray,
    yaw_errors: np.ndarray,
    title: str = "Localization Error",
) -> plt.Figure:
    """
    Plot position and heading error over time.

    Args:
        t: Time or cycle index, shape (N,).
        position_errors: Position errors (meters), shape (N,).
        yaw_errors: Heading errors (radians), shape (N,).
        title: Plot title.

    Returns:
        fig: Matplotlib figure
    """
    fig, (ax1, ax2) = plt.subplots(2, 1, figsize=(10, 6), sharex=True)

    ax1.plot(t, position_errors, "b-", linewidth=1.5)
    ax1.set_ylabel("Position error [m]")
    ax1.grid(True, alpha=0.3)
    ax1.set_title(title)

    ax2.plot(t, np.degrees(yaw_errors), "r-", linewidth=1.5)
    ax2.set_ylabel("Heading error [deg]")
    ax2.set_xlabel("Cycle")
    ax2.grid(True, alpha=0.3)

    fig.tight_layout()
    return fig


def save_figure(
    fig: plt.Figure,
    out_dir: Union[str, Path],
    name: str,
    formats: Tuple[str, ...] = ("png",),
) -> List[Path]:
    """
    Save figure in multiple formats.

    Args:
        fig: Matplotlib figure to save
        out_dir: Output directory
        name: Base filename (without extension)
        formats: Tuple of format extensions

    Returns:
        paths: List of saved file paths
    """
    out_dir = Path(out_dir)
    out_dir.mkdir(parents=True, exist_ok=True)

    paths = []
    for fmt in formats:
        filepath = out_dir / f"{name}.{fmt}"
        fig.savefig(filepath, dpi=150, bbox_inches="tight")
        paths.append(filepath)

    return paths

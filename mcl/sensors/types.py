"""
Message types exchanged between the localization core and its drivers.

    - LaserScan: one sweep of a planar range finder
    - InitialPoseRequest: external "set pose" command
    - ParticleArray: weighted population published for diagnostics

Time Base Convention:
    Stamps are float seconds.

Frame Conventions:
    Beam angles follow the laser frame: 0 rad along +x, counter-clockwise
    positive. Ranges are meters along each beam.
"""

from dataclasses import dataclass
from typing import Optional

import numpy as np

from mcl.geometry import Pose2


@dataclass
class LaserScan:
    """
    Planar range scan.

    Attributes:
        frame_id: Frame the scan is measured in (the laser frame).
        stamp: Acquisition time (seconds).
        angle_min: Heading of the first beam (radians).
        angle_increment: Heading step between beams (radians).
        range_min: Shortest valid range (meters).
        range_max: Longest valid range (meters). Returns at or beyond it
            mean "no obstacle seen".
        ranges: Measured ranges, shape (B,). NaN, inf and non-positive
            values are allowed and are handled by the sensor model.

    Example:
        >>> scan = LaserScan("laser", 0.0, -np.pi / 2, np.pi / 180, 0.05, 10.0,
        ...                  np.full(181, 3.0))
        >>> scan.angles().shape
        (181,)
    """

    frame_id: str
    stamp: float
    angle_min: float
    angle_increment: float
    range_min: float
    range_max: float
    ranges: np.ndarray

    def __post_init__(self) -> None:
        """Validate scan metadata."""
        self.ranges = np.asarray(self.ranges, dtype=np.float64).ravel()
        if not np.isfinite(self.angle_min) or not np.isfinite(self.angle_increment):
            raise ValueError("angle_min and angle_increment must be finite")
        if not (np.isfinite(self.range_max) and self.range_max > 0):
            raise ValueError(f"range_max must be positive and finite, got {self.range_max}")
        if self.range_min < 0 or self.range_min >= self.range_max:
            raise ValueError(
                f"range_min must be in [0, range_max), got {self.range_min}"
            )

    def __len__(self) -> int:
        return self.ranges.shape[0]

    @property
    def angle_max(self) -> float:
        """Heading of the last beam (radians)."""
        return self.angle_min + (len(self) - 1) * self.angle_increment

    def angles(self) -> np.ndarray:
        """Heading of every beam in the laser frame, shape (B,)."""
        return self.angle_min + np.arange(len(self)) * self.angle_increment

    def to_points(self) -> np.ndarray:
        """
        Valid returns as (M, 2) points in the laser frame.

        Beams that are NaN, out of [range_min, range_max) are dropped.
        """
        r = self.ranges
        with np.errstate(invalid="ignore"):
            valid = np.isfinite(r) & (r >= self.range_min) & (r < self.range_max)
        a = self.angles()[valid]
        return np.column_stack([r[valid] * np.cos(a), r[valid] * np.sin(a)])


@dataclass
class InitialPoseRequest:
    """
    External request to re-initialize the belief around a pose.

    Attributes:
        stamp: Request time (seconds).
        frame_id: Frame the pose is expressed in (normally the map frame).
        pose: Requested robot pose.
        covariance: Optional 3×3 covariance of [x, y, yaw]. Kept for the
            record; the filter resets to a fixed box.
    """

    stamp: float
    frame_id: str
    pose: Pose2
    covariance: Optional[np.ndarray] = None


@dataclass
class ParticleArray:
    """
    Snapshot of the particle population for visualization.

    Attributes:
        frame_id: Frame of the poses (the map frame).
        stamp: Time of the scan that produced the population (seconds).
        poses: Particle poses, shape (N, 3).
        weights: Particle weights, shape (N,).
    """

    frame_id: str
    stamp: float
    poses: np.ndarray
    weights: np.ndarray

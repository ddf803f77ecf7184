"""
Weighted particle population for Monte Carlo localization.

A ParticleSet holds N pose hypotheses [x, y, yaw] and their non-negative
weights. The motion model moves the poses, the sensor model multiplies the
weights, and the set itself owns the operations that need the weights as a
distribution: resampling and the mean pose.

Implements:
    - Uniform lattice initialization over a position box and heading range
    - Systematic (low-variance) resampling
    - Weighted mean pose with circular mean heading
"""

import math
import warnings
from dataclasses import dataclass
from typing import List, Optional, Sequence

import numpy as np

from mcl.geometry import Pose2, circular_mean, wrap_angle


@dataclass
class Sample:
    """One weighted pose hypothesis."""

    pose: Pose2
    weight: float


def _lattice(lo: float, hi: float, resolution: float, name: str) -> np.ndarray:
    """Grid nodes spanning [lo, hi], both ends included, spaced at most `resolution`."""
    if not np.isfinite(lo) or not np.isfinite(hi):
        raise ValueError(f"{name} range must be finite, got [{lo}, {hi}]")
    if hi < lo:
        raise ValueError(f"{name} range is inverted: [{lo}, {hi}]")
    extent = hi - lo
    if extent == 0.0:
        return np.array([lo], dtype=np.float64)
    if not resolution > 0:
        raise ValueError(f"{name} resolution must be positive, got {resolution}")
    # Guard against 1.0 / 0.5 evaluating to 2.0000000000000004
    n_steps = max(1, math.ceil(extent / resolution - 1e-9))
    return np.linspace(lo, hi, n_steps + 1)


def _heading_lattice(lo: float, hi: float, resolution: float) -> np.ndarray:
    """Heading nodes; a range covering the full circle omits the node that repeats `lo`."""
    if not (np.isfinite(lo) and np.isfinite(hi)) or hi - lo < 2.0 * np.pi - 1e-9:
        return _lattice(lo, hi, resolution, "angle")
    if not resolution > 0:
        raise ValueError(f"angle resolution must be positive, got {resolution}")
    n = max(1, math.ceil(2.0 * np.pi / resolution - 1e-9))
    return lo + 2.0 * np.pi * np.arange(n) / n


class ParticleSet:
    """
    Ordered collection of weighted pose hypotheses.

    Attributes:
        poses: Particle poses, shape (N, 3), rows [x, y, yaw].
        weights: Particle weights, shape (N,). Not necessarily normalized;
            consumers that need a distribution normalize on the fly.

    Example:
        >>> ps = ParticleSet()
        >>> ps.init_uniform([0, 0], [1, 1], 0.5, 0.0, 0.0, 1.0)
        >>> len(ps)
        9
        >>> ps.resample(100)
        >>> len(ps)
        100
    """

    def __init__(
        self,
        poses: Optional[np.ndarray] = None,
        weights: Optional[np.ndarray] = None,
    ):
        """
        Create a particle set, empty unless poses are given.

        Args:
            poses: Initial poses, shape (N, 3).
            weights: Initial weights, shape (N,). Uniform if None.

        Raises:
            ValueError: If shapes are inconsistent or weights are negative.
        """
        if poses is None:
            self.poses = np.zeros((0, 3), dtype=np.float64)
            self.weights = np.zeros(0, dtype=np.float64)
            return

        poses = np.array(poses, dtype=np.float64)
        if poses.ndim != 2 or poses.shape[1] != 3:
            raise ValueError(f"poses must have shape (N, 3), got {poses.shape}")
        n = poses.shape[0]
        if weights is None:
            weights = np.full(n, 1.0 / n) if n > 0 else np.zeros(0)
        weights = np.array(weights, dtype=np.float64)
        if weights.shape != (n,):
            raise ValueError(f"weights must have shape ({n},), got {weights.shape}")
        if np.any(weights < 0):
            raise ValueError("weights must be non-negative")

        poses[:, 2] = wrap_angle(poses[:, 2])
        self.poses = poses
        self.weights = weights

    def __len__(self) -> int:
        return self.poses.shape[0]

    @property
    def empty(self) -> bool:
        """True if the set holds no samples (filter not initialized)."""
        return len(self) == 0

    def samples(self) -> List[Sample]:
        """Return the population as a list of Sample objects."""
        return [
            Sample(pose=Pose2.from_array(p), weight=float(w))
            for p, w in zip(self.poses, self.weights)
        ]

    def clear(self) -> None:
        """Drop every sample."""
        self.poses = np.zeros((0, 3), dtype=np.float64)
        self.weights = np.zeros(0, dtype=np.float64)

    # ------------------------------------------------------------------
    # Initialization
    # ------------------------------------------------------------------

    def init_uniform(
        self,
        min_corner: Sequence[float],
        max_corner: Sequence[float],
        position_resolution: float,
        min_angle: float,
        max_angle: float,
        angle_resolution: float,
    ) -> None:
        """
        Replace the population with a regular lattice over a pose box.

        One sample is placed on every node of the grid
        x-nodes × y-nodes × yaw-nodes, all with weight 1/N. Each dimension
        has ceil(extent / resolution) + 1 nodes, spread evenly so both ends
        of the range are included; a zero-extent dimension has exactly one
        node. E.g. the box [0, 0]-[1, 1] at resolution 0.5 gives nodes
        {0, 0.5, 1} per axis, a 3×3 grid. A heading range spanning
        2π or more gets ceil(2π / angle_resolution) evenly spaced headings
        starting at min_angle, so no heading appears twice.

        Args:
            min_corner: Lower corner [x_min, y_min] (meters).
            max_corner: Upper corner [x_max, y_max] (meters).
            position_resolution: Maximum lattice spacing in x and y (meters).
            min_angle: Lower heading bound (radians).
            max_angle: Upper heading bound (radians).
            angle_resolution: Maximum heading spacing (radians).

        Raises:
            ValueError: If a range is inverted or a resolution is not positive
                for a non-empty range.
        """
        min_corner = np.asarray(min_corner, dtype=np.float64)
        max_corner = np.asarray(max_corner, dtype=np.float64)
        if min_corner.shape != (2,) or max_corner.shape != (2,):
            raise ValueError(
                f"corners must have shape (2,), got {min_corner.shape} and {max_corner.shape}"
            )

        xs = _lattice(min_corner[0], max_corner[0], position_resolution, "x")
        ys = _lattice(min_corner[1], max_corner[1], position_resolution, "y")
        yaws = _heading_lattice(float(min_angle), float(max_angle), angle_resolution)

        X, Y, A = np.meshgrid(xs, ys, yaws, indexing="ij")
        poses = np.column_stack([X.ravel(), Y.ravel(), wrap_angle(A.ravel())])

        self.poses = poses
        self.weights = np.full(len(poses), 1.0 / len(poses))

    def init_around(
        self,
        pose: Pose2,
        xy_extent: float = 0.3,
        xy_resolution: float = 0.05,
        yaw_extent: float = 0.1,
        yaw_resolution: float = 0.05,
    ) -> None:
        """
        Re-initialize on a small box centred on a known pose.

        Used for "set initial pose" requests: ±xy_extent around (x, y) and
        ±yaw_extent around yaw.
        """
        center = pose.translation
        self.init_uniform(
            center - xy_extent,
            center + xy_extent,
            xy_resolution,
            pose.yaw - yaw_extent,
            pose.yaw + yaw_extent,
            yaw_resolution,
        )

    # ------------------------------------------------------------------
    # Weights
    # ------------------------------------------------------------------

    def total_weight(self) -> float:
        """Sum of the raw weights."""
        return float(np.sum(self.weights))

    def has_valid_weights(self) -> bool:
        """True if the weights sum to a positive finite value."""
        total = self.total_weight()
        return bool(np.isfinite(total) and total > 0.0)

    def normalized_weights(self) -> np.ndarray:
        """
        Weights scaled to sum to one.

        Falls back to equal weights when the sum is zero or not finite.
        """
        n = len(self)
        if n == 0:
            return np.zeros(0)
        if not self.has_valid_weights():
            return np.full(n, 1.0 / n)
        return self.weights / self.total_weight()

    def effective_sample_size(self) -> float:
        """
        Effective sample size N_eff = 1 / Σ(wᵢ²) of the normalized weights.

        Returns 0.0 for an empty set.
        """
        if self.empty:
            return 0.0
        w = self.normalized_weights()
        return float(1.0 / np.sum(w**2))

    def weight_variance(self) -> float:
        """Variance of the normalized weights (0 for a uniform population)."""
        if self.empty:
            return 0.0
        return float(np.var(self.normalized_weights()))

    # ------------------------------------------------------------------
    # Resampling
    # ------------------------------------------------------------------

    def resample(self, target_count: int, rng: Optional[np.random.Generator] = None) -> None:
        """
        Draw a new population of exactly `target_count` samples.

        Systematic resampling: one random offset u0 ~ U[0, 1/M), then the
        M evenly spaced pointers u0 + i/M walk the cumulative weight once.
        O(N + M) and lower variance than independent multinomial draws.
        All weights are reset to 1/M afterwards.

        If the weights do not sum to a positive finite value (every
        particle was rejected by the sensor model), the previous poses are
        resampled as if equally weighted, which keeps the belief where it
        was instead of failing. A RuntimeWarning is emitted.

        Args:
            target_count: Number of samples after resampling (>= 1).
            rng: Random generator. If None, uses np.random.default_rng().

        Raises:
            ValueError: If target_count < 1.
        """
        target_count = int(target_count)
        if target_count < 1:
            raise ValueError(f"target_count must be >= 1, got {target_count}")
        if self.empty:
            return
        if rng is None:
            rng = np.random.default_rng()

        if not self.has_valid_weights():
            warnings.warn(
                f"Particle weights sum to {self.total_weight()}; resampling the "
                "previous population with equal weights.",
                RuntimeWarning,
            )

        w = self.normalized_weights()
        cumsum = np.cumsum(w)
        cumsum[-1] = 1.0  # absorb round-off so every pointer lands

        u0 = rng.uniform(0.0, 1.0 / target_count)
        u = u0 + np.arange(target_count) / target_count
        indices = np.searchsorted(cumsum, u, side="right")
        indices = np.minimum(indices, len(self) - 1)

        self.poses = self.poses[indices].copy()
        self.weights = np.full(target_count, 1.0 / target_count)

    # ------------------------------------------------------------------
    # Estimation
    # ------------------------------------------------------------------

    def calculate_mean_pose(self) -> Optional[Pose2]:
        """
        Weighted mean pose of the population.

        Position is the weighted average of the translations. Heading is the
        weighted circular mean (average of unit direction vectors), so
        hypotheses at +179° and -179° average to 180°, not 0°.

        Returns:
            Mean pose, or None if the set is empty.
        """
        if self.empty:
            return None
        w = self.normalized_weights()
        x = float(np.dot(w, self.poses[:, 0]))
        y = float(np.dot(w, self.poses[:, 1]))
        yaw = circular_mean(self.poses[:, 2], w)
        return Pose2(x=x, y=y, yaw=yaw)

    def covariance(self) -> Optional[np.ndarray]:
        """
        Weighted 3×3 covariance of [x, y, yaw] around the mean pose.

        Heading residuals are wrapped before squaring. Returns None if the
        set is empty.
        """
        mean = self.calculate_mean_pose()
        if mean is None:
            return None
        w = self.normalized_weights()
        diff = self.poses - mean.to_array()
        diff[:, 2] = wrap_angle(diff[:, 2])
        return (w[:, np.newaxis, np.newaxis] * diff[:, :, np.newaxis] * diff[:, np.newaxis, :]).sum(axis=0)

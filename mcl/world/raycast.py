"""Ray casting against 2D line segments.

Predicts what a range sensor would measure from a given pose: every beam is
a ray, and the expected range is the distance to the closest segment it
hits. Rays that hit nothing report the sensor's maximum range, so callers
never see an unbounded or undefined expected range.

Two flavours:
    - ray_segment_intersection: one ray against one segment (reference
      implementation, used for checks and small problems)
    - cast_rays: many origins × many beams × many segments, vectorized

Author: Navigation Engineer
Date: 2025
"""

from typing import Optional, Tuple

import numpy as np


def ray_segment_intersection(
    ray_origin: np.ndarray,
    ray_direction: np.ndarray,
    segment_start: np.ndarray,
    segment_end: np.ndarray,
) -> Tuple[Optional[np.ndarray], float]:
    """Compute intersection between a ray and a line segment.

    Uses parametric line equations:
        Ray: P = origin + t * direction (t >= 0)
        Segment: Q = start + s * (end - start) (0 <= s <= 1)

    Args:
        ray_origin: Ray starting point [x, y].
        ray_direction: Ray direction vector [dx, dy] (should be normalized).
        segment_start: Segment start point [x, y].
        segment_end: Segment end point [x, y].

    Returns:
        Tuple of (intersection_point, distance):
            - intersection_point: [x, y] if intersection exists, None otherwise
            - distance: Distance along ray to intersection (inf if none)
    """
    o = np.asarray(ray_origin, dtype=float)
    d = np.asarray(ray_direction, dtype=float)
    s_start = np.asarray(segment_start, dtype=float)
    s_dir = np.asarray(segment_end, dtype=float) - s_start

    # Degenerate segment (zero length)
    if np.dot(s_dir, s_dir) < 1e-10:
        return None, float("inf")

    # o + t*d = s_start + u*s_dir, solved with Cramer's rule
    diff = s_start - o
    det = d[0] * s_dir[1] - d[1] * s_dir[0]

    # Parallel
    if abs(det) < 1e-10:
        return None, float("inf")

    t = (diff[0] * s_dir[1] - diff[1] * s_dir[0]) / det
    u = (diff[0] * d[1] - diff[1] * d[0]) / det

    if t < 0 or u < 0 or u > 1:
        return None, float("inf")

    return o + t * d, float(t)


def cast_rays(
    origins: np.ndarray,
    angles: np.ndarray,
    starts: np.ndarray,
    ends: np.ndarray,
    max_range: float,
) -> np.ndarray:
    """Nearest-hit distance for a batch of rays against a set of segments.

    Args:
        origins: Ray origins, shape (P, 2) or (2,).
        angles: Beam headings in the map frame, shape (P, B) or (B,).
            A (B,) array is shared by every origin.
        starts: Segment start points, shape (K, 2).
        ends: Segment end points, shape (K, 2).
        max_range: Range reported for rays that hit nothing, and the cap
            for every distance.

    Returns:
        Distances of shape (P, B), or (B,) when a single (2,) origin is
        given. Every value is finite and within [0, max_range].

    Raises:
        ValueError: If shapes are inconsistent or max_range is not positive.

    Notes:
        Memory is O(P·B·K); callers with large populations should pass
        particles in chunks.
    """
    if not (np.isfinite(max_range) and max_range > 0):
        raise ValueError(f"max_range must be positive and finite, got {max_range}")

    origins = np.asarray(origins, dtype=np.float64)
    angles = np.asarray(angles, dtype=np.float64)
    single = origins.ndim == 1
    origins = np.atleast_2d(origins)
    if origins.shape[1] != 2:
        raise ValueError(f"origins must have shape (P, 2), got {origins.shape}")
    n_origins = origins.shape[0]
    if angles.ndim == 1:
        angles = np.broadcast_to(angles, (n_origins, angles.shape[0]))
    if angles.ndim != 2 or angles.shape[0] != n_origins:
        raise ValueError(
            f"angles must have shape (B,) or ({n_origins}, B), got {angles.shape}"
        )

    starts = np.asarray(starts, dtype=np.float64).reshape(-1, 2)
    ends = np.asarray(ends, dtype=np.float64).reshape(-1, 2)
    if starts.shape != ends.shape:
        raise ValueError(f"starts {starts.shape} and ends {ends.shape} differ")

    if starts.shape[0] == 0 or angles.shape[1] == 0:
        out = np.full(angles.shape, float(max_range))
        return out[0] if single else out

    # (P, B, 1) ray directions, (P, 1, K) offsets, (1, 1, K) segment vectors
    dx = np.cos(angles)[:, :, np.newaxis]
    dy = np.sin(angles)[:, :, np.newaxis]
    seg = ends - starts
    ex = seg[:, 0][np.newaxis, np.newaxis, :]
    ey = seg[:, 1][np.newaxis, np.newaxis, :]
    diff_x = (starts[:, 0][np.newaxis, :] - origins[:, 0:1])[:, np.newaxis, :]
    diff_y = (starts[:, 1][np.newaxis, :] - origins[:, 1:2])[:, np.newaxis, :]

    det = dx * ey - dy * ex
    with np.errstate(divide="ignore", invalid="ignore"):
        t = (diff_x * ey - diff_y * ex) / det
        u = (diff_x * dy - diff_y * dx) / det

    valid = (np.abs(det) > 1e-10) & (t >= 0.0) & (u >= 0.0) & (u <= 1.0)
    t = np.where(valid, t, np.inf)

    out = np.minimum(t.min(axis=2), float(max_range))
    return out[0] if single else out

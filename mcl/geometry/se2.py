"""SE(2) operations on [x, y, yaw] arrays.

Rigid transformations in the plane, used for particle propagation
(pose ∘ odometry delta), laser mounting (particle ∘ laser offset) and the
map→odom correction published every cycle.

Key functions:
    - se2_compose: Compose two SE(2) poses (p1 ⊕ p2)
    - se2_compose_batch: Compose N poses with one or N deltas
    - se2_inverse: Invert an SE(2) pose (p⁻¹)
    - se2_apply: Transform points by an SE(2) pose
    - wrap_angle: Normalize angle to [-π, π]
    - circular_mean: Weighted mean of headings

SE(2) representation: poses are NumPy arrays [x, y, yaw] of shape (3,),
batches of poses are arrays of shape (N, 3).

Author: Navigation Engineer
Date: 2025
"""

from typing import Optional

import numpy as np


def wrap_angle(theta):
    """
    Normalize angle(s) to the range [-π, π].

    Args:
        theta: Angle in radians, scalar or array.

    Returns:
        Wrapped angle(s), same shape as the input.

    Examples:
        >>> wrap_angle(3 * np.pi)
        3.141592653589793
        >>> wrap_angle(np.pi + 0.1)
        -3.0415926535897927

    Notes:
        Uses atan2(sin θ, cos θ), which handles all edge cases.
    """
    return np.arctan2(np.sin(theta), np.cos(theta))


def _check_pose(p: np.ndarray, name: str) -> np.ndarray:
    p = np.asarray(p, dtype=np.float64)
    if p.shape != (3,):
        raise ValueError(f"{name} must have shape (3,), got {p.shape}")
    return p


def se2_compose(p1: np.ndarray, p2: np.ndarray) -> np.ndarray:
    """
    Compose two SE(2) poses: p_result = p1 ⊕ p2.

    The composition formula for SE(2):
        x = x1 + x2*cos(yaw1) - y2*sin(yaw1)
        y = y1 + x2*sin(yaw1) + y2*cos(yaw1)
        yaw = yaw1 + yaw2  (wrapped to [-π, π])

    Args:
        p1: First pose [x1, y1, yaw1].
        p2: Second pose [x2, y2, yaw2], expressed in the frame of p1.

    Returns:
        Composed pose [x, y, yaw] of shape (3,).

    Raises:
        ValueError: If poses do not have shape (3,).

    Examples:
        >>> # After a 90° rotation, forward becomes left
        >>> result = se2_compose(np.array([0, 0, np.pi/2]), np.array([1, 0, 0]))
        >>> np.allclose(result, [0, 1, np.pi/2])
        True
    """
    x1, y1, yaw1 = _check_pose(p1, "p1")
    x2, y2, yaw2 = _check_pose(p2, "p2")

    cos_yaw1 = np.cos(yaw1)
    sin_yaw1 = np.sin(yaw1)

    x_result = x1 + x2 * cos_yaw1 - y2 * sin_yaw1
    y_result = y1 + x2 * sin_yaw1 + y2 * cos_yaw1
    yaw_result = wrap_angle(yaw1 + yaw2)

    return np.array([x_result, y_result, yaw_result], dtype=np.float64)


def se2_compose_batch(poses: np.ndarray, deltas: np.ndarray) -> np.ndarray:
    """
    Compose a batch of poses with one shared delta or one delta per pose.

    Vectorized version of se2_compose used to move every particle at once.

    Args:
        poses: Poses of shape (N, 3).
        deltas: Delta of shape (3,) applied to every pose, or (N, 3).

    Returns:
        Composed poses of shape (N, 3).

    Raises:
        ValueError: If shapes are inconsistent.
    """
    poses = np.asarray(poses, dtype=np.float64)
    deltas = np.asarray(deltas, dtype=np.float64)
    if poses.ndim != 2 or poses.shape[1] != 3:
        raise ValueError(f"poses must have shape (N, 3), got {poses.shape}")
    if deltas.shape != (3,) and deltas.shape != poses.shape:
        raise ValueError(
            f"deltas must have shape (3,) or {poses.shape}, got {deltas.shape}"
        )
    deltas = np.broadcast_to(deltas, poses.shape)

    cos_yaw = np.cos(poses[:, 2])
    sin_yaw = np.sin(poses[:, 2])

    out = np.empty_like(poses)
    out[:, 0] = poses[:, 0] + deltas[:, 0] * cos_yaw - deltas[:, 1] * sin_yaw
    out[:, 1] = poses[:, 1] + deltas[:, 0] * sin_yaw + deltas[:, 1] * cos_yaw
    out[:, 2] = wrap_angle(poses[:, 2] + deltas[:, 2])
    return out


def se2_inverse(p: np.ndarray) -> np.ndarray:
    """
    Compute the inverse of an SE(2) pose: p_inv = p⁻¹.

    The inverse formula for SE(2):
        x_inv = -(x*cos(yaw) + y*sin(yaw))
        y_inv = -(-x*sin(yaw) + y*cos(yaw))
        yaw_inv = -yaw

    Args:
        p: Pose [x, y, yaw].

    Returns:
        Inverted pose of shape (3,), such that p ⊕ p⁻¹ = identity.
    """
    x, y, yaw = _check_pose(p, "p")

    cos_yaw = np.cos(yaw)
    sin_yaw = np.sin(yaw)

    x_inv = -(x * cos_yaw + y * sin_yaw)
    y_inv = -(-x * sin_yaw + y * cos_yaw)
    yaw_inv = wrap_angle(-yaw)

    return np.array([x_inv, y_inv, yaw_inv], dtype=np.float64)


def se2_apply(p: np.ndarray, points: np.ndarray) -> np.ndarray:
    """
    Transform 2D points by an SE(2) pose: R(yaw) * points + [x, y].

    Args:
        p: Pose [x, y, yaw].
        points: Points of shape (N, 2).

    Returns:
        Transformed points of shape (N, 2).

    Raises:
        ValueError: If points does not have shape (N, 2).
    """
    x, y, yaw = _check_pose(p, "p")
    points = np.asarray(points, dtype=np.float64)
    if points.ndim != 2 or points.shape[1] != 2:
        raise ValueError(f"points must have shape (N, 2), got {points.shape}")

    cos_yaw = np.cos(yaw)
    sin_yaw = np.sin(yaw)
    R = np.array([[cos_yaw, -sin_yaw], [sin_yaw, cos_yaw]], dtype=np.float64)

    return (R @ points.T).T + np.array([x, y], dtype=np.float64)


def se2_relative(p_from: np.ndarray, p_to: np.ndarray) -> np.ndarray:
    """
    Relative pose between two poses of the same frame: p_from⁻¹ ⊕ p_to.

    This is how the odometry delta between two consecutive cycles is
    obtained from two absolute odom→base_link readings.
    """
    return se2_compose(se2_inverse(p_from), p_to)


def se2_to_matrix(p: np.ndarray) -> np.ndarray:
    """
    Convert SE(2) pose to 3x3 homogeneous transformation matrix.

        T = [[cos(yaw), -sin(yaw), x],
             [sin(yaw),  cos(yaw), y],
             [       0,         0, 1]]
    """
    x, y, yaw = _check_pose(p, "p")
    cos_yaw = np.cos(yaw)
    sin_yaw = np.sin(yaw)

    return np.array(
        [[cos_yaw, -sin_yaw, x], [sin_yaw, cos_yaw, y], [0.0, 0.0, 1.0]],
        dtype=np.float64,
    )


def se2_from_matrix(T: np.ndarray) -> np.ndarray:
    """
    Convert 3x3 homogeneous transformation matrix to SE(2) pose.

    The yaw is re-extracted with atan2, so a slightly non-orthonormal
    rotation block yields the nearest valid rotation.

    Raises:
        ValueError: If T does not have shape (3, 3).
    """
    T = np.asarray(T, dtype=np.float64)
    if T.shape != (3, 3):
        raise ValueError(f"T must have shape (3, 3), got {T.shape}")

    yaw = np.arctan2(T[1, 0], T[0, 0])
    return np.array([T[0, 2], T[1, 2], yaw], dtype=np.float64)


def circular_mean(angles: np.ndarray, weights: Optional[np.ndarray] = None) -> float:
    """
    Weighted circular mean of headings.

    Averages the unit vectors (cos θ, sin θ) and returns the heading of the
    resultant. Linear averaging is wrong near the ±π seam: +179° and -179°
    average to 0° linearly but to 180° on the circle.

    Args:
        angles: Headings in radians, shape (N,).
        weights: Non-negative weights, shape (N,). Equal weights if None.

    Returns:
        Mean heading in [-π, π]. Returns 0.0 if the resultant vanishes
        (e.g. two opposite headings with equal weight).

    Examples:
        >>> mean = circular_mean(np.radians([179.0, -179.0]))
        >>> np.isclose(abs(mean), np.pi)
        True
    """
    angles = np.asarray(angles, dtype=np.float64)
    if weights is None:
        weights = np.ones_like(angles)
    weights = np.asarray(weights, dtype=np.float64)
    if weights.shape != angles.shape:
        raise ValueError(
            f"weights shape {weights.shape} does not match angles shape {angles.shape}"
        )

    s = np.sum(weights * np.sin(angles))
    c = np.sum(weights * np.cos(angles))
    if abs(s) < 1e-15 and abs(c) < 1e-15:
        return 0.0
    return float(np.arctan2(s, c))

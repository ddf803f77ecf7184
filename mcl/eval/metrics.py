"""
Evaluation metrics for pose estimates.

Compares estimated trajectories with ground truth: position errors, heading
errors with proper wrapping, and summary statistics.
"""

from typing import Dict, Optional, Sequence, Union

import numpy as np

from mcl.geometry import Pose2, wrap_angle


def _as_pose_array(poses) -> np.ndarray:
    if len(poses) and isinstance(poses[0], Pose2):
        return np.array([p.to_array() for p in poses])
    return np.asarray(poses, dtype=np.float64).reshape(-1, 3)


def compute_pose_errors(
    truth: Union[np.ndarray, Sequence[Pose2]],
    estimated: Union[np.ndarray, Sequence[Pose2]],
) -> Dict[str, np.ndarray]:
    """
    Position and heading errors between two trajectories.

    Args:
        truth: True poses, shape (N, 3) or a list of Pose2.
        estimated: Estimated poses, same length.

    Returns:
        Dictionary with:
            - 'position': Euclidean position errors, shape (N,)
            - 'yaw': Wrapped heading errors estimated - truth, shape (N,)

    Raises:
        ValueError: If inputs have incompatible shapes.
    """
    truth = _as_pose_array(truth)
    estimated = _as_pose_array(estimated)
    if truth.shape != estimated.shape:
        raise ValueError(
            f"Shape mismatch: truth {truth.shape} vs estimated {estimated.shape}"
        )

    return {
        "position": np.linalg.norm(estimated[:, :2] - truth[:, :2], axis=1),
        "yaw": wrap_angle(estimated[:, 2] - truth[:, 2]),
    }


def compute_rmse(errors: np.ndarray, axis: Optional[int] = None) -> Union[float, np.ndarray]:
    """
    Compute Root Mean Square Error (RMSE).

    Args:
        errors: Error values, shape (N, d) or (N,)
        axis: None for a scalar RMSE, otherwise the axis to reduce.

    Returns:
        rmse: RMSE value(s)
    """
    errors = np.asarray(errors)

    if axis is None:
        return float(np.sqrt(np.mean(errors**2)))
    return np.sqrt(np.mean(errors**2, axis=axis))


def compute_error_stats(errors: np.ndarray) -> Dict[str, float]:
    """
    Summary statistics of error magnitudes.

    Returns:
        Dictionary with 'mean', 'median', 'rmse', 'p95' and 'max'.
    """
    errors = np.asarray(errors)
    magnitudes = np.linalg.norm(errors, axis=1) if errors.ndim > 1 else np.abs(errors)

    return {
        "mean": float(np.mean(magnitudes)),
        "median": float(np.median(magnitudes)),
        "rmse": float(np.sqrt(np.mean(magnitudes**2))),
        "p95": float(np.percentile(magnitudes, 95)),
        "max": float(np.max(magnitudes)),
    }

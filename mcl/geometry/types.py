"""Pose and transform types for 2D localization.

Key types:
    - Pose2: SE(2) pose [x, y, yaw] with rotation-matrix views
    - StampedTransform: Pose2 between two named frames at a time stamp,
      plus the vertical offset the 2D pose drops

Poses are stored with a yaw angle rather than a 2x2 matrix. A yaw angle
always describes a valid rotation, so composition can never drift away
from det(R) = 1; matrices handed in through `Pose2.from_matrix` are
renormalised by re-extracting the angle.

Author: Navigation Engineer
Date: 2025
"""

from dataclasses import dataclass
from typing import Optional

import numpy as np

from .se2 import se2_apply, se2_compose, se2_inverse, wrap_angle


@dataclass(frozen=True)
class Pose2:
    """
    SE(2) pose: position (x, y) and heading yaw.

    Attributes:
        x: Position along the x-axis (meters).
        y: Position along the y-axis (meters).
        yaw: Heading (radians), counter-clockwise from +x. Wrapped to
             [-π, π] on construction.

    Examples:
        >>> p = Pose2(x=1.0, y=2.0, yaw=np.pi / 2)
        >>> p.compose(Pose2(1.0, 0.0, 0.0))
        Pose2(x=1.0000, y=3.0000, yaw=1.5708)
        >>> p.compose(p.inverse()).is_identity()
        True
    """

    x: float
    y: float
    yaw: float

    def __post_init__(self) -> None:
        """Validate pose values and wrap the heading."""
        if not np.isfinite(self.x):
            raise ValueError(f"x must be finite, got {self.x}")
        if not np.isfinite(self.y):
            raise ValueError(f"y must be finite, got {self.y}")
        if not np.isfinite(self.yaw):
            raise ValueError(f"yaw must be finite, got {self.yaw}")
        object.__setattr__(self, "x", float(self.x))
        object.__setattr__(self, "y", float(self.y))
        object.__setattr__(self, "yaw", float(wrap_angle(self.yaw)))

    def to_array(self) -> np.ndarray:
        """Return the pose as array [x, y, yaw] of shape (3,)."""
        return np.array([self.x, self.y, self.yaw], dtype=np.float64)

    @classmethod
    def from_array(cls, arr: np.ndarray) -> "Pose2":
        """
        Create Pose2 from array [x, y, yaw].

        Raises:
            ValueError: If array does not have shape (3,).
        """
        arr = np.asarray(arr, dtype=np.float64)
        if arr.shape != (3,):
            raise ValueError(f"Array must have shape (3,), got {arr.shape}")
        return cls(x=float(arr[0]), y=float(arr[1]), yaw=float(arr[2]))

    @classmethod
    def identity(cls) -> "Pose2":
        """Create identity pose (origin with zero rotation)."""
        return cls(x=0.0, y=0.0, yaw=0.0)

    @classmethod
    def from_matrix(cls, R: np.ndarray, t: np.ndarray) -> "Pose2":
        """
        Create Pose2 from a 2x2 rotation and a 2D translation.

        The heading is re-extracted with atan2(R[1,0], R[0,0]), so a
        rotation that drifted from orthonormality (e.g. after being read
        from a 3D transform) is projected back onto a valid rotation.

        Args:
            R: Rotation matrix of shape (2, 2).
            t: Translation of shape (2,).

        Raises:
            ValueError: If shapes are wrong or the matrix has no rotation part.
        """
        R = np.asarray(R, dtype=np.float64)
        t = np.asarray(t, dtype=np.float64)
        if R.shape != (2, 2):
            raise ValueError(f"R must have shape (2, 2), got {R.shape}")
        if t.shape != (2,):
            raise ValueError(f"t must have shape (2,), got {t.shape}")
        if np.hypot(R[0, 0], R[1, 0]) < 1e-12:
            raise ValueError("R has a degenerate first column")
        yaw = np.arctan2(R[1, 0], R[0, 0])
        return cls(x=float(t[0]), y=float(t[1]), yaw=float(yaw))

    @property
    def rotation(self) -> np.ndarray:
        """2x2 rotation matrix R(yaw)."""
        c, s = np.cos(self.yaw), np.sin(self.yaw)
        return np.array([[c, -s], [s, c]], dtype=np.float64)

    @property
    def translation(self) -> np.ndarray:
        """Translation vector [x, y]."""
        return np.array([self.x, self.y], dtype=np.float64)

    def compose(self, other: "Pose2") -> "Pose2":
        """Return self ∘ other (other expressed in the frame of self)."""
        return Pose2.from_array(se2_compose(self.to_array(), other.to_array()))

    def inverse(self) -> "Pose2":
        """Return the inverse transform."""
        return Pose2.from_array(se2_inverse(self.to_array()))

    def apply(self, points: np.ndarray) -> np.ndarray:
        """Transform (N, 2) points from the local frame into the parent frame."""
        return se2_apply(self.to_array(), np.asarray(points, dtype=np.float64))

    def is_identity(self, tol: float = 0.0) -> bool:
        """True if every component is within `tol` of zero."""
        return abs(self.x) <= tol and abs(self.y) <= tol and abs(self.yaw) <= tol

    def __repr__(self) -> str:
        """Readable string representation."""
        return f"Pose2(x={self.x:.4f}, y={self.y:.4f}, yaw={self.yaw:.4f})"


@dataclass
class StampedTransform:
    """
    Rigid transform between two named frames.

    `pose` maps points from `child_frame` into `parent_frame`. `z` keeps the
    vertical offset of the child origin, which the 2D pose cannot carry
    (used for the laser mounting height).

    Attributes:
        parent_frame: Frame the pose is expressed in.
        child_frame: Frame the pose locates.
        stamp: Time stamp in seconds.
        pose: Planar part of the transform.
        z: Vertical offset of the child origin (meters).
    """

    parent_frame: str
    child_frame: str
    stamp: float
    pose: Pose2
    z: float = 0.0

    def inverse(self) -> "StampedTransform":
        """Swap parent and child frames."""
        return StampedTransform(
            parent_frame=self.child_frame,
            child_frame=self.parent_frame,
            stamp=self.stamp,
            pose=self.pose.inverse(),
            z=-self.z,
        )

    def compose(self, other: "StampedTransform", stamp: Optional[float] = None) -> "StampedTransform":
        """
        Chain parent←child with child←other.child.

        Raises:
            ValueError: If the frames do not chain.
        """
        if other.parent_frame != self.child_frame:
            raise ValueError(
                f"Cannot chain '{self.parent_frame}'<-'{self.child_frame}' "
                f"with '{other.parent_frame}'<-'{other.child_frame}'"
            )
        return StampedTransform(
            parent_frame=self.parent_frame,
            child_frame=other.child_frame,
            stamp=self.stamp if stamp is None else stamp,
            pose=self.pose.compose(other.pose),
            z=self.z + other.z,
        )

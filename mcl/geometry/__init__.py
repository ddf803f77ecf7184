"""2D geometry primitives for localization.

Provides the SE(2) pose type and the rigid-transform operations every other
module is built on: composition, inversion, point transforms, angle
wrapping and the circular mean used for heading estimates.

Example usage:
    >>> from mcl.geometry import Pose2
    >>> robot = Pose2(x=1.0, y=0.0, yaw=0.0)
    >>> laser_offset = Pose2(x=0.2, y=0.0, yaw=0.0)
    >>> robot.compose(laser_offset)
    Pose2(x=1.2000, y=0.0000, yaw=0.0000)
"""

from .se2 import (
    circular_mean,
    se2_apply,
    se2_compose,
    se2_compose_batch,
    se2_from_matrix,
    se2_inverse,
    se2_relative,
    se2_to_matrix,
    wrap_angle,
)
from .types import Pose2, StampedTransform

__all__ = [
    # Core types
    "Pose2",
    "StampedTransform",
    # SE(2) operations
    "se2_compose",
    "se2_compose_batch",
    "se2_inverse",
    "se2_apply",
    "se2_relative",
    "se2_to_matrix",
    "se2_from_matrix",
    "wrap_angle",
    "circular_mean",
]

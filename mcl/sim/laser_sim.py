"""Synthetic laser scans and odometry for tests and demos.

simulate_scan() ray-casts a planar laser against the world, so only the
closest obstacle along each beam is seen. simulate_odometry() drifts a
ground-truth trajectory the way wheel odometry does: every step's motion
is perturbed and integrated, so the error accumulates.

Author: Navigation Engineer
Date: 2025
"""

from typing import List, Optional, Sequence

import numpy as np

from mcl.geometry import Pose2, se2_compose, se2_relative
from mcl.sensors import LaserScan
from mcl.world import WorldModel, cast_rays, extract_map_lines


def simulate_scan(
    world: WorldModel,
    pose: Pose2,
    laser_offset: Optional[Pose2] = None,
    laser_height: float = 0.3,
    num_beams: int = 181,
    angle_min: float = -np.pi / 2,
    angle_max: float = np.pi / 2,
    range_min: float = 0.05,
    range_max: float = 10.0,
    noise_std: float = 0.0,
    frame_id: str = "laser",
    stamp: float = 0.0,
    rng: Optional[np.random.Generator] = None,
) -> LaserScan:
    """Generate a laser scan from a robot pose with proper occlusion.

    Args:
        world: World to slice at the laser height.
        pose: Robot (base_link) pose in the map frame.
        laser_offset: Laser frame in the robot frame (identity if None).
        laser_height: Height of the scan plane (meters).
        num_beams: Number of beams, spread evenly over [angle_min, angle_max].
        angle_min, angle_max: Field of view in the laser frame (radians).
        range_min, range_max: Sensor limits (meters).
        noise_std: Standard deviation of Gaussian range noise (meters).
            Beams that hit nothing report exactly range_max, without noise.
        frame_id: Laser frame name stored in the scan.
        stamp: Scan time (seconds).
        rng: Random generator for the noise.

    Returns:
        LaserScan in the laser frame.

    Example:
        >>> world = WorldModel.from_segments([([2, -5], [2, 5])])
        >>> scan = simulate_scan(world, Pose2(0, 0, 0), num_beams=3,
        ...                      angle_min=-0.1, angle_max=0.1)
        >>> bool(np.all(scan.ranges < 2.1))
        True
    """
    if num_beams < 1:
        raise ValueError(f"num_beams must be >= 1, got {num_beams}")
    if laser_offset is None:
        laser_offset = Pose2.identity()

    increment = (angle_max - angle_min) / (num_beams - 1) if num_beams > 1 else 0.0
    beam_angles = angle_min + np.arange(num_beams) * increment

    laser_pose = pose.compose(laser_offset)
    lines = extract_map_lines(world, laser_height)
    ranges = cast_rays(
        laser_pose.translation,
        laser_pose.yaw + beam_angles,
        lines.starts,
        lines.ends,
        range_max,
    )

    if noise_std > 0:
        if rng is None:
            rng = np.random.default_rng()
        hit = ranges < range_max
        noisy = ranges + rng.normal(0.0, noise_std, size=ranges.shape)
        # Clamp to the sensor limits, keep misses at max range
        noisy = np.clip(noisy, range_min, np.nextafter(range_max, 0.0))
        ranges = np.where(hit, noisy, ranges)

    return LaserScan(
        frame_id=frame_id,
        stamp=stamp,
        angle_min=angle_min,
        angle_increment=increment,
        range_min=range_min,
        range_max=range_max,
        ranges=ranges,
    )


def simulate_odometry(
    truth: Sequence[Pose2],
    sigma_trans: float = 0.01,
    sigma_rot: float = 0.005,
    rng: Optional[np.random.Generator] = None,
) -> List[Pose2]:
    """Integrate perturbed step motions of a ground-truth trajectory.

    Args:
        truth: Ground-truth poses in the map frame.
        sigma_trans: Per-step translation noise (meters).
        sigma_rot: Per-step rotation noise (radians).
        rng: Random generator.

    Returns:
        Odometry poses (odom frame), starting at the first truth pose.
    """
    if rng is None:
        rng = np.random.default_rng()
    if not truth:
        return []

    odom = [truth[0]]
    current = truth[0].to_array()
    for prev, curr in zip(truth[:-1], truth[1:]):
        if prev == curr:
            # Wheels report no motion while standing still
            delta = np.zeros(3)
        else:
            delta = se2_relative(prev.to_array(), curr.to_array()) + np.array([
                rng.normal(0.0, sigma_trans),
                rng.normal(0.0, sigma_trans),
                rng.normal(0.0, sigma_rot),
            ])
        current = se2_compose(current, delta)
        odom.append(Pose2.from_array(current))
    return odom

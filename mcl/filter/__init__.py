"""
Particle filter building blocks for Monte Carlo localization.

    - ParticleSet: weighted pose population, uniform init, resampling, mean pose
    - OdomModel: odometry motion model (prediction)
    - LaserModel: beam-model sensor likelihood against map line segments

One estimation cycle wires them as:
    odom_model.update_poses(delta, particle_set)
    laser_model.update_weights(world, scan, particle_set)
    particle_set.resample(num_particles)
    particle_set.calculate_mean_pose()
"""

from .laser_model import LaserModel
from .odom_model import OdomModel
from .particle_set import ParticleSet, Sample

__all__ = [
    "ParticleSet",
    "Sample",
    "OdomModel",
    "LaserModel",
]

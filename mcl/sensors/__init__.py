"""
Sensor and request message types.

Provides:
    - LaserScan: planar range scan with per-scan metadata
    - InitialPoseRequest: "set pose" command
    - ParticleArray: published particle population
"""

from .types import InitialPoseRequest, LaserScan, ParticleArray

__all__ = [
    "LaserScan",
    "InitialPoseRequest",
    "ParticleArray",
]

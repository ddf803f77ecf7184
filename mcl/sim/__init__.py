"""
Simulation utilities for localization tests and demos.

Provides synthetic laser scans (ray-cast against the world) and drifting
wheel odometry.
"""

from .laser_sim import simulate_odometry, simulate_scan

__all__ = [
    "simulate_scan",
    "simulate_odometry",
]

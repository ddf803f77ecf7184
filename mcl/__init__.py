"""Monte Carlo localization against 2D line maps.

This package contains the components of a particle-filter localizer for a
mobile robot with a planar laser:
- geometry: SE(2) poses and transforms
- filter: particle set, odometry motion model, laser sensor model
- world: world model, map line extraction, ray casting
- sensors: scan / request / particle message types
- localization: configuration, collaborator interfaces, cycle driver
- sim: synthetic scans and odometry
- eval: error metrics and plots
"""

__version__ = "0.1.0"

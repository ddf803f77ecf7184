"""Localization examples.

Examples:
    - example_mcl_localization.py: Particle filter tracking a robot with
      drifting odometry in an L-shaped room

Dependencies:
    - mcl.localization: Cycle driver, configuration, in-memory transforms
    - mcl.sim: Synthetic scans and odometry
    - matplotlib: Visualization (optional, with --save-dir)
"""

"""
Odometry motion model (prediction step).

Moves every particle by the relative motion measured by odometry and
spreads the population with zero-mean noise whose size grows with the
motion:

    σ_rot   = alpha1·|Δθ| + alpha2·|Δt|
    σ_trans = alpha3·|Δt| + alpha4·|Δθ|

where |Δt| is the distance traveled and |Δθ| the rotation. Each particle
receives its own noisy delta [dx + εx, dy + εy, dθ + εθ] (εx, εy ~ N(0, σ_trans²),
εθ ~ N(0, σ_rot²)), which is composed on the right: pose ← pose ∘ delta.
A zero delta leaves the population untouched, so a stationary robot does
not diffuse.
"""

from typing import Optional

import numpy as np

from mcl.geometry import Pose2, se2_compose_batch

from .particle_set import ParticleSet


class OdomModel:
    """
    Odometry-driven process model with motion-proportional noise.

    Attributes:
        alpha1: Rotation noise per radian of rotation.
        alpha2: Rotation noise per meter of translation (rad/m).
        alpha3: Translation noise per meter of translation.
        alpha4: Translation noise per radian of rotation (m/rad).

    Example:
        >>> model = OdomModel(alpha1=0.05, alpha2=0.05, alpha3=0.05, alpha4=0.05)
        >>> ps = ParticleSet(np.zeros((10, 3)))
        >>> model.update_poses(Pose2(1.0, 0.0, 0.0), ps)
    """

    def __init__(
        self,
        alpha1: float = 0.05,
        alpha2: float = 0.05,
        alpha3: float = 0.05,
        alpha4: float = 0.05,
        rng: Optional[np.random.Generator] = None,
    ):
        """
        Initialize the motion model.

        Args:
            alpha1..alpha4: Noise coefficients (non-negative).
            rng: Random generator. If None, uses np.random.default_rng().

        Raises:
            ValueError: If a coefficient is negative or not finite.
        """
        self.rng = rng if rng is not None else np.random.default_rng()
        self._set_alphas(alpha1, alpha2, alpha3, alpha4)

    def _set_alphas(self, alpha1, alpha2, alpha3, alpha4) -> None:
        alphas = (alpha1, alpha2, alpha3, alpha4)
        for i, a in enumerate(alphas, start=1):
            if not np.isfinite(a) or a < 0:
                raise ValueError(f"alpha{i} must be a non-negative number, got {a}")
        self.alpha1, self.alpha2, self.alpha3, self.alpha4 = (float(a) for a in alphas)

    def configure(self, config) -> None:
        """Re-read the noise coefficients from an OdomModelConfig."""
        self._set_alphas(config.alpha1, config.alpha2, config.alpha3, config.alpha4)

    def noise_std(self, delta: Pose2):
        """
        Noise standard deviations for a given motion.

        Returns:
            Tuple (sigma_trans, sigma_rot).
        """
        trans = float(np.hypot(delta.x, delta.y))
        rot = abs(delta.yaw)
        sigma_rot = self.alpha1 * rot + self.alpha2 * trans
        sigma_trans = self.alpha3 * trans + self.alpha4 * rot
        return sigma_trans, sigma_rot

    def update_poses(self, delta: Pose2, particle_set: ParticleSet, dt: float = 0.0) -> None:
        """
        Propagate every particle by the odometry delta plus noise.

        Args:
            delta: Robot motion since the previous cycle, in the robot frame
                at the start of the interval.
            particle_set: Population to update in place. Weights are not
                touched.
            dt: Elapsed time; kept for interface parity, unused.
        """
        if particle_set.empty or delta.is_identity():
            return

        sigma_trans, sigma_rot = self.noise_std(delta)
        n = len(particle_set)

        deltas = np.tile(delta.to_array(), (n, 1))
        if sigma_trans > 0:
            deltas[:, :2] += self.rng.normal(0.0, sigma_trans, size=(n, 2))
        if sigma_rot > 0:
            deltas[:, 2] += self.rng.normal(0.0, sigma_rot, size=n)

        particle_set.poses = se2_compose_batch(particle_set.poses, deltas)

"""
Laser beam sensor model (measurement update).

Scores each particle by comparing the measured scan with the ranges the
laser would measure from that particle, predicted by ray casting against
the map line segments.

Per-beam likelihood (beam model mixture):
    p(z | ẑ) = z_hit · N(z; ẑ, σ_hit²)
             + z_short · λ·exp(-λ z)     if z < ẑ   (unexpected obstacle)
             + z_rand / r_max                       (random return)

Special beams:
    - invalid (NaN, <= 0, below range_min): skipped, factor 1
    - max range (z >= r_max or +inf): z_max + z_rand / r_max, a bounded
      "no obstacle seen" likelihood independent of the prediction

Particle likelihood is the product over the evaluated beams, computed as
exp(Σ log p). It multiplies the particle weight; weights are never
renormalized here.

Cost is particles × beams × segments, so only every `beam_step`-th beam is
evaluated, and particles are processed in chunks that can run on worker
threads. Chunks write disjoint slices of the weight array and are all
joined before update_weights returns.
"""

import warnings
from concurrent.futures import ThreadPoolExecutor
from typing import Optional

import numpy as np

from mcl.geometry import Pose2, se2_compose_batch
from mcl.sensors import LaserScan
from mcl.world import MapLineCache, MapLineSegments, WorldModel, cast_rays

from .particle_set import ParticleSet

_LOG_FLOOR = 1e-300


class LaserModel:
    """
    Beam-model likelihood for planar laser scans against line maps.

    Attributes:
        z_hit, z_short, z_max, z_rand: Mixture weights.
        sigma_hit: Standard deviation of the hit term (meters).
        lambda_short: Rate of the short-reading term (1/meters).
        range_max: Maximum range override (meters). None uses the scan's.
        beam_step: Evaluate every beam_step-th beam.
        num_threads: Worker threads for the per-particle evaluation.
        chunk_size: Particles per work unit.

    Example:
        >>> model = LaserModel(beam_step=4)
        >>> model.set_laser_offset(Pose2(0.2, 0.0, 0.0), height=0.3)
        >>> model.update_weights(world, scan, particle_set)
    """

    def __init__(
        self,
        z_hit: float = 0.95,
        z_short: float = 0.1,
        z_max: float = 0.05,
        z_rand: float = 0.05,
        sigma_hit: float = 0.2,
        lambda_short: float = 0.1,
        range_max: Optional[float] = None,
        beam_step: int = 4,
        num_threads: int = 1,
        chunk_size: int = 256,
    ):
        """
        Initialize the sensor model.

        Raises:
            ValueError: If a parameter is out of range.
        """
        self._set_params(
            z_hit, z_short, z_max, z_rand, sigma_hit, lambda_short,
            range_max, beam_step, num_threads, chunk_size,
        )

        self._laser_offset: Optional[Pose2] = None
        self._laser_height = 0.0
        self._line_cache = MapLineCache()
        self._executor: Optional[ThreadPoolExecutor] = None

        # Diagnostics from the last update
        self.lines = MapLineSegments.empty()
        self.sensor_ranges = np.zeros(0)
        self.beam_angles = np.zeros(0)

    def _set_params(
        self, z_hit, z_short, z_max, z_rand, sigma_hit, lambda_short,
        range_max, beam_step, num_threads, chunk_size,
    ) -> None:
        for name, value in (
            ("z_hit", z_hit), ("z_short", z_short), ("z_max", z_max), ("z_rand", z_rand),
        ):
            if not np.isfinite(value) or value < 0:
                raise ValueError(f"{name} must be a non-negative number, got {value}")
        if z_hit + z_short + z_max + z_rand <= 0:
            raise ValueError("At least one mixture weight must be positive")
        if not sigma_hit > 0:
            raise ValueError(f"sigma_hit must be positive, got {sigma_hit}")
        if not lambda_short > 0:
            raise ValueError(f"lambda_short must be positive, got {lambda_short}")
        if range_max is not None and not (np.isfinite(range_max) and range_max > 0):
            raise ValueError(f"range_max must be positive and finite, got {range_max}")
        if int(beam_step) < 1:
            raise ValueError(f"beam_step must be >= 1, got {beam_step}")
        if int(num_threads) < 1:
            raise ValueError(f"num_threads must be >= 1, got {num_threads}")
        if int(chunk_size) < 1:
            raise ValueError(f"chunk_size must be >= 1, got {chunk_size}")
        if z_rand == 0:
            warnings.warn(
                "z_rand = 0: a single unexplained beam can drive a particle weight to zero.",
                RuntimeWarning,
            )

        self.z_hit = float(z_hit)
        self.z_short = float(z_short)
        self.z_max = float(z_max)
        self.z_rand = float(z_rand)
        self.sigma_hit = float(sigma_hit)
        self.lambda_short = float(lambda_short)
        self.range_max = None if range_max is None else float(range_max)
        self.beam_step = int(beam_step)
        self.chunk_size = int(chunk_size)

        num_threads = int(num_threads)
        if getattr(self, "num_threads", num_threads) != num_threads:
            self.close()
        self.num_threads = num_threads

    def configure(self, config) -> None:
        """Re-read the likelihood parameters from a LaserModelConfig."""
        self._set_params(
            config.z_hit, config.z_short, config.z_max, config.z_rand,
            config.sigma_hit, config.lambda_short, config.range_max,
            config.beam_step, config.num_threads, config.chunk_size,
        )

    # ------------------------------------------------------------------
    # Laser mounting
    # ------------------------------------------------------------------

    def set_laser_offset(self, offset: Pose2, height: float) -> None:
        """
        Set where the laser sits on the robot.

        Args:
            offset: Laser frame in the robot (base_link) frame.
            height: Height of the scan plane above the floor (meters).
        """
        self._laser_offset = offset
        self._laser_height = float(height)

    @property
    def has_laser_offset(self) -> bool:
        return self._laser_offset is not None

    @property
    def laser_offset(self) -> Pose2:
        """Laser frame in the robot frame (identity until set)."""
        return self._laser_offset if self._laser_offset is not None else Pose2.identity()

    @property
    def laser_height(self) -> float:
        return self._laser_height

    @property
    def lines_start(self) -> np.ndarray:
        return self.lines.starts

    @property
    def lines_end(self) -> np.ndarray:
        return self.lines.ends

    # ------------------------------------------------------------------
    # Likelihood
    # ------------------------------------------------------------------

    def effective_range_max(self, scan: LaserScan) -> float:
        return self.range_max if self.range_max is not None else float(scan.range_max)

    def beam_log_likelihoods(
        self,
        measured: np.ndarray,
        expected: np.ndarray,
        range_min: float,
        range_max: float,
    ) -> np.ndarray:
        """
        Log-likelihood of every beam for every particle.

        Args:
            measured: Measured ranges, shape (B,).
            expected: Predicted ranges, shape (P, B), each within [0, range_max].
            range_min: Shortest valid range (meters).
            range_max: Maximum range (meters).

        Returns:
            Log-likelihoods of shape (P, B); skipped beams contribute 0.
        """
        measured = np.asarray(measured, dtype=np.float64)
        with np.errstate(invalid="ignore"):
            invalid = np.isnan(measured) | (measured <= 0.0) | (measured < range_min)
            at_max = ~invalid & (measured >= range_max)
        normal = ~invalid & ~at_max

        z = np.where(normal, measured, 0.0)[np.newaxis, :]
        diff = z - expected

        p_rand = self.z_rand / range_max
        p = self.z_hit * np.exp(-0.5 * (diff / self.sigma_hit) ** 2) / (
            self.sigma_hit * np.sqrt(2.0 * np.pi)
        )
        p = p + np.where(
            z < expected, self.z_short * self.lambda_short * np.exp(-self.lambda_short * z), 0.0
        )
        p = p + p_rand

        log_p = np.log(np.maximum(p, _LOG_FLOOR))
        log_p[:, at_max] = np.log(max(self.z_max + p_rand, _LOG_FLOOR))
        log_p[:, invalid] = 0.0
        return log_p

    def _select_beams(self, scan: LaserScan):
        idx = np.arange(0, len(scan), self.beam_step)
        return scan.angles()[idx], scan.ranges[idx]

    def _predict_ranges(
        self,
        poses: np.ndarray,
        beam_angles: np.ndarray,
        lines: MapLineSegments,
        range_max: float,
    ) -> np.ndarray:
        """Expected ranges (P, B) for robot poses (P, 3)."""
        laser_poses = se2_compose_batch(poses, self.laser_offset.to_array())
        angles = laser_poses[:, 2:3] + beam_angles[np.newaxis, :]
        return cast_rays(laser_poses[:, :2], angles, lines.starts, lines.ends, range_max)

    def expected_ranges(self, pose: Pose2, scan: LaserScan, lines: MapLineSegments) -> np.ndarray:
        """
        Ranges the laser would measure from a robot pose, for every beam.

        Args:
            pose: Robot (base_link) pose in the map frame.
            scan: Scan providing the beam geometry.
            lines: Map segments.

        Returns:
            Ranges of shape (B,), capped at the maximum range.
        """
        return self._predict_ranges(
            pose.to_array()[np.newaxis, :], scan.angles(), lines, self.effective_range_max(scan)
        )[0]

    def _log_likelihood_chunk(
        self,
        poses: np.ndarray,
        beam_angles: np.ndarray,
        measured: np.ndarray,
        lines: MapLineSegments,
        range_min: float,
        range_max: float,
    ) -> np.ndarray:
        expected = self._predict_ranges(poses, beam_angles, lines, range_max)
        return self.beam_log_likelihoods(measured, expected, range_min, range_max).sum(axis=1)

    def _get_executor(self) -> ThreadPoolExecutor:
        if self._executor is None:
            self._executor = ThreadPoolExecutor(
                max_workers=self.num_threads, thread_name_prefix="laser_model"
            )
        return self._executor

    def update_weights(self, world: WorldModel, scan: LaserScan, particle_set: ParticleSet) -> None:
        """
        Multiply every particle weight by the likelihood of the scan.

        The product is formed in the log domain and rescaled so the largest
        weight is 1, so long scans neither overflow nor underflow. Weights
        are therefore known up to a common factor only.

        Args:
            world: World to slice into map line segments (cached until the
                world revision or the laser height changes).
            scan: Laser scan in the laser frame.
            particle_set: Population; weights updated in place, poses untouched.
        """
        lines = self._line_cache.get(world, self._laser_height)
        self.lines = lines

        beam_angles, measured = self._select_beams(scan)
        self.beam_angles = beam_angles
        self.sensor_ranges = measured

        if particle_set.empty or len(measured) == 0:
            return

        range_max = self.effective_range_max(scan)
        range_min = float(scan.range_min)
        n = len(particle_set)
        poses = particle_set.poses
        bounds = [(i, min(i + self.chunk_size, n)) for i in range(0, n, self.chunk_size)]

        def run(bound):
            lo, hi = bound
            return self._log_likelihood_chunk(
                poses[lo:hi], beam_angles, measured, lines, range_min, range_max
            )

        if self.num_threads > 1 and len(bounds) > 1:
            chunk_log_l = list(self._get_executor().map(run, bounds))
        else:
            chunk_log_l = [run(b) for b in bounds]

        log_l = np.concatenate(chunk_log_l)
        # Scaled so the best particle has weight 1
        with np.errstate(divide="ignore"):
            log_w = np.log(particle_set.weights) + log_l
        peak = np.max(log_w)
        if np.isfinite(peak):
            particle_set.weights = np.exp(log_w - peak)
        else:
            particle_set.weights = np.zeros_like(log_w)

    def close(self) -> None:
        """Shut down the worker threads, if any were started."""
        if self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None

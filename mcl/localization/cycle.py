"""Localization cycle: predict → weight → resample → estimate.

LocalizationCycle owns the particle filter (ParticleSet, OdomModel,
LaserModel) and runs one estimation pass per laser scan:

    1. A pending "set pose" request re-initializes the population around
       the requested pose; that cycle only estimates and publishes.
    2. The laser → base_link offset is resolved once; until it is, cycles
       abort.
    3. The odometry delta since the previous cycle is read from the
       odom → base_link transform. If the lookup fails after a previous
       reading, the previous reading is reused with zero motion.
    4. An empty population means "not localized"; nothing is published.
    5. Motion update, sensor update, resampling, mean pose.
    6. The mean pose is published as the map → odom correction, the
       population for diagnostics.

Transform handles are created by `initialize()` (or entering the context
manager) and released by `close()`; each initialize() replaces them.

Example:
    >>> with LocalizationCycle(config, TransformBuffer, TransformBuffer) as cycle:
    ...     cycle.laser_callback(scan)
    ...     result = cycle.process(world)
    ...     result.localized
    True
"""

import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional, Tuple

import numpy as np

from mcl.filter import LaserModel, OdomModel, ParticleSet
from mcl.geometry import Pose2, StampedTransform
from mcl.sensors import InitialPoseRequest, LaserScan, ParticleArray
from mcl.world import WorldModel

from .config import LocalizationConfig
from .interfaces import (
    MessageQueue,
    ParticlePublisher,
    TransformBroadcaster,
    TransformListener,
    TransformUnavailableError,
)

logger = logging.getLogger(__name__)


class CycleStatus(Enum):
    """Outcome of one cycle."""

    LOCALIZED = "localized"
    INITIALIZED = "initialized"
    NO_SCAN = "no_scan"
    NO_LASER_OFFSET = "no_laser_offset"
    NO_ODOMETRY = "no_odometry"
    NOT_LOCALIZED = "not_localized"


@dataclass
class CycleResult:
    """
    Result of LocalizationCycle.process().

    Attributes:
        status: What the cycle did or why it stopped.
        stamp: Stamp of the processed scan (None if there was none).
        mean_pose: Mean robot pose in the map frame, if estimated.
        map_to_odom: Published correction, if any.
        num_particles: Population size at the end of the cycle.
        duration: Wall-clock time spent in the cycle (seconds).
    """

    status: CycleStatus
    stamp: Optional[float] = None
    mean_pose: Optional[Pose2] = None
    map_to_odom: Optional[StampedTransform] = None
    num_particles: int = 0
    duration: float = 0.0

    @property
    def localized(self) -> bool:
        return self.status in (CycleStatus.LOCALIZED, CycleStatus.INITIALIZED) and self.mean_pose is not None


class LocalizationCycle:
    """
    Monte Carlo localization driver.

    Attributes:
        config: Active configuration.
        particle_set: Particle population (empty until initialized).
        odom_model: Motion model.
        laser_model: Sensor model.
        listener: Transform listener handle (None until initialize()).
        broadcaster: Transform broadcaster handle (None until initialize()).
        publisher: Optional particle publisher.
    """

    def __init__(
        self,
        config: LocalizationConfig,
        listener_factory: Callable[[], TransformListener],
        broadcaster_factory: Callable[[], TransformBroadcaster],
        publisher: Optional[ParticlePublisher] = None,
        rng: Optional[np.random.Generator] = None,
    ):
        """
        Build the filter from a configuration.

        Args:
            config: Localization configuration.
            listener_factory: Creates the transform listener handle.
            broadcaster_factory: Creates the transform broadcaster handle.
            publisher: Receives the particle population every cycle.
            rng: Random generator shared by motion noise and resampling.
        """
        self.rng = rng if rng is not None else np.random.default_rng()
        self._listener_factory = listener_factory
        self._broadcaster_factory = broadcaster_factory
        self.publisher = publisher

        self.listener: Optional[TransformListener] = None
        self.broadcaster: Optional[TransformBroadcaster] = None

        self.particle_set = ParticleSet()
        self.odom_model = OdomModel(rng=self.rng)
        self.laser_model = LaserModel()

        self._scan_queue: MessageQueue[LaserScan] = MessageQueue()
        self._initial_pose_queue: MessageQueue[InitialPoseRequest] = MessageQueue()

        self._previous_odom_pose: Optional[Pose2] = None
        self._laser_offset_initialized = False

        self.configure(config)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def configure(self, config: LocalizationConfig) -> None:
        """Apply a configuration; initializes around config.initial_pose if set."""
        self.config = config
        self.odom_model.configure(config.odom_model)
        self.laser_model.configure(config.laser_model)
        if config.initial_pose is not None:
            p = config.initial_pose
            self.set_initial_pose(Pose2(p.x, p.y, p.yaw))

    def initialize(self, config: Optional[LocalizationConfig] = None) -> None:
        """(Re)create the transform handles, optionally with a new configuration."""
        if config is not None:
            self.configure(config)
        self._release_handles()
        self.listener = self._listener_factory()
        self.broadcaster = self._broadcaster_factory()
        self._laser_offset_initialized = False
        self._previous_odom_pose = None

    def _release_handles(self) -> None:
        for handle in (self.listener, self.broadcaster):
            close = getattr(handle, "close", None)
            if callable(close):
                close()
        self.listener = None
        self.broadcaster = None

    def close(self) -> None:
        """Release transform handles and worker threads."""
        self._release_handles()
        self.laser_model.close()

    def __enter__(self) -> "LocalizationCycle":
        self.initialize()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Message intake
    # ------------------------------------------------------------------

    def laser_callback(self, scan: LaserScan) -> None:
        """Queue a scan; only the latest one is processed."""
        self._scan_queue.put(scan)

    def initial_pose_callback(self, request: InitialPoseRequest) -> None:
        """Queue a "set pose" request; only the latest one is applied."""
        self._initial_pose_queue.put(request)

    # ------------------------------------------------------------------
    # Filter operations
    # ------------------------------------------------------------------

    def set_initial_pose(self, pose: Pose2) -> None:
        """Re-initialize the population on a small box around `pose`."""
        c = self.config
        self.particle_set.init_around(
            pose,
            xy_extent=c.reset_xy_extent,
            xy_resolution=c.reset_xy_resolution,
            yaw_extent=c.reset_yaw_extent,
            yaw_resolution=c.reset_yaw_resolution,
        )
        logger.info("Initialized %d particles around %s", len(self.particle_set), pose)

    def predict(self, delta: Pose2) -> None:
        """Motion update with an odometry delta."""
        self.odom_model.update_poses(delta, self.particle_set)

    def update_weights(self, world: WorldModel, scan: LaserScan) -> None:
        """Sensor update with a laser scan."""
        self.laser_model.update_weights(world, scan, self.particle_set)

    def resample(self) -> None:
        """Resample to the configured population size."""
        self.particle_set.resample(self.config.num_particles, rng=self.rng)

    def mean_pose(self) -> Optional[Pose2]:
        """Mean pose of the population, None if not initialized."""
        return self.particle_set.calculate_mean_pose()

    # ------------------------------------------------------------------
    # Cycle
    # ------------------------------------------------------------------

    def _require_handles(self) -> None:
        if self.listener is None or self.broadcaster is None:
            raise RuntimeError("LocalizationCycle not initialized. Call initialize() first.")

    def _resolve_laser_offset(self, scan: LaserScan) -> bool:
        if self._laser_offset_initialized:
            return True

        base_link = self.config.odom_model.base_link_frame
        timeout = self.config.transform_timeout
        if not self.listener.wait_for_transform(base_link, scan.frame_id, scan.stamp, timeout):
            logger.warning("Cannot get transform from '%s' to '%s'.", base_link, scan.frame_id)
            return False
        try:
            t = self.listener.lookup_transform(base_link, scan.frame_id, scan.stamp)
        except TransformUnavailableError as e:
            logger.warning("Laser offset lookup failed: %s", e)
            return False

        self.laser_model.set_laser_offset(t.pose, t.z)
        self._laser_offset_initialized = True
        logger.info("Laser offset resolved: %s at height %.3f m", t.pose, t.z)
        return True

    def _read_odometry(self, stamp: float) -> Optional[Tuple[Pose2, Pose2]]:
        """
        Current odom → base_link pose and the motion since the last reading.

        Returns:
            (odom_to_base, delta), or None if no reading has ever been made.
        """
        odom = self.config.odom_model.odom_frame
        base_link = self.config.odom_model.base_link_frame
        timeout = self.config.transform_timeout

        try:
            if not self.listener.wait_for_transform(odom, base_link, stamp, timeout):
                raise TransformUnavailableError(
                    f"Cannot get transform from '{odom}' to '{base_link}'."
                )
            odom_to_base = self.listener.lookup_transform(odom, base_link, stamp).pose
        except TransformUnavailableError as e:
            if self._previous_odom_pose is None:
                logger.warning("%s No previous odometry; skipping cycle.", e)
                return None
            # Transient fault is treated as "robot did not move"
            logger.warning("%s Reusing previous odometry with zero motion.", e)
            return self._previous_odom_pose, Pose2.identity()

        if self._previous_odom_pose is None or odom_to_base == self._previous_odom_pose:
            delta = Pose2.identity()
        else:
            delta = self._previous_odom_pose.inverse().compose(odom_to_base)
        self._previous_odom_pose = odom_to_base
        return odom_to_base, delta

    def _publish(self, mean_pose: Pose2, odom_to_base: Pose2, stamp: float) -> StampedTransform:
        c = self.config.odom_model
        map_to_odom = StampedTransform(
            parent_frame=c.map_frame,
            child_frame=c.odom_frame,
            stamp=stamp,
            pose=mean_pose.compose(odom_to_base.inverse()),
        )
        self.broadcaster.send_transform(map_to_odom)

        if self.publisher is not None and self.config.publish_particles:
            self.publisher.publish(
                ParticleArray(
                    frame_id=c.map_frame,
                    stamp=stamp,
                    poses=self.particle_set.poses.copy(),
                    weights=self.particle_set.weights.copy(),
                )
            )
        return map_to_odom

    def _result(self, status: CycleStatus, start: float, **kwargs) -> CycleResult:
        result = CycleResult(
            status=status,
            num_particles=len(self.particle_set),
            duration=time.perf_counter() - start,
            **kwargs,
        )
        logger.debug("Cycle %s in %.1f ms", status.value, 1e3 * result.duration)
        return result

    def process(self, world: WorldModel) -> CycleResult:
        """
        Run one estimation cycle on the latest queued messages.

        Args:
            world: World to localize against.

        Returns:
            CycleResult describing what happened.

        Raises:
            RuntimeError: If initialize() has not been called.
        """
        self._require_handles()
        start = time.perf_counter()

        scan = self._scan_queue.drain()
        request = self._initial_pose_queue.drain()

        if request is not None:
            self.set_initial_pose(request.pose)
            mean = self.mean_pose()
            if scan is None:
                return self._result(CycleStatus.INITIALIZED, start, stamp=request.stamp, mean_pose=mean)
            self._resolve_laser_offset(scan)
            reading = self._read_odometry(scan.stamp)
            map_to_odom = None
            if reading is not None:
                map_to_odom = self._publish(mean, reading[0], scan.stamp)
            return self._result(
                CycleStatus.INITIALIZED, start, stamp=scan.stamp, mean_pose=mean, map_to_odom=map_to_odom
            )

        if scan is None:
            return self._result(CycleStatus.NO_SCAN, start)

        if not self._resolve_laser_offset(scan):
            return self._result(CycleStatus.NO_LASER_OFFSET, start, stamp=scan.stamp)

        reading = self._read_odometry(scan.stamp)
        if reading is None:
            return self._result(CycleStatus.NO_ODOMETRY, start, stamp=scan.stamp)
        odom_to_base, delta = reading

        if self.particle_set.empty:
            return self._result(CycleStatus.NOT_LOCALIZED, start, stamp=scan.stamp)

        self.predict(delta)
        self.update_weights(world, scan)
        self.resample()
        mean = self.mean_pose()

        map_to_odom = self._publish(mean, odom_to_base, scan.stamp)
        return self._result(
            CycleStatus.LOCALIZED, start, stamp=scan.stamp, mean_pose=mean, map_to_odom=map_to_odom
        )

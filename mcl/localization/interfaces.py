"""Collaborator interfaces of the localization cycle.

The cycle talks to three external services through small protocols:

    - TransformListener: look up the transform between two named frames
    - TransformBroadcaster: publish a new frame relationship (map → odom)
    - ParticlePublisher: publish the particle population for visualization

Any transport (ROS, a message bus, a simulator) can implement them. This
module also ships in-memory implementations used by the demos and tests,
and the latest-wins mailbox that decouples message arrival from the cycle.
"""

import threading
from typing import Dict, Generic, List, Optional, Protocol, Tuple, TypeVar

from mcl.geometry import StampedTransform
from mcl.sensors import ParticleArray

T = TypeVar("T")


class TransformUnavailableError(LookupError):
    """Raised when a transform cannot be resolved."""


class TransformListener(Protocol):
    """Source of transforms between named frames."""

    def wait_for_transform(self, target_frame: str, source_frame: str, stamp: float, timeout: float) -> bool:
        """Block up to `timeout` seconds until the transform is available."""
        ...

    def lookup_transform(self, target_frame: str, source_frame: str, stamp: float) -> StampedTransform:
        """
        Return the pose of `source_frame` in `target_frame` at `stamp`.

        Raises:
            TransformUnavailableError: If the transform cannot be resolved.
        """
        ...


class TransformBroadcaster(Protocol):
    """Sink for frame relationships."""

    def send_transform(self, transform: StampedTransform) -> None:
        ...


class ParticlePublisher(Protocol):
    """Sink for particle populations (write-only)."""

    def publish(self, particles: ParticleArray) -> None:
        ...


class TransformBuffer:
    """
    In-memory transform tree, usable as listener and broadcaster.

    Keeps the latest transform per (parent, child) pair and ignores stamps.
    Lookups resolve a direct edge, its inverse, or a chain through one
    intermediate frame (enough for map → odom → base_link → laser).

    Example:
        >>> buf = TransformBuffer()
        >>> buf.set_transform(StampedTransform("odom", "base_link", 0.0, Pose2(1, 0, 0)))
        >>> buf.lookup_transform("odom", "base_link", 0.0).pose.x
        1.0
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._edges: Dict[Tuple[str, str], StampedTransform] = {}

    def set_transform(self, transform: StampedTransform) -> None:
        """Insert or replace the edge parent ← child."""
        with self._lock:
            self._edges[(transform.parent_frame, transform.child_frame)] = transform

    def send_transform(self, transform: StampedTransform) -> None:
        self.set_transform(transform)

    def remove_transform(self, parent_frame: str, child_frame: str) -> None:
        """Drop an edge if present."""
        with self._lock:
            self._edges.pop((parent_frame, child_frame), None)

    def _edge(self, target: str, source: str) -> Optional[StampedTransform]:
        if (target, source) in self._edges:
            return self._edges[(target, source)]
        if (source, target) in self._edges:
            return self._edges[(source, target)].inverse()
        return None

    def _resolve(self, target: str, source: str) -> Optional[StampedTransform]:
        direct = self._edge(target, source)
        if direct is not None:
            return direct
        frames = {f for edge in self._edges for f in edge}
        for mid in sorted(frames - {target, source}):
            first = self._edge(target, mid)
            second = self._edge(mid, source)
            if first is not None and second is not None:
                return first.compose(second)
        return None

    def can_transform(self, target_frame: str, source_frame: str) -> bool:
        with self._lock:
            return self._resolve(target_frame, source_frame) is not None

    def wait_for_transform(self, target_frame: str, source_frame: str, stamp: float, timeout: float) -> bool:
        # Nothing arrives while we wait in a single-threaded buffer
        return self.can_transform(target_frame, source_frame)

    def lookup_transform(self, target_frame: str, source_frame: str, stamp: float) -> StampedTransform:
        with self._lock:
            transform = self._resolve(target_frame, source_frame)
        if transform is None:
            raise TransformUnavailableError(
                f"Cannot transform from '{source_frame}' to '{target_frame}'"
            )
        return StampedTransform(
            parent_frame=target_frame,
            child_frame=source_frame,
            stamp=stamp,
            pose=transform.pose,
            z=transform.z,
        )


class RecordingPublisher:
    """Publisher that keeps every message it receives."""

    def __init__(self):
        self.messages: List[ParticleArray] = []

    def publish(self, particles: ParticleArray) -> None:
        self.messages.append(particles)

    @property
    def last(self) -> Optional[ParticleArray]:
        return self.messages[-1] if self.messages else None


class MessageQueue(Generic[T]):
    """
    Single-slot, latest-wins mailbox.

    Callbacks put() from any thread; the cycle drain()s once per run, so a
    message that arrives mid-cycle waits for the next one and older
    undrained messages are dropped.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._message: Optional[T] = None

    def put(self, message: T) -> None:
        with self._lock:
            self._message = message

    def drain(self) -> Optional[T]:
        """Return the latest message (or None) and empty the slot."""
        with self._lock:
            message, self._message = self._message, None
        return message

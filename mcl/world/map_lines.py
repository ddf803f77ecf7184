"""Map line segments: the 2D cut of the world seen by a planar laser.

The sensor model ray-casts against line segments, not against the world
itself. extract_map_lines() slices the world at the laser height and
returns every footprint edge of the entities the slice cuts. The result only
depends on the world revision and the laser height, so MapLineCache keeps
it until either changes.
"""

from dataclasses import dataclass
from typing import Optional, Tuple

import numpy as np

from .world_model import WorldModel


@dataclass
class MapLineSegments:
    """
    Set of 2D obstacle segments in the map frame.

    Attributes:
        starts: Segment start points, shape (K, 2).
        ends: Segment end points, shape (K, 2).
    """

    starts: np.ndarray
    ends: np.ndarray

    def __post_init__(self) -> None:
        """Validate that starts and ends pair up."""
        self.starts = np.asarray(self.starts, dtype=np.float64).reshape(-1, 2)
        self.ends = np.asarray(self.ends, dtype=np.float64).reshape(-1, 2)
        if self.starts.shape != self.ends.shape:
            raise ValueError(
                f"starts {self.starts.shape} and ends {self.ends.shape} must have the same shape"
            )

    def __len__(self) -> int:
        return self.starts.shape[0]

    @classmethod
    def empty(cls) -> "MapLineSegments":
        """No segments (an open map)."""
        return cls(np.zeros((0, 2)), np.zeros((0, 2)))

    def bounds(self) -> Optional[Tuple[np.ndarray, np.ndarray]]:
        """Axis-aligned bounding box (min_xy, max_xy), None if empty."""
        if len(self) == 0:
            return None
        pts = np.vstack([self.starts, self.ends])
        return pts.min(axis=0), pts.max(axis=0)


def extract_map_lines(world: WorldModel, laser_height: float, min_length: float = 1e-6) -> MapLineSegments:
    """
    Slice the world at the laser height.

    Args:
        world: World to query.
        laser_height: Height of the scan plane above the floor (meters).
        min_length: Edges shorter than this are dropped (meters).

    Returns:
        Segments of every entity whose [z_min, z_max] contains the height.
    """
    starts, ends = [], []
    for entity in world.entities():
        if not entity.spans_height(laser_height):
            continue
        s, e = entity.edges()
        starts.append(s)
        ends.append(e)

    if not starts:
        return MapLineSegments.empty()

    starts = np.vstack(starts)
    ends = np.vstack(ends)
    keep = np.linalg.norm(ends - starts, axis=1) >= min_length
    return MapLineSegments(starts[keep], ends[keep])


class MapLineCache:
    """
    Memoizes extract_map_lines() on (world object, revision, laser height).

    Example:
        >>> cache = MapLineCache()
        >>> lines = cache.get(world, 0.3)
        >>> cache.get(world, 0.3) is lines  # world unchanged
        True
    """

    def __init__(self):
        self._world: Optional[WorldModel] = None
        self._key = None
        self._lines: Optional[MapLineSegments] = None

    def get(self, world: WorldModel, laser_height: float) -> MapLineSegments:
        """Return the segments, re-extracting only if the key changed."""
        key = (world.revision, float(laser_height))
        if self._lines is None or world is not self._world or key != self._key:
            self._lines = extract_map_lines(world, laser_height)
            self._world = world
            self._key = key
        return self._lines

    def invalidate(self) -> None:
        """Force re-extraction on the next get()."""
        self._world = None
        self._key = None
        self._lines = None

"""World representation queried for localization.

The world is a set of entities, each a prism: a 2D footprint polygon in the
entity frame, placed in the map by a Pose2 and extruded between z_min and
z_max. A planar laser mounted at height h only sees the entities whose
vertical extent contains h.

The world carries a revision counter that changes on every edit, so derived
data (the map line segments) can be cached until the world changes.
"""

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Sequence, Tuple

import numpy as np

from mcl.geometry import Pose2


@dataclass(frozen=True, eq=False)
class Entity:
    """
    Static obstacle in the world.

    Entities are immutable, footprint included; to move or reshape one, build
    a new Entity and hand it to WorldModel.add_entity so the revision changes.

    Attributes:
        id: Unique identifier.
        footprint: Polygon (or polyline) vertices in the entity frame, (M, 2).
        pose: Entity frame in the map frame.
        z_min: Bottom of the obstacle (meters).
        z_max: Top of the obstacle (meters).
        closed: If True the last vertex connects back to the first.
    """

    id: str
    footprint: np.ndarray
    pose: Pose2 = field(default_factory=Pose2.identity)
    z_min: float = 0.0
    z_max: float = 2.0
    closed: bool = True

    def __post_init__(self) -> None:
        """Validate the footprint and vertical extent."""
        footprint = np.array(self.footprint, dtype=np.float64)
        footprint.setflags(write=False)
        object.__setattr__(self, "footprint", footprint)
        if self.footprint.ndim != 2 or self.footprint.shape[1] != 2:
            raise ValueError(
                f"Entity '{self.id}': footprint must have shape (M, 2), got {self.footprint.shape}"
            )
        if self.footprint.shape[0] < 2:
            raise ValueError(f"Entity '{self.id}': footprint needs at least 2 vertices")
        if self.z_max < self.z_min:
            raise ValueError(
                f"Entity '{self.id}': z_max ({self.z_max}) is below z_min ({self.z_min})"
            )

    def spans_height(self, z: float) -> bool:
        """True if a horizontal plane at height z cuts the entity."""
        return self.z_min <= z <= self.z_max

    def edges(self) -> Tuple[np.ndarray, np.ndarray]:
        """
        Footprint edges in the map frame.

        Returns:
            Tuple (starts, ends), each of shape (E, 2).
        """
        vertices = self.pose.apply(self.footprint)
        if self.closed and len(vertices) > 2:
            return vertices, np.roll(vertices, -1, axis=0)
        return vertices[:-1], vertices[1:]


class WorldModel:
    """
    Revisioned collection of entities.

    Example:
        >>> world = WorldModel()
        >>> world.add_entity(Entity("table", [[0, 0], [1, 0], [1, 1], [0, 1]], z_max=0.8))
        >>> world.revision
        1
    """

    def __init__(self, entities: Iterable[Entity] = ()):
        self._entities: Dict[str, Entity] = {}
        self.revision = 0
        for entity in entities:
            self.add_entity(entity)

    def add_entity(self, entity: Entity) -> None:
        """Insert or replace an entity (keyed by id)."""
        self._entities[entity.id] = entity
        self.revision += 1

    def remove_entity(self, entity_id: str) -> None:
        """
        Remove an entity.

        Raises:
            KeyError: If no entity has that id.
        """
        del self._entities[entity_id]
        self.revision += 1

    def entities(self) -> List[Entity]:
        """All entities, in insertion order."""
        return list(self._entities.values())

    def __len__(self) -> int:
        return len(self._entities)

    @classmethod
    def from_segments(
        cls,
        segments: Sequence[Tuple[Sequence[float], Sequence[float]]],
        z_min: float = 0.0,
        z_max: float = 2.0,
    ) -> "WorldModel":
        """
        Build a world of bare wall segments.

        Args:
            segments: List of (start_point, end_point) pairs in the map frame.
            z_min, z_max: Vertical extent shared by every wall.
        """
        world = cls()
        for i, (start, end) in enumerate(segments):
            world.add_entity(
                Entity(
                    id=f"wall_{i}",
                    footprint=np.array([start, end], dtype=np.float64),
                    z_min=z_min,
                    z_max=z_max,
                    closed=False,
                )
            )
        return world

"""World model, map line extraction and ray casting.

Main components:
    - Entity, WorldModel: static obstacles with a revision counter
    - MapLineSegments, extract_map_lines, MapLineCache: the 2D cut of the
      world at the laser height
    - ray_segment_intersection, cast_rays: expected ranges from a pose
"""

from .map_lines import MapLineCache, MapLineSegments, extract_map_lines
from .raycast import cast_rays, ray_segment_intersection
from .world_model import Entity, WorldModel

__all__ = [
    "Entity",
    "WorldModel",
    "MapLineSegments",
    "MapLineCache",
    "extract_map_lines",
    "ray_segment_intersection",
    "cast_rays",
]

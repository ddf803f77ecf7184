"""Unit tests for the world model and map line extraction."""

import numpy as np
import pytest

from mcl.geometry import Pose2
from mcl.world import Entity, MapLineCache, MapLineSegments, WorldModel, extract_map_lines


SQUARE = [[0.0, 0.0], [1.0, 0.0], [1.0, 1.0], [0.0, 1.0]]


class TestEntity:
    def test_closed_polygon_edges(self):
        starts, ends = Entity("box", SQUARE).edges()
        assert starts.shape == (4, 2)
        np.testing.assert_allclose(ends[-1], starts[0])

    def test_open_polyline_edges(self):
        starts, ends = Entity("wall", SQUARE, closed=False).edges()
        assert starts.shape == (3, 2)

    def test_edges_in_map_frame(self):
        entity = Entity("box", SQUARE, pose=Pose2(5.0, 0.0, np.pi / 2))
        starts, _ = entity.edges()
        np.testing.assert_allclose(starts[1], [5.0, 1.0], atol=1e-12)

    def test_bad_footprint(self):
        with pytest.raises(ValueError, match="footprint"):
            Entity("bad", [[0.0, 0.0, 0.0]])

    def test_inverted_height(self):
        with pytest.raises(ValueError, match="z_max"):
            Entity("bad", SQUARE, z_min=1.0, z_max=0.5)

    def test_entity_is_immutable(self):
        """Edits must go through the world so the revision changes."""
        entity = Entity("box", SQUARE)
        with pytest.raises(AttributeError):
            entity.pose = Pose2(1.0, 0.0, 0.0)
        with pytest.raises(AttributeError):
            entity.footprint = np.zeros((2, 2))
        with pytest.raises(AttributeError):
            entity.pose.x = 3.0
        with pytest.raises(ValueError):
            entity.footprint[0, 0] = 5.0

    def test_footprint_copied_from_input(self):
        vertices = np.array(SQUARE)
        entity = Entity("box", vertices)
        vertices[0, 0] = 9.0
        assert entity.footprint[0, 0] == 0.0


class TestWorldModel:
    def test_revision_changes_on_edit(self):
        world = WorldModel()
        world.add_entity(Entity("a", SQUARE))
        world.add_entity(Entity("b", SQUARE))
        assert world.revision == 2
        world.remove_entity("a")
        assert world.revision == 3
        assert [e.id for e in world.entities()] == ["b"]

    def test_remove_missing(self):
        with pytest.raises(KeyError):
            WorldModel().remove_entity("ghost")

    def test_from_segments(self):
        world = WorldModel.from_segments([([0, 0], [4, 0]), ([4, 0], [4, 3])])
        assert len(world) == 2
        assert len(extract_map_lines(world, 0.3)) == 2


class TestExtractMapLines:
    def test_height_filter(self):
        """Only entities cut by the scan plane contribute segments."""
        world = WorldModel([
            Entity("wall", SQUARE, z_min=0.0, z_max=2.0),
            Entity("table_top", SQUARE, pose=Pose2(3.0, 0.0, 0.0), z_min=0.7, z_max=0.75),
        ])
        assert len(extract_map_lines(world, 0.3)) == 4
        assert len(extract_map_lines(world, 0.72)) == 8
        assert len(extract_map_lines(world, 3.0)) == 0

    def test_degenerate_edges_dropped(self):
        world = WorldModel([Entity("dup", [[0.0, 0.0], [0.0, 0.0], [1.0, 0.0]], closed=False)])
        lines = extract_map_lines(world, 0.3)
        assert len(lines) == 1

    def test_empty_world(self):
        lines = extract_map_lines(WorldModel(), 0.3)
        assert len(lines) == 0
        assert lines.bounds() is None

    def test_bounds(self):
        lines = MapLineSegments([[0.0, 0.0], [2.0, 1.0]], [[2.0, 1.0], [-1.0, 3.0]])
        lo, hi = lines.bounds()
        np.testing.assert_allclose(lo, [-1.0, 0.0])
        np.testing.assert_allclose(hi, [2.0, 3.0])


class TestMapLineCache:
    def test_reuses_until_revision_changes(self):
        world = WorldModel([Entity("box", SQUARE)])
        cache = MapLineCache()

        lines = cache.get(world, 0.3)
        assert cache.get(world, 0.3) is lines

        world.add_entity(Entity("box2", SQUARE, pose=Pose2(2.0, 0.0, 0.0)))
        updated = cache.get(world, 0.3)
        assert updated is not lines
        assert len(updated) == 8

    def test_moved_entity_seen_after_replacement(self):
        world = WorldModel([Entity("box", SQUARE)])
        cache = MapLineCache()
        before = cache.get(world, 0.3)

        world.add_entity(Entity("box", SQUARE, pose=Pose2(3.0, 0.0, 0.0)))
        after = cache.get(world, 0.3)

        assert len(after) == 4
        np.testing.assert_allclose(after.starts, before.starts + [3.0, 0.0])

    def test_height_change_invalidates(self):
        world = WorldModel([Entity("low", SQUARE, z_max=0.5)])
        cache = MapLineCache()
        assert len(cache.get(world, 0.3)) == 4
        assert len(cache.get(world, 1.0)) == 0

    def test_other_world_at_same_revision(self):
        cache = MapLineCache()
        first = WorldModel([Entity("box", SQUARE)])
        second = WorldModel([Entity("wall", SQUARE, closed=False)])
        assert len(cache.get(first, 0.3)) == 4
        assert len(cache.get(second, 0.3)) == 3

    def test_invalidate(self):
        world = WorldModel([Entity("box", SQUARE)])
        cache = MapLineCache()
        lines = cache.get(world, 0.3)
        cache.invalidate()
        assert cache.get(world, 0.3) is not lines

import numpy as np
import pytest

from keymaze.agents.scout.compute import CellView, IncrementalMap, Kind, VisionReport
from keymaze.errors import MapInconsistencyError


def test_ingest_key_door_start(key_door_maze):
    fmap = IncrementalMap()
    added = fmap.ingest_vision(key_door_maze.reset())

    assert added == 8
    assert fmap.kind_at((0, 0)) == Kind.OPEN
    assert fmap.kind_at((0, 1)) == Kind.KEY
    assert fmap.kind_at((1, 0)) == Kind.DOOR
    assert fmap.kind_at((-1, 0)) == Kind.BLOCKED
    assert fmap.kind_at((2, 0)) is None  # Behind the door


def test_ingesting_twice_changes_nothing(key_door_maze):
    fmap = IncrementalMap()
    vision = key_door_maze.reset()
    fmap.ingest_vision(vision)
    before = fmap.kinds()

    assert fmap.ingest_vision(vision) == 0
    assert fmap.kinds() == before


def test_contradicting_vision_raises():
    fmap = IncrementalMap()
    fmap.ingest_vision(VisionReport(CellView(False, Kind.OPEN, Kind.BLOCKED, Kind.BLOCKED, Kind.BLOCKED)))

    with pytest.raises(MapInconsistencyError) as excinfo:
        fmap.ingest_vision(VisionReport(CellView(False, Kind.BLOCKED, Kind.BLOCKED, Kind.BLOCKED, Kind.BLOCKED)))
    assert excinfo.value.coord == (0, 1)
    assert excinfo.value.stored == Kind.OPEN
    assert excinfo.value.reported == Kind.BLOCKED


def test_visible_cells_are_placed_along_each_direction():
    wall = dict(north=Kind.BLOCKED, south=Kind.BLOCKED)
    east = (
        CellView(False, east=Kind.KEY, west=Kind.OPEN, **wall),
        CellView(True, east=Kind.EXIT, west=Kind.OPEN, **wall),
    )
    report = VisionReport(CellView(False, east=Kind.OPEN, west=Kind.BLOCKED, **wall), east=east)
    fmap = IncrementalMap()
    fmap.ingest_vision(report)

    assert fmap.kind_at((2, 0)) == Kind.KEY
    assert fmap.kind_at((3, 0)) == Kind.EXIT
    assert fmap.kind_at((2, 1)) == Kind.BLOCKED


def test_gameplay_changes(key_door_maze):
    fmap = IncrementalMap()
    fmap.ingest_vision(key_door_maze.reset())

    fmap.apply_move("north")
    assert fmap.location == (0, 1)
    fmap.apply_key_pickup()
    assert fmap.kind_at((0, 1)) == Kind.OPEN

    fmap.apply_move("south")
    assert fmap.apply_door_open() == [(1, 0)]
    assert fmap.kind_at((1, 0)) == Kind.OPEN

    # What was first observed is kept for later episodes
    original = fmap.original_kinds()
    assert original[(0, 1)] == Kind.KEY
    assert original[(1, 0)] == Kind.DOOR


def test_pickup_without_key_is_ignored():
    fmap = IncrementalMap({(0, 0): Kind.OPEN})
    fmap.apply_key_pickup()
    assert fmap.kind_at((0, 0)) == Kind.OPEN
    assert fmap.apply_door_open() == []


def test_seeded_from_learned_cells():
    learned = {(0, 0): Kind.OPEN, (1, 0): Kind.DOOR, (2, 0): Kind.EXIT}
    fmap = IncrementalMap(learned, best_case=9)

    assert len(fmap) == 3
    assert (2, 0) in fmap
    assert fmap.best_case == 9
    snapshot = fmap.snapshot()
    assert fmap.apply_door_open() == [(1, 0)]
    assert snapshot.kind_at((1, 0)) == Kind.DOOR


def test_best_case_only_decreases():
    fmap = IncrementalMap()
    assert fmap.best_case is None
    assert fmap.record_best_case(12)
    assert not fmap.record_best_case(15)
    assert fmap.record_best_case(10)
    assert fmap.best_case == 10


def test_frontier_cells(key_door_maze):
    fmap = IncrementalMap()
    fmap.ingest_vision(key_door_maze.reset())
    # Only the door has unobserved neighbours; blocked cells never count
    assert fmap.frontier_cells() == [(1, 0)]


def test_render_and_array(key_door_maze):
    fmap = IncrementalMap()
    fmap.ingest_vision(key_door_maze.reset())

    grid, origin = fmap.to_array()
    assert grid.shape == (4, 3)
    assert origin == (-1, 2)
    assert grid.dtype == np.int8
    assert grid[2, 2] == Kind.DOOR
    assert grid[0, 0] == Kind.UNEXPLORED

    assert fmap.render() == "\n".join([" #", "#K#", "#@D", " #"])

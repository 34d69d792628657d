import json

import pytest

from keymaze.agents.scout.compute.grid import Kind
from keymaze.agents.scout.memory import FileMazeMemory, MazeRecord, TransientMazeMemory


@pytest.fixture(params=["transient", "file"])
def memory(request, tmp_path):
    if request.param == "transient":
        return TransientMazeMemory()
    return FileMazeMemory(tmp_path / "memory" / "mazes.json")


def test_unseen_maze_is_empty(memory):
    record = memory.load(4)
    assert record == MazeRecord(4)
    assert memory.best_case(4) is None
    assert memory.maze_ids() == []


def test_best_case_never_increases(memory):
    assert memory.record_best_case(0, 30)
    assert not memory.record_best_case(0, 31)
    assert not memory.record_best_case(0, 30)
    assert memory.record_best_case(0, 22)
    assert memory.best_case(0) == 22
    assert memory.best_case(1) is None


def test_merge_keeps_first_observed_kind(memory):
    assert memory.merge_cells(0, {(0, 0): Kind.OPEN, (0, 1): Kind.KEY}) == 2
    assert memory.merge_cells(0, {(0, 1): Kind.OPEN, (1, 0): Kind.DOOR}) == 1
    assert memory.load(0).cells == {(0, 0): Kind.OPEN, (0, 1): Kind.KEY, (1, 0): Kind.DOOR}


def test_loaded_records_are_copies(memory):
    memory.merge_cells(2, {(0, 0): Kind.OPEN})
    record = memory.load(2)
    record.cells[(5, 5)] = Kind.EXIT
    assert (5, 5) not in memory.load(2).cells


def test_episode_count(memory):
    assert memory.record_episode(1) == 1
    assert memory.record_episode(1) == 2
    assert memory.load(1).episodes == 2
    assert memory.maze_ids() == [1]


def test_maze_ids_cycle_with_maze_count():
    memory = TransientMazeMemory(maze_count=3)
    assert [memory.next_maze_id() for _ in range(7)] == [0, 1, 2, 0, 1, 2, 0]


def test_maze_ids_grow_without_maze_count():
    memory = TransientMazeMemory()
    assert [memory.next_maze_id() for _ in range(4)] == [0, 1, 2, 3]


def test_transient_reset():
    memory = TransientMazeMemory(maze_count=2)
    memory.next_maze_id()
    memory.record_best_case(0, 5)
    memory.reset()
    assert memory.maze_ids() == []
    assert memory.next_maze_id() == 0


def test_file_memory_survives_reload(tmp_path):
    path = tmp_path / "mazes.json"
    memory = FileMazeMemory(path)
    memory.merge_cells(3, {(0, 0): Kind.OPEN, (-1, 2): Kind.EXIT})
    memory.record_best_case(3, 17)
    memory.record_episode(3)

    reloaded = FileMazeMemory(path)
    record = reloaded.load(3)
    assert record.cells == {(0, 0): Kind.OPEN, (-1, 2): Kind.EXIT}
    assert record.best_case == 17
    assert record.episodes == 1

    data = json.loads(path.read_text())
    assert data["3"]["cells"]["-1,2"] == "EXIT"

from dataclasses import replace

from ..compute.grid import Coord, Kind
from .interface import MazeMemory, MazeRecord


class TransientMazeMemory(MazeMemory):
    """Cross-episode memory that lives as long as the process.

    Records are copied in and out so a planning pass never holds a live
    reference into the store.
    """

    def __init__(self, maze_count: int | None = None):
        super().__init__(maze_count)
        self._records: dict[int, MazeRecord] = {}

    def _record(self, maze_id: int) -> MazeRecord:
        if maze_id not in self._records:
            self._records[maze_id] = MazeRecord(maze_id)
        return self._records[maze_id]

    def load(self, maze_id: int) -> MazeRecord:
        record = self._records.get(maze_id)
        if record is None:
            return MazeRecord(maze_id)
        return replace(record, cells=dict(record.cells))

    def merge_cells(self, maze_id: int, cells: dict[Coord, Kind]) -> int:
        known = self._record(maze_id).cells
        added = 0
        for coord, kind in cells.items():
            if coord not in known:
                known[coord] = kind
                added += 1
        return added

    def record_best_case(self, maze_id: int, moves: int) -> bool:
        record = self._record(maze_id)
        if record.best_case is not None and record.best_case <= moves:
            return False
        record.best_case = moves
        return True

    def record_episode(self, maze_id: int) -> int:
        record = self._record(maze_id)
        record.episodes += 1
        return record.episodes

    def maze_ids(self) -> list[int]:
        return sorted(self._records)

    def reset(self) -> None:
        """Forget everything."""
        self._records.clear()
        self._current = -1

import json
from pathlib import Path
from typing import Any

from ...compute.grid import Coord, Kind
from ..interface import MazeMemory, MazeRecord


class FileMazeMemory(MazeMemory):
    """JSON file-based maze memory.

    Same semantics as TransientMazeMemory, but every change is written to
    disk so learned maps and best cases survive across processes.
    Cells are stored as "x,y" -> kind name.
    """

    def __init__(self, path: Path | str, maze_count: int | None = None):
        super().__init__(maze_count)
        self.path = Path(path)
        self._data: dict[str, dict[str, Any]] = {}
        self._load()

    def _load(self) -> None:
        if self.path.exists():
            self._data = json.loads(self.path.read_text())

    def _save(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(self._data, indent=2))

    def _entry(self, maze_id: int) -> dict[str, Any]:
        key = str(maze_id)
        if key not in self._data:
            self._data[key] = {"cells": {}, "best_case": None, "episodes": 0}
        return self._data[key]

    @staticmethod
    def _coord_key(coord: Coord) -> str:
        return f"{coord[0]},{coord[1]}"

    @staticmethod
    def _parse_coord(key: str) -> Coord:
        x, y = key.split(",")
        return int(x), int(y)

    def load(self, maze_id: int) -> MazeRecord:
        data = self._data.get(str(maze_id))
        if data is None:
            return MazeRecord(maze_id)
        best = data.get("best_case")
        return MazeRecord(
            maze_id=maze_id,
            cells={self._parse_coord(k): Kind[v] for k, v in data.get("cells", {}).items()},
            best_case=int(best) if best is not None else None,
            episodes=int(data.get("episodes", 0)),
        )

    def merge_cells(self, maze_id: int, cells: dict[Coord, Kind]) -> int:
        stored = self._entry(maze_id)["cells"]
        added = 0
        for coord, kind in cells.items():
            key = self._coord_key(coord)
            if key not in stored:
                stored[key] = Kind(kind).name
                added += 1
        if added:
            self._save()
        return added

    def record_best_case(self, maze_id: int, moves: int) -> bool:
        entry = self._entry(maze_id)
        if entry["best_case"] is not None and entry["best_case"] <= moves:
            return False
        entry["best_case"] = moves
        self._save()
        return True

    def record_episode(self, maze_id: int) -> int:
        entry = self._entry(maze_id)
        entry["episodes"] = int(entry.get("episodes", 0)) + 1
        self._save()
        return entry["episodes"]

    def maze_ids(self) -> list[int]:
        return sorted(int(k) for k in self._data)

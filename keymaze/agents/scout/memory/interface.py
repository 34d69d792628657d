from abc import ABC, abstractmethod
from dataclasses import dataclass, field

from ..compute.grid import Coord, Kind


@dataclass
class MazeRecord:
    """Everything learned about one maze across episodes."""

    maze_id: int
    cells: dict[Coord, Kind] = field(default_factory=dict)  # Kinds as first observed
    best_case: int | None = None  # Fewest moves to the exit so far, None if never solved
    episodes: int = 0


class MazeMemory(ABC):
    """Cross-episode store, one record per maze identity.

    Maze identity is the ordinal of the maze in the environment's fixed
    ordering, not a hash of its content. Created once per process and passed
    to the agent; read before planning, written after reaching the exit.

    Implementations: TransientMazeMemory (in-process), FileMazeMemory (JSON).
    """

    def __init__(self, maze_count: int | None = None):
        self.maze_count = maze_count
        self._current: int = -1

    def next_maze_id(self) -> int:
        """Advance to the next maze in the environment's ordering, wrapping around."""
        self._current += 1
        if self.maze_count and self._current >= self.maze_count:
            self._current = 0
        return self._current

    @abstractmethod
    def load(self, maze_id: int) -> MazeRecord:
        """Return a copy of the record for maze_id, empty if unseen."""

    @abstractmethod
    def merge_cells(self, maze_id: int, cells: dict[Coord, Kind]) -> int:
        """Add cells not yet known for maze_id. Returns how many were new."""

    @abstractmethod
    def record_best_case(self, maze_id: int, moves: int) -> bool:
        """Lower the best case for maze_id. Never raises it. Returns True if improved."""

    @abstractmethod
    def record_episode(self, maze_id: int) -> int:
        """Count one more episode on maze_id. Returns the new count."""

    @abstractmethod
    def maze_ids(self) -> list[int]:
        """All maze identities with a record."""

    def best_case(self, maze_id: int) -> int | None:
        return self.load(maze_id).best_case

"""ASCII grid mazes with keys and doors.

Layout symbols: '#' blocked, '.' open, 'K' key, 'D' door, 'E' exit,
'@' start (open). Everything outside the layout is blocked.
"""

import logging
from dataclasses import dataclass
from pathlib import Path

import numpy as np

from keymaze.actions import Action
from keymaze.agents.scout.compute.grid import SYMBOLS, Kind
from keymaze.agents.scout.compute.vision import CellView, VisionReport

logger = logging.getLogger(__name__)

_PARSE = {symbol: kind for kind, symbol in SYMBOLS.items() if kind != Kind.UNEXPLORED}
_PARSE["@"] = Kind.OPEN

# (drow, dcol) per compass direction; row 0 is the northernmost row
_OFFSETS = {
    "north": (-1, 0),
    "south": (1, 0),
    "east": (0, 1),
    "west": (0, -1),
}

_VISIBLE = (Kind.OPEN, Kind.KEY)


@dataclass
class StepResult:
    vision: VisionReport
    keys: int
    ok: bool  # Whether the action was accepted
    done: bool
    won: bool


@dataclass
class EpisodeResult:
    won: bool
    steps: int


class GridMaze:
    """A fixed maze layout the agent can be dropped into repeatedly.

    Args:
        layout: Rows of layout symbols, north at the top
        vision_depth: How many walkable cells the agent sees in each direction
        max_steps: The episode ends unsolved after this many actions
    """

    def __init__(self, layout: str, vision_depth: int = 3, max_steps: int | None = 1000):
        self.layout, starts = self._parse(layout)
        self.vision_depth = vision_depth
        self.max_steps = max_steps

        if len(starts) != 1:
            raise ValueError(f"Layout needs exactly one start '@', found {len(starts)}")
        self.start: tuple[int, int] = starts[0]

        self.grid = self.layout.copy()
        self.position = self.start
        self.keys = 0
        self.steps = 0
        self.done = False
        self.won = False

    @staticmethod
    def _parse(layout: str) -> tuple[np.ndarray, list[tuple[int, int]]]:
        lines = [line.rstrip() for line in layout.strip("\n").splitlines()]
        lines = [line for line in lines if line]
        if not lines:
            raise ValueError("Empty maze layout")
        width = max(len(line) for line in lines)
        grid = np.full((len(lines), width), Kind.BLOCKED, dtype=np.int8)
        starts = []
        for r, line in enumerate(lines):
            for c, symbol in enumerate(line):
                if symbol == " ":
                    continue  # Padding, stays blocked
                if symbol not in _PARSE:
                    raise ValueError(f"Unknown maze symbol {symbol!r} at row {r}, column {c}")
                grid[r, c] = _PARSE[symbol]
                if symbol == "@":
                    starts.append((r, c))
        return grid, starts

    @classmethod
    def from_file(cls, path: Path | str, **kwargs) -> "GridMaze":
        return cls(Path(path).read_text(), **kwargs)

    def kind_at(self, row: int, col: int) -> Kind:
        if 0 <= row < self.grid.shape[0] and 0 <= col < self.grid.shape[1]:
            return Kind(int(self.grid[row, col]))
        return Kind.BLOCKED

    def to_agent_coord(self, row: int, col: int) -> tuple[int, int]:
        """(x, y) relative to the start, north being +y."""
        return col - self.start[1], self.start[0] - row

    # -------------------------------------------------------------------------
    # Episode
    # -------------------------------------------------------------------------

    def reset(self) -> VisionReport:
        self.grid = self.layout.copy()
        self.position = self.start
        self.keys = 0
        self.steps = 0
        self.done = False
        self.won = False
        return self.vision()

    def vision(self) -> VisionReport:
        """Current cell plus the walkable cells in line of sight, nearest first."""
        row, col = self.position
        seen: dict[str, tuple[CellView, ...]] = {}
        for direction, (dr, dc) in _OFFSETS.items():
            views = []
            r, c = row, col
            for _ in range(self.vision_depth):
                r, c = r + dr, c + dc
                if self.kind_at(r, c) not in _VISIBLE:
                    break
                views.append(self._view(r, c))
            seen[direction] = tuple(views)
        return VisionReport(current=self._view(row, col), **seen)

    def _view(self, row: int, col: int) -> CellView:
        return CellView(
            has_key=self.kind_at(row, col) == Kind.KEY,
            north=self.kind_at(row - 1, col),
            south=self.kind_at(row + 1, col),
            east=self.kind_at(row, col + 1),
            west=self.kind_at(row, col - 1),
        )

    def step(self, action: Action) -> StepResult:
        if self.done:
            raise RuntimeError("Episode is over, call reset()")
        self.steps += 1
        ok = self._apply(action)
        if not ok:
            logger.debug(f"Step {self.steps}: {action.value} rejected at {self.to_agent_coord(*self.position)}")
        if not self.done and self.max_steps is not None and self.steps >= self.max_steps:
            self.done = True
        return StepResult(self.vision(), self.keys, ok, self.done, self.won)

    def _apply(self, action: Action) -> bool:
        row, col = self.position
        if action.direction is not None:
            dr, dc = _OFFSETS[action.direction]
            target = self.kind_at(row + dr, col + dc)
            if target in (Kind.BLOCKED, Kind.DOOR):
                return False
            self.position = (row + dr, col + dc)
            if target == Kind.EXIT:
                self.done = self.won = True
            return True

        if action == Action.PICKUP_KEY:
            if self.kind_at(row, col) != Kind.KEY:
                return False
            self.grid[row, col] = Kind.OPEN
            self.keys += 1
            return True

        if action == Action.OPEN_DOOR:
            doors = [
                (row + dr, col + dc)
                for dr, dc in _OFFSETS.values()
                if self.kind_at(row + dr, col + dc) == Kind.DOOR
            ]
            if not doors or self.keys <= 0:
                return False
            for r, c in doors:
                self.grid[r, c] = Kind.OPEN
            self.keys -= 1
            return True

        return False

    def render(self) -> str:
        """ASCII picture of the current state, agent shown as '@'."""
        rows = []
        for r in range(self.grid.shape[0]):
            chars = [SYMBOLS[Kind(int(k))] for k in self.grid[r]]
            if r == self.position[0]:
                chars[self.position[1]] = "@"
            rows.append("".join(chars))
        return "\n".join(rows)


def run_episode(agent, env: GridMaze, maze_id: int | None = None) -> EpisodeResult:
    """Play one episode of env with agent until it is won or out of steps."""
    vision = env.reset()
    agent.reset(maze_id)
    ok = True
    result = None
    while result is None or not result.done:
        action = agent.act(vision, env.keys, ok)
        result = env.step(action)
        vision, ok = result.vision, result.ok
    agent.on_episode_end(result.won)
    return EpisodeResult(won=result.won, steps=env.steps)

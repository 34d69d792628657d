"""Incrementally built map of the maze for the current episode."""

from __future__ import annotations

import logging
from collections.abc import Mapping

import numpy as np

from keymaze.errors import MapInconsistencyError

from .grid import SYMBOLS, Cell, Coord, GridView, Kind, neighbors, step
from .vision import CellView, VisionReport

logger = logging.getLogger(__name__)


class IncrementalMap:
    """Map of how much we know of the maze, relative to the starting cell (0, 0).

    Cells are only ever added. A known cell may change kind only through
    gameplay (picking up a key, opening a door); vision that contradicts a
    stored kind raises MapInconsistencyError.

    Besides the live map, the kind each cell had when first observed is kept
    separately so the knowledge can be reused on later attempts at the same
    maze, when keys and doors are back in place.
    """

    def __init__(
        self,
        learned: Mapping[Coord, Kind] | None = None,
        best_case: int | None = None,
    ):
        self._cells: dict[Coord, Cell] = {}
        self._original: dict[Coord, Kind] = {}
        self.location: Coord = (0, 0)
        self._best_case = best_case
        if learned:
            for coord, kind in learned.items():
                self._save(coord, Kind(kind))

    def __len__(self) -> int:
        return len(self._cells)

    def __contains__(self, coord: object) -> bool:
        return coord in self._cells

    def cell(self, coord: Coord) -> Cell | None:
        return self._cells.get(coord)

    def kind_at(self, coord: Coord) -> Kind | None:
        cell = self._cells.get(coord)
        return cell.kind if cell else None

    @property
    def current(self) -> Cell:
        return self._cells[self.location]

    # -------------------------------------------------------------------------
    # Vision
    # -------------------------------------------------------------------------

    def ingest_vision(self, report: VisionReport) -> int:
        """Fold a vision report into the map. Returns the number of new cells."""
        before = len(self._cells)
        self._fill_surrounding(report.current, self.location)
        for direction, views in report.directions().items():
            coord = self.location
            for view in views:
                coord = step(coord, direction)
                self._fill_surrounding(view, coord)
        added = len(self._cells) - before
        if added:
            logger.debug(f"Vision at {self.location} added {added} cells ({len(self._cells)} known)")
        return added

    def _fill_surrounding(self, view: CellView, coord: Coord) -> None:
        self._save(coord, view.kind)
        for direction, kind in view.neighbor_kinds().items():
            self._save(step(coord, direction), kind)

    def _save(self, coord: Coord, kind: Kind) -> Cell:
        existing = self._cells.get(coord)
        if existing is not None:
            if existing.kind != kind:
                raise MapInconsistencyError(coord, existing.kind, kind)
            return existing
        cell = Cell(coord[0], coord[1], kind)
        self._cells[coord] = cell
        self._original.setdefault(coord, kind)
        return cell

    # -------------------------------------------------------------------------
    # Gameplay
    # -------------------------------------------------------------------------

    def apply_move(self, direction: str) -> None:
        self.location = step(self.location, direction)

    def apply_key_pickup(self) -> None:
        cell = self._cells.get(self.location)
        if cell is None or cell.kind != Kind.KEY:
            logger.warning(f"Key pickup applied at {self.location} but no key is recorded there")
            return
        cell.kind = Kind.OPEN

    def apply_door_open(self) -> list[Coord]:
        """Open every door adjacent to the agent (there should only be one)."""
        opened = []
        for coord in neighbors(self.location):
            cell = self._cells.get(coord)
            if cell is not None and cell.kind == Kind.DOOR:
                cell.kind = Kind.OPEN
                opened.append(coord)
        if not opened:
            logger.warning(f"Door opening applied at {self.location} but no adjacent door is recorded")
        return opened

    # -------------------------------------------------------------------------
    # Best case
    # -------------------------------------------------------------------------

    @property
    def best_case(self) -> int | None:
        """Best exit solution length known for this maze, or None if never solved."""
        return self._best_case

    def record_best_case(self, moves: int) -> bool:
        """Lower the best case to moves. Returns True if it improved."""
        if self._best_case is not None and self._best_case <= moves:
            return False
        self._best_case = moves
        return True

    # -------------------------------------------------------------------------
    # Export
    # -------------------------------------------------------------------------

    def kinds(self) -> dict[Coord, Kind]:
        return {coord: cell.kind for coord, cell in self._cells.items()}

    def original_kinds(self) -> dict[Coord, Kind]:
        """Kinds as first observed, ignoring keys picked up and doors opened."""
        return dict(self._original)

    def snapshot(self) -> GridView:
        """Frozen copy of the current state for planning."""
        return GridView.snapshot(self.kinds())

    def frontier_cells(self) -> list[Coord]:
        """Known walkable cells with at least one unobserved neighbour."""
        return [
            coord
            for coord, cell in self._cells.items()
            if cell.kind != Kind.BLOCKED and any(n not in self._cells for n in neighbors(coord))
        ]

    def to_array(self) -> tuple[np.ndarray, Coord]:
        """Dense array of kind codes, row 0 being the northernmost row.

        Unknown cells hold Kind.UNEXPLORED. Returns (array, origin) where
        origin is the (x, y) coordinate of array[0, 0].
        """
        if not self._cells:
            return np.full((0, 0), Kind.UNEXPLORED, dtype=np.int8), (0, 0)
        xs = [c[0] for c in self._cells]
        ys = [c[1] for c in self._cells]
        min_x, max_y = min(xs), max(ys)
        grid = np.full((max_y - min(ys) + 1, max(xs) - min_x + 1), Kind.UNEXPLORED, dtype=np.int8)
        for (x, y), cell in self._cells.items():
            grid[max_y - y, x - min_x] = cell.kind
        return grid, (min_x, max_y)

    def render(self) -> str:
        """ASCII picture of the known map, agent shown as '@'."""
        grid, (min_x, max_y) = self.to_array()
        rows = []
        for r in range(grid.shape[0]):
            chars = []
            for c in range(grid.shape[1]):
                if (min_x + c, max_y - r) == self.location:
                    chars.append("@")
                else:
                    chars.append(SYMBOLS[Kind(int(grid[r, c]))])
            rows.append("".join(chars).rstrip())
        return "\n".join(rows)

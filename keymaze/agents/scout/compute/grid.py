"""Cells, kinds and copy-on-branch grid snapshots."""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from enum import IntEnum
from types import MappingProxyType

Coord = tuple[int, int]


class Kind(IntEnum):
    UNEXPLORED = -1  # Frontier sentinel only
    OPEN = 0
    BLOCKED = 1
    KEY = 2
    DOOR = 3
    EXIT = 4


# ASCII symbols, shared by the environment parser and map rendering
SYMBOLS = {
    Kind.UNEXPLORED: " ",
    Kind.OPEN: ".",
    Kind.BLOCKED: "#",
    Kind.KEY: "K",
    Kind.DOOR: "D",
    Kind.EXIT: "E",
}

# Walkable kinds for ordinary movement (doors need opening first)
TRAVERSABLE = frozenset({Kind.OPEN, Kind.KEY, Kind.EXIT})

# Direction vectors: (dx, dy). North is +y, east is +x.
DIRS: dict[str, Coord] = {
    "north": (0, 1),
    "south": (0, -1),
    "east": (1, 0),
    "west": (-1, 0),
}


def step(coord: Coord, direction: str) -> Coord:
    """Coordinate one move away in a cardinal direction."""
    dx, dy = DIRS[direction]
    return coord[0] + dx, coord[1] + dy


def neighbors(coord: Coord) -> Iterator[Coord]:
    """The four cardinal neighbours, in north/south/east/west order."""
    x, y = coord
    for dx, dy in DIRS.values():
        yield x + dx, y + dy


def direction_between(a: Coord, b: Coord) -> str | None:
    """Cardinal direction from a to b, or None if they are not adjacent."""
    delta = (b[0] - a[0], b[1] - a[1])
    for name, vec in DIRS.items():
        if vec == delta:
            return name
    return None


def distance(a: Coord, b: Coord) -> int:
    """Manhattan distance between two points."""
    return abs(b[0] - a[0]) + abs(b[1] - a[1])


class Cell:
    """One maze cell. Two cells are equal iff their coordinates are equal."""

    __slots__ = ("x", "y", "kind")

    def __init__(self, x: int | None, y: int | None, kind: Kind):
        self.x = x
        self.y = y
        self.kind = kind

    @property
    def coord(self) -> Coord:
        return self.x, self.y

    @property
    def is_frontier(self) -> bool:
        return self.x is None

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Cell):
            return NotImplemented
        return self.x == other.x and self.y == other.y

    def __hash__(self) -> int:
        return hash((self.x, self.y))

    def __repr__(self) -> str:
        if self.is_frontier:
            return "Cell(FRONTIER)"
        return f"Cell({self.x}, {self.y}, {self.kind.name})"


# All unknown territory, collectively. Injected once per search graph.
FRONTIER = Cell(None, None, Kind.UNEXPLORED)


class GridView:
    """Read-only view of a map state with per-branch overrides.

    The base mapping is shared between every branch of a planning pass and
    must not be mutated while views on it exist. ``with_changes`` copies only
    the (small) override table, so many hypothetical futures can coexist
    without deep-copying the map.
    """

    __slots__ = ("_base", "_overrides", "_by_kind")

    def __init__(
        self,
        base: Mapping[Coord, Kind],
        overrides: Mapping[Coord, Kind] | None = None,
        _by_kind: Mapping[Kind, tuple[Coord, ...]] | None = None,
    ):
        self._base = base
        self._overrides = MappingProxyType(dict(overrides or {}))
        if _by_kind is None:
            index: dict[Kind, list[Coord]] = {Kind.KEY: [], Kind.DOOR: [], Kind.EXIT: []}
            for coord, kind in base.items():
                if kind in index:
                    index[kind].append(coord)
            _by_kind = {kind: tuple(coords) for kind, coords in index.items()}
        self._by_kind = _by_kind

    @classmethod
    def snapshot(cls, kinds: Mapping[Coord, Kind]) -> GridView:
        """Freeze a copy of the given kinds as the shared base."""
        return cls(MappingProxyType(dict(kinds)))

    def kind_at(self, coord: Coord) -> Kind | None:
        """Kind at coord, or None if the coordinate has never been observed."""
        kind = self._overrides.get(coord)
        if kind is not None:
            return kind
        return self._base.get(coord)

    def __contains__(self, coord: object) -> bool:
        return coord in self._base

    def __len__(self) -> int:
        return len(self._base)

    def coords(self) -> Iterator[Coord]:
        return iter(self._base)

    def cell(self, coord: Coord) -> Cell:
        kind = self.kind_at(coord)
        if kind is None:
            raise KeyError(coord)
        return Cell(coord[0], coord[1], kind)

    def cells_of(self, kind: Kind) -> list[Coord]:
        """Coordinates currently holding the given kind."""
        if kind in self._by_kind:
            candidates = self._by_kind[kind]
        else:
            candidates = tuple(self._base)
        found = [c for c in candidates if self.kind_at(c) == kind]
        # Overrides only ever open cells, but stay correct if that changes
        found.extend(c for c, k in self._overrides.items() if k == kind and self._base.get(c) != kind)
        return found

    def count(self, kind: Kind) -> int:
        return len(self.cells_of(kind))

    @property
    def overrides(self) -> Mapping[Coord, Kind]:
        return self._overrides

    def with_changes(self, changes: Mapping[Coord, Kind]) -> GridView:
        """New view sharing this view's base, with extra overrides applied."""
        if not changes:
            return self
        merged = dict(self._overrides)
        merged.update(changes)
        return GridView(self._base, merged, self._by_kind)

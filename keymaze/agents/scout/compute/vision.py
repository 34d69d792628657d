"""Vision reports handed to the agent by the environment.

Directions are absolute compass directions, not relative to a heading.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from .grid import Kind


@dataclass(frozen=True)
class CellView:
    """What the agent sees of one walkable cell: a key flag and its neighbours."""

    has_key: bool
    north: Kind
    south: Kind
    east: Kind
    west: Kind

    @property
    def kind(self) -> Kind:
        # Only walkable cells are ever reported directly
        return Kind.KEY if self.has_key else Kind.OPEN

    def neighbor_kinds(self) -> dict[str, Kind]:
        return {"north": self.north, "south": self.south, "east": self.east, "west": self.west}


@dataclass(frozen=True)
class VisionReport:
    """The current cell plus, per direction, the visible cells nearest first."""

    current: CellView
    north: tuple[CellView, ...] = field(default_factory=tuple)
    south: tuple[CellView, ...] = field(default_factory=tuple)
    east: tuple[CellView, ...] = field(default_factory=tuple)
    west: tuple[CellView, ...] = field(default_factory=tuple)

    def directions(self) -> dict[str, tuple[CellView, ...]]:
        return {"north": self.north, "south": self.south, "east": self.east, "west": self.west}

"""Constrained shortest-path search over the known part of the maze.

The search graph is every known non-blocked cell plus one FRONTIER node that
stands for all unobserved territory. Movement rules:
- Doors are only entered when a door is what we are looking for
- The frontier is only entered when unexplored territory is the goal
- Open, key and exit cells cost 1 to enter, as do doors and the frontier
- Blocked cells never enter the graph
"""

import heapq
import itertools
import logging
import math
import random
from collections import deque
from dataclasses import dataclass

from keymaze.errors import RouteIntegrityError

from .grid import FRONTIER, Cell, Coord, GridView, Kind, direction_between, neighbors

logger = logging.getLogger(__name__)

# Goal specification: a kind to look for, a specific cell or coordinate,
# or None for "any unexplored cell"
Goal = Kind | Cell | Coord | None

# Scratch-table key for the frontier node (real cells use their coordinate)
_FRONTIER_KEY = None

STEP_COST = 1


@dataclass
class _SearchNode:
    """Per-query scratch state for one vertex. Discarded after the query."""

    distance: float = math.inf
    visited: bool = False
    predecessor: Coord | None = None


@dataclass(frozen=True)
class _GoalSpec:
    kind: Kind | None = None
    coord: Coord | None = None

    @property
    def frontier(self) -> bool:
        return self.kind is None and self.coord is None


def _normalize_goal(goal: Goal) -> _GoalSpec:
    if goal is None or goal == Kind.UNEXPLORED:
        return _GoalSpec()
    if isinstance(goal, Cell):
        if goal.is_frontier:
            return _GoalSpec()
        return _GoalSpec(coord=goal.coord)
    if isinstance(goal, Kind):
        return _GoalSpec(kind=goal)
    return _GoalSpec(coord=(int(goal[0]), int(goal[1])))


class ShortestPathEngine:
    """Dijkstra over one GridView, re-run from scratch for every query.

    Ties between equally distant vertices are broken with a random draw from
    ``rng``, which varies the chosen routes across repeated runs on the same
    maze. Pass a seeded ``random.Random`` for reproducible results.
    """

    def __init__(self, grid: GridView, rng: random.Random | None = None):
        self.grid = grid
        self.rng = rng or random.Random()
        self.queries = 0

    def shortest_to(self, start: Coord, goal: Goal) -> list[Cell] | None:
        """Shortest route from start to the first settled cell matching goal.

        Args:
            start: Starting (x, y) coordinate
            goal: Kind to look for, a specific Cell/coordinate, or None for the frontier

        Returns:
            Cells from start to goal inclusive, or None if the goal is
            unreachable. Also None if start itself matches the goal.
        """
        self.queries += 1
        spec = _normalize_goal(goal)
        start_kind = self.grid.kind_at(start)
        if start_kind is None or start_kind == Kind.BLOCKED:
            return None

        scratch: dict[Coord | None, _SearchNode] = {start: _SearchNode(distance=0)}
        counter = itertools.count()
        heap: list[tuple[float, float, int, Coord | None]] = [(0, self.rng.random(), next(counter), start)]

        while heap:
            dist, _, _, key = heapq.heappop(heap)
            node = scratch[key]
            if node.visited:
                continue
            node.visited = True  # Settled

            if self._matches(key, spec):
                route = self._reconstruct(scratch, key)
                # Need at least 2 elements to be a route
                return route if len(route) > 1 else None

            if key is _FRONTIER_KEY:
                continue  # The frontier has no known exits

            for nkey in self._edges(key, spec):
                nnode = scratch.get(nkey)
                if nnode is None:
                    nnode = scratch[nkey] = _SearchNode()
                if nnode.visited:
                    continue
                alt = dist + STEP_COST
                if alt < nnode.distance:
                    nnode.distance = alt
                    nnode.predecessor = key
                    heapq.heappush(heap, (alt, self.rng.random(), next(counter), nkey))

        return None

    def distance_to(self, start: Coord, goal: Goal) -> int | None:
        """Cost of the shortest route (moves), or None if unreachable."""
        route = self.shortest_to(start, goal)
        return None if route is None else route_cost(route)

    def reachable(self, start: Coord) -> set[Coord]:
        """Every known coordinate reachable from start without crossing a door."""
        self.queries += 1
        start_kind = self.grid.kind_at(start)
        if start_kind is None or start_kind == Kind.BLOCKED:
            return set()
        seen = {start}
        queue = deque([start])
        while queue:
            coord = queue.popleft()
            for n in neighbors(coord):
                if n in seen:
                    continue
                kind = self.grid.kind_at(n)
                if kind is None or kind in (Kind.BLOCKED, Kind.DOOR):
                    continue
                seen.add(n)
                queue.append(n)
        return seen

    def _matches(self, key: Coord | None, spec: _GoalSpec) -> bool:
        if spec.frontier:
            return key is _FRONTIER_KEY
        if key is _FRONTIER_KEY:
            return False
        if spec.coord is not None:
            return key == spec.coord
        return self.grid.kind_at(key) == spec.kind

    def _edges(self, coord: Coord, spec: _GoalSpec):
        frontier_added = False
        for n in neighbors(coord):
            kind = self.grid.kind_at(n)
            if kind is None:
                # Unknown territory is only a destination when looking for it
                if spec.frontier and not frontier_added:
                    frontier_added = True
                    yield _FRONTIER_KEY
                continue
            if kind == Kind.BLOCKED:
                continue
            if kind == Kind.DOOR and spec.kind != Kind.DOOR and n != spec.coord:
                continue
            yield n

    def _reconstruct(self, scratch: dict[Coord | None, _SearchNode], key: Coord | None) -> list[Cell]:
        route: list[Cell] = []
        current = key
        while True:
            route.append(FRONTIER if current is _FRONTIER_KEY else self.grid.cell(current))
            node = scratch[current]
            if node.distance == 0:
                break
            current = node.predecessor
        route.reverse()
        return route


def shortest_path(
    grid: GridView,
    start: Coord,
    goal: Goal,
    rng: random.Random | None = None,
) -> list[Cell] | None:
    """One-off shortest-path query. See ShortestPathEngine.shortest_to."""
    return ShortestPathEngine(grid, rng).shortest_to(start, goal)


def route_cost(route: list[Cell]) -> int:
    """Number of moves along a route (every entered cell costs one step)."""
    return len(route) - 1


def validate_route(route: list[Cell], grid: GridView | None = None) -> None:
    """Check that consecutive route cells are grid-adjacent.

    The frontier sentinel may only appear last; when a grid is given, the
    cell before it must border unobserved territory.

    Raises:
        RouteIntegrityError: If the route is malformed
    """
    for i, (a, b) in enumerate(zip(route, route[1:])):
        if a.is_frontier:
            raise RouteIntegrityError(f"Frontier sentinel inside route at index {i}: {route}")
        if b.is_frontier:
            if i + 2 != len(route):
                raise RouteIntegrityError(f"Frontier sentinel inside route at index {i + 1}: {route}")
            if grid is not None and all(n in grid for n in neighbors(a.coord)):
                raise RouteIntegrityError(f"{a} does not border unexplored territory")
            continue
        if direction_between(a.coord, b.coord) is None:
            raise RouteIntegrityError(f"Cells {a} and {b} are not adjacent: {route}")

"""Branch-and-bound search over key pickups and door openings.

Looks for the shortest feasible route to a target kind (usually the exit,
or None for the nearest unexplored territory) where a door can only be
opened with a key in hand.

Each round over the working set of partial paths:
 1. Direct reach: route every partial path straight to the target without
    crossing doors. Hits go to the solved list and tighten the bound.
 2. Key acquisition: drop paths already longer than the bound. Collect the
    keys reachable without doors in closest-first order, group them into
    directions, and branch on taking the first 1, 2, ... k keys of each
    direction (never more keys than there are doors left).
 3. Door opening: branch once per door reachable by a path holding a key.
    Keys still reachable on the near side of the door are dropped from that
    branch, as if they had been collected on the way.
Rounds repeat until no partial path is left or the budget runs out.

This is an approximation: it does not enumerate every permutation of keys
and doors, so the answer is not guaranteed optimal.
"""

from __future__ import annotations

import logging
import math
import random
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum

from keymaze.errors import RouteIntegrityError

from .grid import FRONTIER, Cell, Coord, GridView, Kind
from .navigation import Goal, ShortestPathEngine

logger = logging.getLogger(__name__)


class PlanStopReason(Enum):
    SOLVED = "solved"
    NO_SOLUTION = "no_solution"
    BUDGET_EXHAUSTED = "budget_exhausted"


@dataclass
class PlannerBudget:
    """Caps on one planning pass. None disables a cap."""

    max_queries: int | None = 20000
    time_limit: float | None = 5.0  # seconds


@dataclass
class PlanStats:
    queries: int = 0
    rounds: int = 0
    branches: int = 0
    pruned: int = 0
    merged: int = 0
    solved: int = 0
    elapsed: float = 0.0


@dataclass
class PlanResult:
    """Outcome of a planning pass."""

    route: list[Cell] | None
    reason: PlanStopReason
    stats: PlanStats = field(default_factory=PlanStats)

    @property
    def success(self) -> bool:
        return self.route is not None

    @property
    def cost(self) -> int | None:
        return None if self.route is None else len(self.route) - 1

    def __bool__(self) -> bool:
        return self.success

    def __repr__(self) -> str:
        if self.route is not None:
            return f"PlanResult(route=[{len(self.route)} cells], reason={self.reason.value})"
        return f"PlanResult(route=None, reason={self.reason.value})"


# (grid, location) -> coordinates reachable without crossing a door
ReachFn = Callable[[GridView, Coord], set[Coord]]


@dataclass(frozen=True)
class PlannedPath:
    """A hypothetical route together with the world state at its end.

    Immutable: extending returns a new path with its own map overrides, so
    branches that share a prefix never observe each other's pickups.
    """

    cells: tuple[Cell, ...]
    keys: int
    grid: GridView

    @classmethod
    def start(cls, grid: GridView, location: Coord, keys: int) -> PlannedPath:
        here = grid.cell(location)
        if here.kind == Kind.KEY:
            # Standing on a key: it gets picked up before anything else
            grid = grid.with_changes({location: Kind.OPEN})
            keys += 1
        return cls((here,), keys, grid)

    @property
    def location(self) -> Coord:
        return self.cells[-1].coord

    @property
    def cost(self) -> int:
        return len(self.cells) - 1

    @property
    def finished_at_frontier(self) -> bool:
        return self.cells[-1].is_frontier

    def signature(self) -> tuple:
        return self.location, self.keys, frozenset(self.grid.overrides.items())

    def extend(self, segment: list[Cell], reach: ReachFn | None = None) -> PlannedPath:
        """Follow segment from this path's end, picking up keys and opening doors.

        Args:
            segment: Route starting at (or adjacent to) this path's end
            reach: Flood fill used to drop keys left behind when a door opens

        Raises:
            RouteIntegrityError: If the segment opens a door without a key
        """
        if self.finished_at_frontier:
            raise RouteIntegrityError("Cannot extend a path that ends in unexplored territory")
        cells = list(self.cells)
        keys = self.keys
        grid = self.grid
        steps = segment[1:] if segment and segment[0] == cells[-1] else segment

        for cell in steps:
            if cell.is_frontier:
                cells.append(FRONTIER)
                break
            kind = grid.kind_at(cell.coord)
            if kind == Kind.DOOR:
                if keys <= 0:
                    raise RouteIntegrityError(f"Route opens door at {cell.coord} without a key")
                if reach is not None:
                    grid = _prune_keys(grid, cells[-1].coord, reach)
                keys -= 1
                grid = grid.with_changes({cell.coord: Kind.OPEN})
            elif kind == Kind.KEY:
                keys += 1
                grid = grid.with_changes({cell.coord: Kind.OPEN})
            cells.append(Cell(cell.x, cell.y, kind if kind is not None else cell.kind))

        return PlannedPath(tuple(cells), keys, grid)


def _prune_keys(grid: GridView, location: Coord, reach: ReachFn) -> GridView:
    """Treat every key reachable from location without a door as gone."""
    reachable = reach(grid, location)
    gone = {coord: Kind.OPEN for coord in grid.cells_of(Kind.KEY) if coord in reachable}
    return grid.with_changes(gone)


class _Run:
    """Budget and engine bookkeeping for one planning pass."""

    def __init__(self, budget: PlannerBudget, rng: random.Random, stats: PlanStats):
        self.budget = budget
        self.rng = rng
        self.stats = stats
        self.started = time.perf_counter()
        self.exhausted = False

    def _spend(self) -> bool:
        if self.exhausted:
            return False
        max_queries = self.budget.max_queries
        time_limit = self.budget.time_limit
        if max_queries is not None and self.stats.queries >= max_queries:
            self.exhausted = True
        elif time_limit is not None and time.perf_counter() - self.started > time_limit:
            self.exhausted = True
        if self.exhausted:
            logger.debug(f"Planner budget exhausted after {self.stats.queries} queries")
            return False
        self.stats.queries += 1
        return True

    def query(self, grid: GridView, start: Coord, goal: Goal) -> list[Cell] | None:
        if not self._spend():
            return None
        return ShortestPathEngine(grid, self.rng).shortest_to(start, goal)

    def reach(self, grid: GridView, start: Coord) -> set[Coord]:
        if not self._spend():
            return set()
        return ShortestPathEngine(grid, self.rng).reachable(start)


class KeyDoorPlanner:
    """Branch-and-bound planner for routes that need keys to open doors.

    Args:
        budget: Query and wall-clock caps for each planning pass
        rng: Random source for shortest-path tie-breaking
        step_limit: Episode step budget, used as the initial pruning bound
    """

    def __init__(
        self,
        budget: PlannerBudget | None = None,
        rng: random.Random | None = None,
        step_limit: int | None = None,
    ):
        self.budget = budget or PlannerBudget()
        self.rng = rng or random.Random()
        self.step_limit = step_limit

    def plan(
        self,
        grid: GridView,
        start: Coord,
        keys: int,
        target: Kind | None = Kind.EXIT,
        best_case: int | None = None,
    ) -> PlanResult:
        """Find a near-shortest route from start to the target kind.

        Args:
            grid: Snapshot of the known map (not modified)
            start: Current (x, y) position
            keys: Keys currently held
            target: Kind to reach, or None for unexplored territory
            best_case: Best solution length ever found on this maze, if any

        Returns:
            PlanResult whose route runs from start to the target inclusive
        """
        stats = PlanStats()
        run = _Run(self.budget, self.rng, stats)

        shortest = math.inf
        for bound in (best_case, self.step_limit):
            if bound is not None:
                shortest = min(shortest, bound)

        paths = [PlannedPath.start(grid, start, keys)]
        solved: list[PlannedPath] = []

        while paths and not run.exhausted:
            stats.rounds += 1

            # Direct reach
            for path in paths:
                route = run.query(path.grid, path.location, target)
                if route is None:
                    continue
                done = path.extend(route, run.reach)
                solved.append(done)
                if done.cost < shortest:
                    shortest = done.cost
                    logger.debug(f"Round {stats.rounds}: new bound {shortest}")

            # Key acquisition
            survivors: list[PlannedPath] = []
            branched: list[PlannedPath] = []
            for path in paths:
                if path.cost > shortest:
                    stats.pruned += 1
                    continue
                key_order = self._reachable_keys(run, path)
                if not key_order and path.keys == 0:
                    stats.pruned += 1  # Nothing to pick up and nothing to open doors with
                    continue
                survivors.append(path)
                doors = path.grid.count(Kind.DOOR)
                for direction in self._cluster_keys(run, path, key_order):
                    branched.extend(self._collect_prefixes(run, path, direction, doors))
            stats.branches += len(branched)
            paths = survivors + branched

            # Door opening
            opened: list[PlannedPath] = []
            for path in paths:
                if path.cost > shortest or path.keys == 0:
                    stats.pruned += 1
                    continue
                for door in path.grid.cells_of(Kind.DOOR):
                    route = run.query(path.grid, path.location, door)
                    if route is None:
                        continue
                    opened.append(path.extend(route, run.reach))
            stats.branches += len(opened)
            paths = self._merge(opened, stats)

        stats.solved = len(solved)
        stats.elapsed = time.perf_counter() - run.started

        best = min(solved, key=lambda p: p.cost) if solved else None
        if run.exhausted:
            reason = PlanStopReason.BUDGET_EXHAUSTED
        elif best is None:
            reason = PlanStopReason.NO_SOLUTION
        else:
            reason = PlanStopReason.SOLVED

        target_name = target.name if target is not None else "FRONTIER"
        logger.debug(
            f"Plan to {target_name} from {start} with {keys} keys: {reason.value}, "
            f"cost={best.cost if best else None}, rounds={stats.rounds}, queries={stats.queries}, "
            f"branches={stats.branches}, pruned={stats.pruned}, {stats.elapsed * 1000:.1f}ms"
        )
        return PlanResult(list(best.cells) if best else None, reason, stats)

    def _reachable_keys(self, run: _Run, path: PlannedPath) -> list[Coord]:
        """Keys reachable without doors, in the order a greedy walk picks them up."""
        order: list[Coord] = []
        walker = path
        while True:
            route = run.query(walker.grid, walker.location, Kind.KEY)
            if route is None:
                break
            walker = walker.extend(route)
            order.append(route[-1].coord)
        return order

    def _cluster_keys(self, run: _Run, path: PlannedPath, key_order: list[Coord]) -> list[list[Coord]]:
        """Group keys into directions.

        Starting from the closest remaining key, every other key whose route
        gets strictly shorter after walking to that key joins its direction.
        """
        remaining = list(key_order)
        directions: list[list[Coord]] = []
        while remaining:
            first = remaining.pop(0)
            direction = [first]
            to_first = run.query(path.grid, path.location, first)
            if to_first is not None:
                after_first = path.extend(to_first)
                for other in list(remaining):
                    before = run.query(path.grid, path.location, other)
                    after = run.query(after_first.grid, after_first.location, other)
                    if before is not None and after is not None and len(after) < len(before):
                        direction.append(other)
                        remaining.remove(other)
            directions.append(direction)
        return directions

    def _collect_prefixes(
        self, run: _Run, path: PlannedPath, direction: list[Coord], doors: int
    ) -> list[PlannedPath]:
        """Branches collecting the first 1, 2, ... keys of a direction."""
        branches = []
        current = path
        for taken, key in enumerate(direction, start=1):
            if taken > doors:
                break  # More keys than doors is never useful
            route = run.query(current.grid, current.location, key)
            if route is None:
                continue
            current = current.extend(route)
            branches.append(current)
        return branches

    def _merge(self, paths: list[PlannedPath], stats: PlanStats) -> list[PlannedPath]:
        """Keep only the cheapest of paths that reach the same state."""
        best: dict[tuple, PlannedPath] = {}
        for path in paths:
            sig = path.signature()
            kept = best.get(sig)
            if kept is None or path.cost < kept.cost:
                best[sig] = path
        stats.merged += len(paths) - len(best)
        return list(best.values())

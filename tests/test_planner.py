import random

import pytest

from keymaze.agents.scout.compute import (
    FRONTIER,
    GridView,
    Kind,
    KeyDoorPlanner,
    PlannedPath,
    PlannerBudget,
    PlanStopReason,
    ShortestPathEngine,
    shortest_path,
    validate_route,
)
from keymaze.errors import RouteIntegrityError

KEY_DOOR = """
#K##
#@DE
####
"""


def _coords(route):
    return [c.coord for c in route]


@pytest.fixture
def planner(rng):
    return KeyDoorPlanner(PlannerBudget(max_queries=5000, time_limit=None), rng)


def test_open_grid_scenario(ascii_grid, planner):
    grid = ascii_grid(
        """
        ..E
        ...
        @..
        """
    )
    result = planner.plan(grid, (0, 0), keys=0)

    assert result.reason == PlanStopReason.SOLVED
    assert len(result.route) == 5
    assert result.cost == 4
    assert result.route[0].coord == (0, 0)
    assert result.route[-1].coord == (2, 2)
    validate_route(result.route)


def test_key_then_door(ascii_grid, planner):
    result = planner.plan(ascii_grid(KEY_DOOR), (0, 0), keys=0)

    assert result.success
    assert _coords(result.route) == [(0, 0), (0, 1), (0, 0), (1, 0), (2, 0)]
    assert result.cost == 4


def test_key_in_hand_goes_straight_through(ascii_grid, planner):
    result = planner.plan(ascii_grid(KEY_DOOR), (0, 0), keys=1)
    assert _coords(result.route) == [(0, 0), (1, 0), (2, 0)]


def test_standing_on_a_key_counts_as_holding_it(ascii_kinds, planner):
    kinds = ascii_kinds("@DE")
    kinds[(0, 0)] = Kind.KEY
    result = planner.plan(GridView.snapshot(kinds), (0, 0), keys=0)
    assert _coords(result.route) == [(0, 0), (1, 0), (2, 0)]


def test_no_key_no_solution(ascii_grid, planner):
    result = planner.plan(ascii_grid("#@DE#"), (0, 0), keys=0)
    assert result.route is None
    assert result.reason == PlanStopReason.NO_SOLUTION
    assert not result


def test_picks_the_cheaper_of_two_keys(ascii_grid, planner):
    grid = ascii_grid(
        """
        K######
        .######
        .######
        .#K####
        ..@D.E#
        #######
        """
    )
    result = planner.plan(grid, (0, 0), keys=0)
    # The key right above beats the one four moves away
    assert _coords(result.route)[:3] == [(0, 0), (0, 1), (0, 0)]
    assert result.cost == 5


def test_two_doors_need_two_keys_from_one_corridor(ascii_grid, planner):
    grid = ascii_grid(
        """
        ###
        #K#
        #K###
        #@DDE#
        ######
        """
    )
    result = planner.plan(grid, (0, 0), keys=0)
    assert _coords(result.route) == [(0, 0), (0, 1), (0, 2), (0, 1), (0, 0), (1, 0), (2, 0), (3, 0)]
    assert result.cost == 7


def test_frontier_target(ascii_grid, planner):
    grid = ascii_grid(
        """
        ####
        #K##
        #@D.
        ####
        """
    )
    result = planner.plan(grid, (0, 0), keys=0, target=None)
    assert result.route[-1] is FRONTIER
    assert _coords(result.route[:-1]) == [(0, 0), (0, 1), (0, 0), (1, 0), (2, 0)]
    validate_route(result.route, grid)


def test_zero_query_budget(ascii_grid, rng):
    planner = KeyDoorPlanner(PlannerBudget(max_queries=0, time_limit=None), rng)
    result = planner.plan(ascii_grid(KEY_DOOR), (0, 0), keys=0)
    assert result.route is None
    assert result.reason == PlanStopReason.BUDGET_EXHAUSTED
    assert result.stats.queries == 0


def _degenerate_maze(size: int) -> GridView:
    """Open field criss-crossed by door walls, keys everywhere, exit in the far corner."""
    kinds = {}
    for x in range(size):
        for y in range(size):
            if x % 4 == 3:
                kinds[(x, y)] = Kind.DOOR if y % 3 == 0 else Kind.BLOCKED
            elif (x + y) % 5 == 0:
                kinds[(x, y)] = Kind.KEY
            else:
                kinds[(x, y)] = Kind.OPEN
    kinds[(0, 0)] = Kind.OPEN
    kinds[(size - 1, size - 1)] = Kind.EXIT
    return GridView.snapshot(kinds)


def test_planner_stays_within_query_budget():
    grid = _degenerate_maze(40)
    planner = KeyDoorPlanner(PlannerBudget(max_queries=300, time_limit=None), random.Random(0))
    result = planner.plan(grid, (0, 0), keys=0)

    assert result.reason == PlanStopReason.BUDGET_EXHAUSTED
    assert result.stats.queries <= 300
    if result.route is not None:
        validate_route(result.route)


def test_planner_stays_within_time_budget():
    grid = _degenerate_maze(40)
    planner = KeyDoorPlanner(PlannerBudget(max_queries=None, time_limit=0.2), random.Random(0))
    result = planner.plan(grid, (0, 0), keys=0)

    assert result.stats.elapsed < 5.0
    assert result.reason in (PlanStopReason.BUDGET_EXHAUSTED, PlanStopReason.SOLVED)


def test_best_case_bound_keeps_solution(ascii_grid, planner):
    result = planner.plan(ascii_grid(KEY_DOOR), (0, 0), keys=0, best_case=4)
    assert result.cost == 4


def test_paths_do_not_share_pickups(ascii_grid):
    grid = ascii_grid(KEY_DOOR)
    start = PlannedPath.start(grid, (0, 0), 0)
    to_key = shortest_path(grid, (0, 0), Kind.KEY)
    with_key = start.extend(to_key)

    assert with_key.keys == 1
    assert with_key.grid.kind_at((0, 1)) == Kind.OPEN
    assert start.keys == 0
    assert start.grid.kind_at((0, 1)) == Kind.KEY
    assert with_key.cost == 1
    assert with_key.signature() != start.signature()


def test_opening_a_door_without_a_key_is_rejected(ascii_grid):
    grid = ascii_grid(KEY_DOOR)
    start = PlannedPath.start(grid, (0, 0), 0)
    to_door = shortest_path(grid, (0, 0), Kind.DOOR)
    with pytest.raises(RouteIntegrityError):
        start.extend(to_door)


def _reach(grid, coord):
    return ShortestPathEngine(grid).reachable(coord)


def test_opening_a_door_drops_keys_left_behind(ascii_grid):
    grid = ascii_grid("#K@DE#")
    holding = PlannedPath.start(grid, (0, 0), 1)
    through = holding.extend(shortest_path(grid, (0, 0), Kind.DOOR), _reach)

    # The key behind us counts as gone, not as collected
    assert through.grid.kind_at((-1, 0)) == Kind.OPEN
    assert through.grid.kind_at((1, 0)) == Kind.OPEN
    assert through.keys == 0
    assert holding.grid.kind_at((-1, 0)) == Kind.KEY

    # Without a reach function nothing is dropped
    kept = holding.extend(shortest_path(grid, (0, 0), Kind.DOOR))
    assert kept.grid.kind_at((-1, 0)) == Kind.KEY
    assert kept.keys == 0


def test_keys_dropped_at_a_door_are_not_spent_later(ascii_grid, planner):
    # One key in hand, two doors: the key behind the first door has to be
    # fetched before opening it, it cannot be counted after the fact.
    grid = ascii_grid("#K@DDE#")
    result = planner.plan(grid, (0, 0), keys=1)

    assert result.reason == PlanStopReason.SOLVED
    assert _coords(result.route) == [(0, 0), (-1, 0), (0, 0), (1, 0), (2, 0), (3, 0)]
    assert result.cost == 5

import logging
import random
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from keymaze.actions import Action
from keymaze.agents.base import BaseAgent
from keymaze.errors import RouteIntegrityError

from .compute import (
    Cell,
    IncrementalMap,
    Kind,
    KeyDoorPlanner,
    PlannerBudget,
    PlanResult,
    PlanStopReason,
    VisionReport,
    direction_between,
    route_cost,
    shortest_path,
    step,
    validate_route,
)
from .compute.grid import DIRS, Coord, GridView
from .memory import FileMazeMemory, MazeMemory, TransientMazeMemory
from .storage import ScoutStorage

logger = logging.getLogger(__name__)

# Fallback moves turn clockwise on each consecutive rejection
_ROTATION = ("north", "east", "south", "west")


@dataclass(frozen=True)
class FollowRoute:
    """Walk the route, one cell per turn. route[0] is the current cell."""

    route: list[Cell]
    goal: str  # "exit", "key" or "frontier"


@dataclass(frozen=True)
class PickupKey:
    """Pick up the key under the agent before doing anything else."""


Decision = FollowRoute | PickupKey


class ScoutAgent(BaseAgent):
    """Maze escape agent that plans over an incrementally discovered map.

    Each turn:
    - Apply the previous action to the map if the environment accepted it
    - Fold the vision report into the map
    - Replan if the map grew or the current route ran out
    - Emit exactly one action for the next cell of the route

    Knowledge of each maze (cells as first observed, fewest moves to the exit)
    is kept in a MazeMemory across episodes and seeds the map on reset.
    """

    def __init__(
        self,
        config: Any,
        memory: MazeMemory | None = None,
        storage: ScoutStorage | None = None,
        rng: random.Random | None = None,
    ):
        super().__init__(config)
        scout_cfg = config.agent.scout
        planner_cfg = config.agent.planner

        self.strict = bool(scout_cfg.get("strict", False))
        self.safe_action = Action(scout_cfg.get("safe_action", "south"))
        self.key_radius_no_keys = scout_cfg.get("key_radius_no_keys", 7)
        self.key_radius_one_key = scout_cfg.get("key_radius_one_key", 3)
        self.rng = rng or random.Random(scout_cfg.get("seed", None))

        self.planner = KeyDoorPlanner(
            budget=PlannerBudget(
                max_queries=planner_cfg.get("max_queries", 20000),
                time_limit=planner_cfg.get("time_limit", 5.0),
            ),
            rng=self.rng,
            step_limit=planner_cfg.get("step_limit", None),
        )

        if memory is None:
            maze_count = scout_cfg.get("maze_count", None)
            memory_path = scout_cfg.get("memory_path", None)
            if memory_path:
                memory = FileMazeMemory(Path(memory_path), maze_count)
            else:
                memory = TransientMazeMemory(maze_count)
        self.memory = memory

        if storage is None and scout_cfg.get("journal_path", None):
            storage = ScoutStorage(Path(scout_cfg.journal_path))
        self.storage = storage
        self.episode_number = storage.max_episode() if storage else 0

        # Episode state, set by reset()
        self.maze_id: int | None = None
        self.map: IncrementalMap | None = None
        self._route: list[Cell] | None = None
        self._pending: Action | None = None  # Emitted but not yet confirmed by the environment
        self._goal: str | None = None  # What the last action was for, as journalled
        self._rejections = 0
        self._moves = 0
        self._step = 0

    def reset(self, maze_id: int | None = None) -> None:
        """Start a new episode, seeding the map from what memory knows of the maze.

        Without an explicit maze_id the memory's own ordering is followed.
        """
        self.episode_number += 1
        self.maze_id = self.memory.next_maze_id() if maze_id is None else maze_id
        record = self.memory.load(self.maze_id)
        self.map = IncrementalMap(record.cells, record.best_case)
        self._route = None
        self._pending = None
        self._goal = None
        self._rejections = 0
        self._moves = 0
        self._step = 0
        logger.info(
            f"Episode {self.episode_number} on maze {self.maze_id}: "
            f"{len(record.cells)} cells known, best case {record.best_case}"
        )
        if self.storage:
            self.storage.log_reset(self.episode_number, self.maze_id, record.best_case, len(record.cells))

    def on_episode_end(self, won: bool) -> None:
        """Fold this episode's observations into the cross-episode memory."""
        if self.map is None:
            return
        added = self.memory.merge_cells(self.maze_id, self.map.original_kinds())
        episodes = self.memory.record_episode(self.maze_id)
        logger.info(
            f"Episode {self.episode_number} on maze {self.maze_id} ended "
            f"({'won' if won else 'lost'}) after {self._step} steps, {self._moves} moves; "
            f"{added} new cells learned, {episodes} episodes on this maze"
        )

    def act(self, vision: VisionReport, key_count: int, last_action_ok: bool = True) -> Action:
        """Choose the next action.

        Args:
            vision: What the agent sees from its current cell
            key_count: Keys currently held
            last_action_ok: Whether the environment accepted the previous action

        Returns:
            One Action. Never raises unless strict mode is on; any failure
            degrades to the configured safe action.
        """
        if self.map is None:
            self.reset()
        self._step += 1

        pending, self._pending = self._pending, None
        if not last_action_ok:
            # The map never saw the rejected action, but the route may assume it did
            self._rejections += 1
            logger.warning(
                f"Step {self._step}: previous action {pending.value if pending else None} was rejected "
                f"({self._rejections} in a row)"
            )
            self._route = None
            self._goal = "fallback"
            action = self._fallback_action()
        else:
            self._rejections = 0
            try:
                if pending is not None:
                    self._apply(pending)
                action = self._next_action(vision, key_count)
            except Exception as e:
                if self.strict:
                    raise
                logger.exception(f"Step {self._step}: decision failed, falling back to {self.safe_action.value}")
                if self.storage:
                    self.storage.log_error(self.episode_number, self._step, f"{type(e).__name__}: {e}")
                self._route = None
                self._goal = "fallback"
                action = self.safe_action

        self._pending = action
        if self.storage:
            x, y = self.map.location
            self.storage.log_position(self.episode_number, self._step, self.maze_id, x, y)
            self.storage.log_action(
                self.episode_number, self._step, action.value, (x, y), key_count, decision=self._goal
            )
        return action

    def _fallback_action(self) -> Action:
        """Safe action for a rejected move, turned clockwise after each further rejection."""
        direction = self.safe_action.direction
        if direction is None or self._rejections <= 1:
            return self.safe_action
        turned = _ROTATION.index(direction) + self._rejections - 1
        return Action.move(_ROTATION[turned % len(_ROTATION)])

    def _apply(self, action: Action) -> None:
        if action.direction is not None:
            self.map.apply_move(action.direction)
        elif action == Action.PICKUP_KEY:
            self.map.apply_key_pickup()
        elif action == Action.OPEN_DOOR:
            self.map.apply_door_open()

    def _next_action(self, vision: VisionReport, keys: int) -> Action:
        added = self.map.ingest_vision(vision)

        route = self._route
        if route is not None and (route[-1].is_frontier or route[0].coord != self.map.location):
            route = None  # Frontier routes are recomputed every turn

        if added or route is None or len(route) < 2:
            decision = self._decide(keys)
            if isinstance(decision, PickupKey):
                self._route = None  # Picking up changes the map, replan next turn
                self._goal = "pickup"
                return Action.PICKUP_KEY
            route = decision.route if decision else None
            self._goal = decision.goal if decision else None

        if self.map.current.kind == Kind.KEY:
            self._route = None
            self._goal = "pickup"
            return Action.PICKUP_KEY

        if route is None:
            logger.warning(f"Step {self._step}: no route to the exit or unexplored territory at {self.map.location}")
            self._route = None
            self._goal = "fallback"
            return self.safe_action

        self._moves += 1
        nxt = route[1]
        if not nxt.is_frontier and self.map.kind_at(nxt.coord) == Kind.EXIT:
            self._record_best_case()

        action = self._to_action(route)
        if action == Action.OPEN_DOOR:
            self._route = None  # The door disappears from the map, replan next turn
        else:
            self._route = route[1:]
        return action

    def _decide(self, keys: int) -> Decision | None:
        """Pick what to do next from a fresh snapshot of the map."""
        grid = self.map.snapshot()
        here = self.map.location

        result = self._plan(grid, here, keys, Kind.EXIT, self.map.best_case)
        if result:
            return FollowRoute(result.route, "exit")

        if self.map.current.kind == Kind.KEY:
            return PickupKey()

        to_key = shortest_path(grid, here, Kind.KEY, self.rng)
        if to_key is not None:
            dist = route_cost(to_key)
            if (keys == 0 and dist <= self.key_radius_no_keys) or (keys == 1 and dist <= self.key_radius_one_key):
                logger.debug(f"Step {self._step}: detour to key {dist} moves away")
                if self.strict:
                    validate_route(to_key, grid)
                return FollowRoute(to_key, "key")

        result = self._plan(grid, here, keys, None, None)
        if result:
            return FollowRoute(result.route, "frontier")
        return None

    def _plan(
        self, grid: GridView, here: Coord, keys: int, target: Kind | None, best_case: int | None
    ) -> PlanResult:
        """Run the planner, journal the outcome and, in strict mode, check the route.

        Raises:
            RouteIntegrityError: In strict mode, if the route has a gap
        """
        result = self.planner.plan(grid, here, keys, target=target, best_case=best_case)
        if self.strict and result.route is not None:
            validate_route(result.route, grid)
        target_name = target.name if target is not None else "FRONTIER"
        if result.reason == PlanStopReason.BUDGET_EXHAUSTED:
            logger.warning(
                f"Step {self._step}: planner budget exhausted towards {target_name} "
                f"after {result.stats.queries} queries, best cost {result.cost}"
            )
        if self.storage:
            self.storage.log_plan(
                self.episode_number,
                self._step,
                target_name,
                result.reason.value,
                result.cost,
                result.stats.queries,
                result.stats.elapsed * 1000,
            )
        return result

    def _to_action(self, route: list[Cell]) -> Action:
        """Action that takes the agent from route[0] to route[1].

        Raises:
            RouteIntegrityError: If the two cells are not adjacent
        """
        here, nxt = route[0], route[1]
        if nxt.is_frontier:
            # Any unobserved neighbour will do
            for direction in DIRS:
                if step(here.coord, direction) not in self.map:
                    return Action.move(direction)
            raise RouteIntegrityError(f"{here} does not border unexplored territory")
        if self.map.kind_at(nxt.coord) == Kind.DOOR:
            return Action.OPEN_DOOR
        direction = direction_between(here.coord, nxt.coord)
        if direction is None:
            raise RouteIntegrityError(f"Bad route: {here} and {nxt} are not adjacent")
        return Action.move(direction)

    def _record_best_case(self) -> None:
        if self.map.record_best_case(self._moves):
            logger.info(f"Maze {self.maze_id}: new best case {self._moves} moves")
        if self.memory.record_best_case(self.maze_id, self._moves):
            if self.storage:
                self.storage.log_best_case(self.episode_number, self._step, self.maze_id, self._moves)
        self.memory.merge_cells(self.maze_id, self.map.original_kinds())

"""Scout compute helpers: map building, shortest paths and key/door planning."""

from .field_map import IncrementalMap
from .grid import FRONTIER, Cell, Coord, GridView, Kind, direction_between, distance, neighbors, step
from .navigation import ShortestPathEngine, route_cost, shortest_path, validate_route
from .planner import KeyDoorPlanner, PlannedPath, PlannerBudget, PlanResult, PlanStopReason
from .vision import CellView, VisionReport

__all__ = [
    "Cell",
    "Coord",
    "Kind",
    "FRONTIER",
    "GridView",
    "step",
    "neighbors",
    "distance",
    "direction_between",
    "CellView",
    "VisionReport",
    "IncrementalMap",
    "ShortestPathEngine",
    "shortest_path",
    "route_cost",
    "validate_route",
    "KeyDoorPlanner",
    "PlannedPath",
    "PlannerBudget",
    "PlanResult",
    "PlanStopReason",
]

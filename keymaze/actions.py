from enum import Enum


class Action(Enum):
    """Primitive actions accepted by a maze, one per turn."""

    MOVE_NORTH = "north"
    MOVE_SOUTH = "south"
    MOVE_EAST = "east"
    MOVE_WEST = "west"
    PICKUP_KEY = "pickup"
    OPEN_DOOR = "use"  # Opens every door adjacent to the agent

    @classmethod
    def move(cls, direction: str) -> "Action":
        action = cls(direction)
        if action.direction is None:
            raise ValueError(f"Not a direction: {direction}")
        return action

    @property
    def direction(self) -> str | None:
        """Compass direction for moves, None otherwise."""
        return self.value if self.name.startswith("MOVE_") else None

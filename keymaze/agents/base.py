from typing import Any


class BaseAgent:
    """Base class for agents that turn vision reports into actions."""

    def __init__(self, config: Any):
        self.config = config

    def act(self, vision, key_count: int, last_action_ok: bool = True):
        """Choose the next action from the current vision report."""
        raise NotImplementedError

    def reset(self, maze_id: int | None = None) -> None:
        """Prepare for a new episode."""
        raise NotImplementedError

    def on_episode_end(self, won: bool) -> None:
        """Called once the environment reports the episode is over."""

from .maze import EpisodeResult, GridMaze, StepResult, run_episode

__all__ = ["GridMaze", "StepResult", "EpisodeResult", "run_episode"]

from .backends import FileMazeMemory
from .interface import MazeMemory, MazeRecord
from .transient import TransientMazeMemory

__all__ = ["MazeMemory", "MazeRecord", "FileMazeMemory", "TransientMazeMemory"]

from .file_backend import FileMazeMemory

__all__ = ["FileMazeMemory"]

"""Escape agent for partially observable grid mazes with keys and doors."""

__version__ = "0.1.0"

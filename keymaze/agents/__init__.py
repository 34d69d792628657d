from .base import BaseAgent
from .scout import ScoutAgent

__all__ = ["BaseAgent", "ScoutAgent"]

# Lifecycle record persistence
from .manager import StateManager

__all__ = ["StateManager"]

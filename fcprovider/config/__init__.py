# Configuration loading and transport construction
from .manager import ConfigManager

__all__ = ["ConfigManager"]

"""Firecracker microVM provider: declarative VM specs onto the Firecracker control API."""

__version__ = "1.0.0"

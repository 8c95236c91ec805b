"""
Transports for the Firecracker control API.
A plain HTTP transport (TCP or UNIX socket) and a retry decorator, both
satisfying the Transport protocol.
"""
from .base import IDEMPOTENT_METHODS, Transport, TransportResponse
from .http import HttpTransport, UnixSocketAdapter
from .retry import RetryingTransport

__all__ = [
    "IDEMPOTENT_METHODS",
    "Transport",
    "TransportResponse",
    "HttpTransport",
    "UnixSocketAdapter",
    "RetryingTransport",
]

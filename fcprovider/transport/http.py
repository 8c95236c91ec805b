#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
HTTP transport for the Firecracker control API.
Firecracker listens on a UNIX domain socket; `unix:///path/to/api.socket`
base URLs are served through a requests adapter whose urllib3 pool dials the
socket. Plain http(s) base URLs use the stock adapter.
"""
import logging
import socket
from typing import Any, Optional
from urllib.parse import urlparse

import requests
from requests.adapters import HTTPAdapter
from urllib3.connection import HTTPConnection
from urllib3.connectionpool import HTTPConnectionPool
from urllib3.exceptions import NewConnectionError

from ..errors import TransportError
from .base import TransportResponse

logger = logging.getLogger("fc-provider")

DEFAULT_TIMEOUT = 30.0
DEFAULT_POOL_MAXSIZE = 20
_UNIX_PREFIX = "http+unix://firecracker"


class UnixHTTPConnection(HTTPConnection):
    """HTTP/1.1 connection that dials a UNIX domain socket instead of TCP."""

    def __init__(self, socket_path: str, timeout: Optional[float] = None):
        super().__init__("localhost")
        self.socket_path = socket_path
        self._socket_timeout = timeout

    def connect(self):
        sock = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
        sock.settimeout(self._socket_timeout)
        try:
            sock.connect(self.socket_path)
        except OSError as e:
            sock.close()
            raise NewConnectionError(self, f"Failed to connect to {self.socket_path}: {e}") from e
        self.sock = sock


class UnixHTTPConnectionPool(HTTPConnectionPool):
    def __init__(self, socket_path: str, timeout: Optional[float], maxsize: int):
        super().__init__("localhost", timeout=timeout, maxsize=maxsize, block=False)
        self.socket_path = socket_path
        self._socket_timeout = timeout

    def _new_conn(self):
        return UnixHTTPConnection(self.socket_path, timeout=self._socket_timeout)


class UnixSocketAdapter(HTTPAdapter):
    """requests adapter routing every request to one UNIX socket."""

    def __init__(self, socket_path: str, timeout: Optional[float], pool_maxsize: int):
        super().__init__(pool_maxsize=pool_maxsize)
        self._unix_pool = UnixHTTPConnectionPool(socket_path, timeout, pool_maxsize)

    def get_connection(self, url, proxies=None):
        return self._unix_pool

    def get_connection_with_tls_context(self, request, verify, proxies=None, cert=None):
        return self._unix_pool

    def close(self):
        self._unix_pool.close()
        super().close()


def _connect_failed(exc: requests.exceptions.RequestException) -> bool:
    """True when the request never reached the server."""
    if isinstance(exc, requests.exceptions.ConnectTimeout):
        return True
    if not isinstance(exc, requests.exceptions.ConnectionError):
        return False
    reason = exc.args[0] if exc.args else None
    reason = getattr(reason, "reason", reason)
    return isinstance(reason, (NewConnectionError, ConnectionRefusedError, FileNotFoundError))


class HttpTransport:
    """Issues one request/response cycle against the control API base URL."""

    def __init__(self, base_url: str, timeout: float = DEFAULT_TIMEOUT, pool_maxsize: int = DEFAULT_POOL_MAXSIZE):
        if not base_url:
            raise ValueError("base_url is required")
        self.base_url = base_url
        self.timeout = float(timeout)
        self.session = requests.Session()
        self.session.headers.update({"Accept": "application/json"})
        parsed = urlparse(base_url)
        if parsed.scheme == "unix":
            socket_path = parsed.path or parsed.netloc
            self._prefix = _UNIX_PREFIX
            self.session.mount("http+unix://", UnixSocketAdapter(socket_path, self.timeout, pool_maxsize))
        elif parsed.scheme in ("http", "https"):
            self._prefix = base_url.rstrip("/")
            adapter = HTTPAdapter(pool_connections=1, pool_maxsize=pool_maxsize)
            self.session.mount("http://", adapter)
            self.session.mount("https://", adapter)
        else:
            raise ValueError(f"Unsupported base_url scheme: {base_url}")

    def send(self, method: str, path: str, body: Optional[Any] = None) -> TransportResponse:
        method = method.upper()
        url = f"{self._prefix}{path}"
        logger.debug("Sending %s %s payload=%s", method, path, body)
        try:
            resp = self.session.request(method, url, json=body, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            connect_failed = _connect_failed(e)
            logger.debug("Request %s %s failed (connect_failed=%s): %s", method, path, connect_failed, e)
            raise TransportError(method, path, str(e), connect_failed=connect_failed) from e
        logger.debug("Response %s %s status=%s", method, path, resp.status_code)
        return TransportResponse(status_code=resp.status_code, body=resp.text)

    def close(self) -> None:
        self.session.close()

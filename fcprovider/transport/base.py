from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Optional, Protocol, runtime_checkable

IDEMPOTENT_METHODS = frozenset({"GET", "HEAD", "OPTIONS"})


@dataclass
class TransportResponse:
    """Status code and raw body of one control API response."""

    status_code: int
    body: str = ""

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300

    def json(self) -> Any:
        return json.loads(self.body) if self.body else None


@runtime_checkable
class Transport(Protocol):
    """Minimal contract for control API transports.
    Semantics:
      - send(): issue one request and return the response, whatever its status.
      - close(): release pooled connections (idempotent).
    Notes:
      - Connection, DNS/socket and timeout failures raise TransportError.
      - Decorators (retry) wrap another Transport and satisfy the same contract.
    """

    def send(self, method: str, path: str, body: Optional[Any] = None) -> TransportResponse:
        ...

    def close(self) -> None:
        ...

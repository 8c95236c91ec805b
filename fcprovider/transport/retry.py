#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Retry decorator for control API transports.
The policy is a urllib3 Retry: idempotent reads are retried on transport
failures and 5xx answers, state-changing calls only when the connection was
never established, since the control API has no idempotency keys.
"""
import logging
import time
from typing import Any, Callable, Optional

from urllib3.exceptions import ConnectTimeoutError, HTTPError, MaxRetryError, ProtocolError
from urllib3.response import HTTPResponse
from urllib3.util.retry import Retry

from ..errors import TransportError
from .base import IDEMPOTENT_METHODS, Transport, TransportResponse

logger = logging.getLogger("fc-provider")

DEFAULT_MAX_ATTEMPTS = 3
DEFAULT_WAIT_MIN = 1.0
DEFAULT_WAIT_MAX = 5.0

# 501 means the endpoint is not implemented by this build; retrying cannot help.
RETRY_STATUSES = frozenset(code for code in range(500, 600) if code != 501)


def build_retry_policy(
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    wait_min: float = DEFAULT_WAIT_MIN,
    wait_max: float = DEFAULT_WAIT_MAX,
) -> Retry:
    retries = max(0, int(max_attempts) - 1)
    return Retry(
        total=retries,
        connect=retries,
        read=retries,
        status=retries,
        redirect=0,
        allowed_methods=IDEMPOTENT_METHODS,
        status_forcelist=RETRY_STATUSES,
        backoff_factor=float(wait_min),
        backoff_max=float(wait_max),
        raise_on_status=False,
    )


class RetryingTransport:
    """Wraps another Transport and drives a urllib3 Retry policy over it.

    `sleep` is injectable so the backoff can be observed without waiting.
    """

    def __init__(
        self,
        inner: Transport,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        wait_min: float = DEFAULT_WAIT_MIN,
        wait_max: float = DEFAULT_WAIT_MAX,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.inner = inner
        self.max_attempts = max(1, int(max_attempts))
        self.policy = build_retry_policy(self.max_attempts, wait_min, wait_max)
        self._sleep = sleep

    def send(self, method: str, path: str, body: Optional[Any] = None) -> TransportResponse:
        method = method.upper()
        retry = self.policy.new()
        attempt = 1
        while True:
            try:
                resp = self.inner.send(method, path, body)
            except TransportError as e:
                error = ConnectTimeoutError(e.reason) if e.connect_failed else ProtocolError(e.reason)
                try:
                    retry = retry.increment(method, path, error=error)
                except HTTPError:
                    # Budget spent, or a write that may already have landed.
                    raise e from None
                logger.warning(
                    "%s %s failed (attempt %d/%d), retrying: %s", method, path, attempt, self.max_attempts, e.reason
                )
            else:
                if not retry.is_retry(method, resp.status_code):
                    return resp
                try:
                    retry = retry.increment(method, path, response=HTTPResponse(status=resp.status_code))
                except MaxRetryError:
                    return resp
                logger.warning(
                    "%s %s returned %d (attempt %d/%d), retrying",
                    method,
                    path,
                    resp.status_code,
                    attempt,
                    self.max_attempts,
                )
            self._sleep(retry.get_backoff_time())
            attempt += 1

    def close(self) -> None:
        self.inner.close()

#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Error types for the Firecracker provider.
Every failure surfaced by the provider derives from ProviderError so the API
and CLI front-ends can translate it in one place.
"""
from dataclasses import dataclass
from typing import Iterable, List, Optional


class ProviderError(Exception):
    """Base class for provider failures."""

    pass


class ValidationError(ProviderError, ValueError):
    """Malformed or incomplete VM specification. Raised before any network call."""

    def __init__(self, problems: Iterable[str]):
        self.problems: List[str] = list(problems)
        super().__init__("; ".join(self.problems) or "invalid VM specification")


class TransportError(ProviderError):
    """Connection failure, DNS/socket error or timeout talking to the control API.

    connect_failed is True only when the request provably never reached the
    server (refused, socket missing, connect timeout).
    """

    def __init__(self, method: str, path: str, reason: str, connect_failed: bool = False):
        self.method = method
        self.path = path
        self.reason = reason
        self.connect_failed = connect_failed
        super().__init__(f"{method} {path} failed: {reason}")


class ConfigurationError(ProviderError):
    """The control API rejected a sub-resource payload."""

    def __init__(self, component: str, status_code: int, response_body: str = ""):
        self.component = component
        self.status_code = status_code
        self.response_body = response_body
        super().__init__(f"failed to configure {component}: status={status_code}, response={response_body}")


class ProvisioningError(ProviderError):
    """A create run aborted; carries the failing step and what was already applied."""

    def __init__(self, step: str, applied: List[str], cause: Exception):
        self.step = step
        self.applied = list(applied)
        self.cause = cause
        super().__init__(
            f"VM creation failed at step '{step}' (applied: {', '.join(self.applied) or 'nothing'}): {cause}"
        )

    def to_dict(self):
        detail = {
            "error": str(self),
            "step": self.step,
            "applied": self.applied,
        }
        if isinstance(self.cause, ConfigurationError):
            detail["status_code"] = self.cause.status_code
            detail["response_body"] = self.cause.response_body
        return detail


class ReplacementRequired(ProviderError):
    """The requested change cannot be applied in place."""

    def __init__(self, fields: Iterable[str]):
        self.fields: List[str] = list(fields)
        super().__init__(f"changes to {', '.join(self.fields)} require replacing the VM")


class ReconciliationError(ProviderError):
    """GET /machine-config answered with something other than success, 404 or an explained 400."""

    def __init__(self, status_code: int, body: str = ""):
        self.status_code = status_code
        self.body = body
        super().__init__(f"unexpected response from Firecracker API: status={status_code}, body={body}")


class NotFoundError(ProviderError):
    """No VM is known under this id."""

    def __init__(self, vm_id: str):
        self.vm_id = vm_id
        super().__init__(f"VM with ID {vm_id} not found")


@dataclass
class ReconciliationGap:
    """A sub-resource whose state could not be read back. Not an error."""

    component: str
    status_code: Optional[int] = None
    reason: str = ""

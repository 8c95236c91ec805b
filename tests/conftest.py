"""Shared test fixtures: an in-memory control API transport and sample VM specs."""

from __future__ import annotations

import json
from typing import Any, Dict, List, Optional, Tuple

import pytest

from fcprovider.errors import TransportError
from fcprovider.models import Drive, MachineConfig, NetworkInterface, VMSpec
from fcprovider.state import StateManager
from fcprovider.transport import TransportResponse


class FakeTransport:
    """Records every call and answers from a scripted table.

    `responses` maps (method, path) to a TransportResponse, an exception to
    raise, or a list of those consumed one per call. Unscripted writes answer
    204 and unscripted reads answer `default_get`.
    """

    def __init__(self, responses: Optional[Dict[Tuple[str, str], Any]] = None, default_get: int = 404):
        self.responses = dict(responses or {})
        self.default_get = default_get
        self.calls: List[Tuple[str, str, Any]] = []
        self.closed = False

    def script(self, method: str, path: str, *outcomes: Any) -> None:
        self.responses[(method, path)] = list(outcomes) if len(outcomes) > 1 else outcomes[0]

    def send(self, method: str, path: str, body: Optional[Any] = None) -> TransportResponse:
        self.calls.append((method, path, body))
        outcome = self.responses.get((method, path))
        if isinstance(outcome, list):
            outcome = outcome.pop(0) if len(outcome) > 1 else outcome[0]
        if outcome is None:
            outcome = TransportResponse(self.default_get if method == "GET" else 204)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    def close(self) -> None:
        self.closed = True

    @property
    def writes(self) -> List[Tuple[str, str, Any]]:
        return [call for call in self.calls if call[0] != "GET"]

    def paths(self, method: Optional[str] = None) -> List[str]:
        return [path for m, path, _ in self.calls if method is None or m == method]


def ok_json(data: Any, status: int = 200) -> TransportResponse:
    return TransportResponse(status, json.dumps(data))


def connect_refused(method: str = "PUT", path: str = "/") -> TransportError:
    return TransportError(method, path, "connection refused", connect_failed=True)


@pytest.fixture
def fake_transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def spec_document() -> Dict[str, Any]:
    """A firecracker_vm resource document as it arrives from HCL."""
    return {
        "kernel_image_path": "/var/lib/fc/vmlinux",
        "boot_args": "console=ttyS0 reboot=k panic=1 pci=off root=/dev/vda rw",
        "drives": [
            {"drive_id": "data", "path_on_host": "/var/lib/fc/data.ext4", "is_root_device": "false", "is_read_only": "true"},
            {"drive_id": "root", "path_on_host": "/var/lib/fc/rootfs.ext4", "is_root_device": "true", "is_read_only": "false"},
        ],
        "machine_config": [{"vcpu_count": 2, "mem_size_mib": 1024}],
        "network_interfaces": [{"iface_id": "eth0", "host_dev_name": "tap0", "guest_mac": "AA-FC-00-00-00-01"}],
    }


@pytest.fixture
def vm_spec() -> VMSpec:
    """Minimal spec: one root drive, no network."""
    return VMSpec(
        kernel_image_path="/var/lib/fc/vmlinux",
        drives=(Drive("root", "/var/lib/fc/rootfs.ext4", is_root_device=True),),
        machine_config=MachineConfig(vcpu_count=1, mem_size_mib=512),
    )


@pytest.fixture
def networked_spec() -> VMSpec:
    return VMSpec(
        kernel_image_path="/var/lib/fc/vmlinux",
        boot_args="console=ttyS0 root=/dev/vda rw",
        drives=(
            Drive("data", "/var/lib/fc/data.ext4", is_root_device=False, is_read_only=True),
            Drive("disk1", "/var/lib/fc/rootfs.ext4", is_root_device=True),
        ),
        machine_config=MachineConfig(vcpu_count=2, mem_size_mib=1024),
        network_interfaces=(NetworkInterface("eth0", "tap0"),),
    )


@pytest.fixture
def state_manager(tmp_path) -> StateManager:
    return StateManager(str(tmp_path / "state"))

#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Data models for the Firecracker provider.
This module contains the desired-state specification, the reconciled remote
mirror and the lifecycle record persisted between invocations.
"""
import dataclasses
import time
from typing import Any, Dict, List, Optional, Tuple, Union

from pydantic import BaseModel

from .errors import ReconciliationGap, ValidationError

# Wire id of the root drive. The boot-args rewrite references the same token.
ROOT_DRIVE_ID = "rootfs"

DEFAULT_BOOT_ARGS = "console=ttyS0 noapic reboot=k panic=1 pci=off root=/dev/vda rootfstype=ext4 rw init=/sbin/init"

BoolLike = Union[bool, str]


@dataclasses.dataclass(frozen=True)
class Drive:
    """Block device attached to the VM."""

    drive_id: str
    path_on_host: str
    is_root_device: BoolLike = False
    is_read_only: BoolLike = False
    cache_type: Optional[str] = None


@dataclasses.dataclass(frozen=True)
class NetworkInterface:
    """Guest network interface backed by a pre-existing host TAP device."""

    iface_id: str
    host_dev_name: str
    guest_mac: Optional[str] = None


@dataclasses.dataclass(frozen=True)
class MachineConfig:
    """VM sizing."""

    vcpu_count: int
    mem_size_mib: int
    smt: Optional[bool] = None
    track_dirty_pages: Optional[bool] = None


@dataclasses.dataclass(frozen=True)
class BootSource:
    """Kernel image and command line as reported by the control API."""

    kernel_image_path: str = ""
    boot_args: str = ""
    initrd_path: Optional[str] = None


def _int_field(value: Any, name: str) -> int:
    if isinstance(value, bool):
        raise ValidationError([f"{name} must be an integer, got {value!r}"])
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError([f"{name} must be an integer, got {value!r}"])


def _optional_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def _list_field(doc: Dict[str, Any], key: str) -> List[Dict[str, Any]]:
    raw = doc.get(key)
    if raw is None:
        return []
    if not isinstance(raw, list) or not all(isinstance(item, dict) for item in raw):
        raise ValidationError([f"{key} must be a list of objects"])
    return raw


@dataclasses.dataclass(frozen=True)
class VMSpec:
    """Desired state of one microVM. Never mutated once submitted."""

    kernel_image_path: str
    drives: Tuple[Drive, ...]
    machine_config: MachineConfig
    boot_args: str = DEFAULT_BOOT_ARGS
    network_interfaces: Tuple[NetworkInterface, ...] = ()
    initrd_path: Optional[str] = None
    id: Optional[str] = None

    def with_id(self, vm_id: Optional[str]) -> "VMSpec":
        return dataclasses.replace(self, id=vm_id)

    @classmethod
    def from_document(cls, doc: Dict[str, Any]) -> "VMSpec":
        """Build a spec from a firecracker_vm resource document.

        machine_config may be an object or a single-element list (how HCL
        blocks arrive). Semantic checks are left to validate_spec.
        """
        if not isinstance(doc, dict):
            raise ValidationError(["VM specification must be an object"])
        mc_raw = doc.get("machine_config")
        if isinstance(mc_raw, list):
            if len(mc_raw) != 1:
                raise ValidationError(["machine_config must contain exactly one block"])
            mc_raw = mc_raw[0]
        if not isinstance(mc_raw, dict):
            raise ValidationError(["machine_config is required"])
        machine_config = MachineConfig(
            vcpu_count=_int_field(mc_raw.get("vcpu_count"), "machine_config.vcpu_count"),
            mem_size_mib=_int_field(mc_raw.get("mem_size_mib"), "machine_config.mem_size_mib"),
            smt=mc_raw.get("smt"),
            track_dirty_pages=mc_raw.get("track_dirty_pages"),
        )
        drives = tuple(
            Drive(
                drive_id=str(d.get("drive_id") or ""),
                path_on_host=str(d.get("path_on_host") or ""),
                is_root_device=d.get("is_root_device", False),
                is_read_only=d.get("is_read_only", False),
                cache_type=_optional_str(d.get("cache_type")),
            )
            for d in _list_field(doc, "drives")
        )
        ifaces = tuple(
            NetworkInterface(
                iface_id=str(n.get("iface_id") or ""),
                host_dev_name=str(n.get("host_dev_name") or ""),
                guest_mac=_optional_str(n.get("guest_mac")),
            )
            for n in _list_field(doc, "network_interfaces")
        )
        return cls(
            kernel_image_path=str(doc.get("kernel_image_path") or ""),
            boot_args=str(doc.get("boot_args") or "").strip() or DEFAULT_BOOT_ARGS,
            drives=drives,
            machine_config=machine_config,
            network_interfaces=ifaces,
            initrd_path=_optional_str(doc.get("initrd_path")),
            id=doc.get("id"),
        )

    def to_document(self) -> Dict[str, Any]:
        doc = {
            "id": self.id,
            "kernel_image_path": self.kernel_image_path,
            "boot_args": self.boot_args,
            "initrd_path": self.initrd_path,
            "drives": [dataclasses.asdict(d) for d in self.drives],
            "machine_config": dataclasses.asdict(self.machine_config),
            "network_interfaces": [dataclasses.asdict(n) for n in self.network_interfaces],
        }
        return doc


@dataclasses.dataclass
class RemoteVMState:
    """Best-effort mirror of a VM as reported by the control API.

    A component named in `gaps` could not be read back; its value is the
    empty default and says nothing about whether it exists.
    """

    vm_id: str
    machine_config: Optional[MachineConfig] = None
    boot_source: Optional[BootSource] = None
    drives: List[Drive] = dataclasses.field(default_factory=list)
    network_interfaces: List[NetworkInterface] = dataclasses.field(default_factory=list)
    gaps: List[ReconciliationGap] = dataclasses.field(default_factory=list)

    def is_known(self, component: str) -> bool:
        return all(gap.component != component for gap in self.gaps)

    def to_dict(self) -> Dict[str, Any]:
        return dataclasses.asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RemoteVMState":
        mc = data.get("machine_config")
        bs = data.get("boot_source")
        return cls(
            vm_id=data.get("vm_id", ""),
            machine_config=MachineConfig(**mc) if mc else None,
            boot_source=BootSource(**bs) if bs else None,
            drives=[Drive(**d) for d in data.get("drives") or []],
            network_interfaces=[NetworkInterface(**n) for n in data.get("network_interfaces") or []],
            gaps=[ReconciliationGap(**g) for g in data.get("gaps") or []],
        )


@dataclasses.dataclass
class VMRecord:
    """Lifecycle controller's local record for one managed VM."""

    id: str
    spec: VMSpec
    remote: Optional[RemoteVMState] = None
    status: str = "present"
    created_at: float = dataclasses.field(default_factory=time.time)
    updated_at: float = dataclasses.field(default_factory=time.time)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "status": self.status,
            "spec": self.spec.to_document(),
            "remote": self.remote.to_dict() if self.remote else None,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "VMRecord":
        remote = data.get("remote")
        return cls(
            id=data["id"],
            spec=VMSpec.from_document(data["spec"]).with_id(data["id"]),
            remote=RemoteVMState.from_dict(remote) if remote else None,
            status=data.get("status", "present"),
            created_at=data.get("created_at", time.time()),
            updated_at=data.get("updated_at", time.time()),
        )


class VMResourceRequest(BaseModel):
    """FastAPI model for endpoints that accept a firecracker_vm document."""

    spec: Dict[str, Any]
    allow_replace: bool = False

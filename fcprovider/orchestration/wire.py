#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Wire representations of Firecracker control API bodies.
One struct per endpoint; optional fields are left out of the payload when
unset because the API rejects nulls and empty strings for them.
"""
import dataclasses
from typing import Any, Dict, List, Optional

from ..models import BootSource, Drive, MachineConfig, NetworkInterface


def _compact(payload: Dict[str, Any]) -> Dict[str, Any]:
    return {k: v for k, v in payload.items() if v is not None}


@dataclasses.dataclass
class BootSourceBody:
    kernel_image_path: str
    boot_args: str
    initrd_path: Optional[str] = None

    def to_payload(self) -> Dict[str, Any]:
        return _compact(dataclasses.asdict(self))

    @classmethod
    def from_payload(cls, data: Dict[str, Any]) -> BootSource:
        return BootSource(
            kernel_image_path=data.get("kernel_image_path") or "",
            boot_args=data.get("boot_args") or "",
            initrd_path=data.get("initrd_path"),
        )


@dataclasses.dataclass
class MachineConfigBody:
    vcpu_count: Optional[int] = None
    mem_size_mib: Optional[int] = None
    smt: Optional[bool] = None
    track_dirty_pages: Optional[bool] = None

    def to_payload(self) -> Dict[str, Any]:
        return _compact(dataclasses.asdict(self))

    @classmethod
    def from_payload(cls, data: Dict[str, Any]) -> MachineConfig:
        return MachineConfig(
            vcpu_count=int(data.get("vcpu_count") or 0),
            mem_size_mib=int(data.get("mem_size_mib") or 0),
            smt=data.get("smt"),
            track_dirty_pages=data.get("track_dirty_pages"),
        )


@dataclasses.dataclass
class DriveBody:
    drive_id: str
    path_on_host: str
    is_root_device: bool
    is_read_only: bool
    cache_type: Optional[str] = None

    def to_payload(self) -> Dict[str, Any]:
        return _compact(dataclasses.asdict(self))

    @classmethod
    def from_payload(cls, data: Dict[str, Any]) -> Drive:
        return Drive(
            drive_id=data.get("drive_id") or "",
            path_on_host=data.get("path_on_host") or "",
            is_root_device=bool(data.get("is_root_device", False)),
            is_read_only=bool(data.get("is_read_only", False)),
            cache_type=data.get("cache_type"),
        )


@dataclasses.dataclass
class NetworkInterfaceBody:
    iface_id: str
    host_dev_name: str
    guest_mac: Optional[str] = None

    def to_payload(self) -> Dict[str, Any]:
        return _compact(dataclasses.asdict(self))

    @classmethod
    def from_payload(cls, data: Dict[str, Any]) -> NetworkInterface:
        return NetworkInterface(
            iface_id=data.get("iface_id") or "",
            host_dev_name=data.get("host_dev_name") or "",
            guest_mac=data.get("guest_mac") or None,
        )


@dataclasses.dataclass
class ActionBody:
    action_type: str

    def to_payload(self) -> Dict[str, Any]:
        return {"action_type": self.action_type}


INSTANCE_START = ActionBody("InstanceStart")
SEND_CTRL_ALT_DEL = ActionBody("SendCtrlAltDel")


def parse_drives(data: Any) -> List[Drive]:
    """Drives read-back may be a list or an object keyed by drive id."""
    if isinstance(data, dict):
        data = list(data.values())
    return [DriveBody.from_payload(item) for item in data or [] if isinstance(item, dict)]


def parse_network_interfaces(data: Any) -> List[NetworkInterface]:
    if isinstance(data, dict):
        data = list(data.values())
    return [NetworkInterfaceBody.from_payload(item) for item in data or [] if isinstance(item, dict)]

#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Component configurator for the Firecracker control API.
Each method serializes one sub-resource into its wire struct and applies it.
Boolean and MAC coercion happen here, once, while building the wire structs.
"""
import logging
from typing import Any, Dict, Optional

from ..errors import ConfigurationError
from ..models import Drive, NetworkInterface
from ..transport import Transport
from ..utils.validation import coerce_bool, normalize_mac
from .wire import (
    INSTANCE_START,
    SEND_CTRL_ALT_DEL,
    ActionBody,
    BootSourceBody,
    DriveBody,
    MachineConfigBody,
    NetworkInterfaceBody,
)

logger = logging.getLogger("fc-provider")


def drive_body(drive: Drive, drive_id: Optional[str] = None) -> DriveBody:
    label = drive_id or drive.drive_id
    return DriveBody(
        drive_id=label,
        path_on_host=drive.path_on_host,
        is_root_device=coerce_bool(drive.is_root_device, f"drive '{label}' is_root_device"),
        is_read_only=coerce_bool(drive.is_read_only, f"drive '{label}' is_read_only"),
        cache_type=drive.cache_type,
    )


def network_interface_body(iface: NetworkInterface) -> NetworkInterfaceBody:
    return NetworkInterfaceBody(
        iface_id=iface.iface_id,
        host_dev_name=iface.host_dev_name,
        guest_mac=normalize_mac(iface.guest_mac) if iface.guest_mac else None,
    )


def machine_config_body(
    vcpu_count: Optional[int] = None,
    mem_size_mib: Optional[int] = None,
    smt: Any = None,
    track_dirty_pages: Any = None,
) -> MachineConfigBody:
    return MachineConfigBody(
        vcpu_count=int(vcpu_count) if vcpu_count is not None else None,
        mem_size_mib=int(mem_size_mib) if mem_size_mib is not None else None,
        smt=coerce_bool(smt, "smt") if smt is not None else None,
        track_dirty_pages=coerce_bool(track_dirty_pages, "track_dirty_pages") if track_dirty_pages is not None else None,
    )


class ComponentConfigurator:
    """Applies individual VM sub-resources to the control API."""

    def __init__(self, transport: Transport):
        self.transport = transport

    def apply_boot_source(self, kernel_path: str, boot_args: str, initrd_path: Optional[str] = None) -> None:
        """PUT /boot-source. Must precede any drive."""
        body = BootSourceBody(kernel_image_path=kernel_path, boot_args=boot_args, initrd_path=initrd_path)
        self._send("PUT", "/boot-source", body.to_payload(), component="boot-source")

    def apply_machine_config(
        self, vcpu_count: int, mem_size_mib: int, smt: Any = None, track_dirty_pages: Any = None
    ) -> None:
        """PUT /machine-config."""
        body = machine_config_body(vcpu_count, mem_size_mib, smt, track_dirty_pages)
        self._send("PUT", "/machine-config", body.to_payload(), component="machine-config")

    def patch_machine_config(self, **changed: Any) -> None:
        """PATCH /machine-config with only the changed fields."""
        body = machine_config_body(**changed)
        self._send("PATCH", "/machine-config", body.to_payload(), component="machine-config")

    def apply_drive(self, drive: Drive, drive_id: Optional[str] = None) -> None:
        """PUT /drives/{id}; drive_id overrides the declared id (root canonicalization)."""
        body = drive_body(drive, drive_id)
        self._send("PUT", f"/drives/{body.drive_id}", body.to_payload(), component=f"drive:{body.drive_id}")

    def apply_network_interface(self, iface: NetworkInterface) -> None:
        """PUT /network-interfaces/{iface_id}; guest_mac is omitted when unset."""
        body = network_interface_body(iface)
        self._send(
            "PUT",
            f"/network-interfaces/{body.iface_id}",
            body.to_payload(),
            component=f"network-interface:{body.iface_id}",
        )

    def start_instance(self) -> None:
        self._action(INSTANCE_START, component="instance-start")

    def send_ctrl_alt_del(self) -> None:
        self._action(SEND_CTRL_ALT_DEL, component="shutdown")

    def _action(self, action: ActionBody, component: str) -> None:
        self._send("PUT", "/actions", action.to_payload(), component=component)

    def _send(self, method: str, path: str, payload: Dict[str, Any], component: str) -> None:
        resp = self.transport.send(method, path, payload)
        if not resp.ok:
            logger.error(
                "Firecracker API error: component=%s %s %s status=%s response=%s payload=%s",
                component,
                method,
                path,
                resp.status_code,
                resp.body,
                payload,
            )
            raise ConfigurationError(component, resp.status_code, resp.body)
        logger.debug("Configured %s (%s %s status=%s)", component, method, path, resp.status_code)

#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Provisioning module for the Firecracker provider.
This module runs the ordered creation sequence for a VM specification and
issues the final start action.
"""
import logging
from typing import Any, Dict, List, NamedTuple, Optional, Tuple

from ..models import ROOT_DRIVE_ID, Drive, VMSpec
from ..utils.validation import coerce_bool
from .bootargs import normalize_boot_args
from .configurator import ComponentConfigurator, drive_body, machine_config_body, network_interface_body
from .wire import INSTANCE_START, BootSourceBody

logger = logging.getLogger("fc-provider")


class PlannedCall(NamedTuple):
    step: str
    method: str
    path: str
    payload: Dict[str, Any]


def ordered_drives(spec: VMSpec) -> List[Tuple[Drive, str]]:
    """Drives in configuration order with their wire ids: root first as ROOT_DRIVE_ID,
    then the rest in input order."""
    root: List[Tuple[Drive, str]] = []
    rest: List[Tuple[Drive, str]] = []
    for drive in spec.drives:
        if coerce_bool(drive.is_root_device, f"drive '{drive.drive_id}' is_root_device"):
            root.append((drive, ROOT_DRIVE_ID))
        else:
            rest.append((drive, drive.drive_id))
    return root + rest


class Provisioner:
    """Sequences configurator calls into a valid creation order and starts the VM."""

    def __init__(self, configurator: ComponentConfigurator):
        self.configurator = configurator

    def provision(self, spec: VMSpec, applied: Optional[List[str]] = None) -> List[str]:
        """Configure every sub-resource and start the VM.

        Aborts on the first failure and re-raises it; already applied
        sub-resources stay applied. Completed steps are appended to `applied`.
        """
        applied = applied if applied is not None else []
        vm = spec.id or "-"
        boot_args = normalize_boot_args(spec.boot_args)
        if boot_args != spec.boot_args:
            logger.info("Normalized boot args for vm=%s: %s", vm, boot_args)

        self.configurator.apply_boot_source(spec.kernel_image_path, boot_args, spec.initrd_path)
        applied.append("boot-source")

        for drive, wire_id in ordered_drives(spec):
            logger.debug("Configuring drive vm=%s drive_id=%s wire_id=%s", vm, drive.drive_id, wire_id)
            self.configurator.apply_drive(drive, drive_id=wire_id)
            applied.append(f"drive:{wire_id}")

        mc = spec.machine_config
        self.configurator.apply_machine_config(mc.vcpu_count, mc.mem_size_mib, mc.smt, mc.track_dirty_pages)
        applied.append("machine-config")

        for iface in spec.network_interfaces:
            self.configurator.apply_network_interface(iface)
            applied.append(f"network-interface:{iface.iface_id}")

        self.configurator.start_instance()
        applied.append("instance-start")
        logger.info("VM created and started successfully: vm=%s", vm)
        return applied

    def plan(self, spec: VMSpec) -> List[PlannedCall]:
        """The calls provision() would issue, in order, without sending them."""
        calls = [
            PlannedCall(
                "boot-source",
                "PUT",
                "/boot-source",
                BootSourceBody(spec.kernel_image_path, normalize_boot_args(spec.boot_args), spec.initrd_path).to_payload(),
            )
        ]
        for drive, wire_id in ordered_drives(spec):
            calls.append(PlannedCall(f"drive:{wire_id}", "PUT", f"/drives/{wire_id}", drive_body(drive, wire_id).to_payload()))
        mc = spec.machine_config
        calls.append(
            PlannedCall(
                "machine-config",
                "PUT",
                "/machine-config",
                machine_config_body(mc.vcpu_count, mc.mem_size_mib, mc.smt, mc.track_dirty_pages).to_payload(),
            )
        )
        for iface in spec.network_interfaces:
            calls.append(
                PlannedCall(
                    f"network-interface:{iface.iface_id}",
                    "PUT",
                    f"/network-interfaces/{iface.iface_id}",
                    network_interface_body(iface).to_payload(),
                )
            )
        calls.append(PlannedCall("instance-start", "PUT", "/actions", INSTANCE_START.to_payload()))
        return calls

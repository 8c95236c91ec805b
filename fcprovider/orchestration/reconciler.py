#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
State reconciler for the Firecracker provider.
The control API is write-oriented: most sub-resources cannot be read back.
This module reads what it can, merges whatever succeeds and records the rest
as gaps rather than failing the whole read.
"""
import logging
from typing import Any, Callable, List, Optional, Tuple

from ..errors import ReconciliationError, ReconciliationGap, TransportError
from ..models import ROOT_DRIVE_ID, RemoteVMState, VMSpec
from ..transport import Transport
from ..utils.validation import coerce_bool
from .bootargs import normalize_boot_args
from .wire import BootSourceBody, MachineConfigBody, parse_drives, parse_network_interfaces

logger = logging.getLogger("fc-provider")

EXISTENCE_PATH = "/machine-config"
FULL_CONFIG_PATH = "/vm/config"


class Reconciler:
    """Builds a best-effort RemoteVMState from the control API."""

    def __init__(self, transport: Transport):
        self.transport = transport

    def fetch(self, vm_id: str) -> Optional[RemoteVMState]:
        """Return the merged remote view, or None when the VM is unreachable or gone."""
        logger.debug("Checking if Firecracker VM exists: vm=%s", vm_id)
        try:
            resp = self.transport.send("GET", EXISTENCE_PATH)
        except TransportError as e:
            logger.warning("Failed to connect to Firecracker API, assuming VM doesn't exist: vm=%s error=%s", vm_id, e)
            return None
        if resp.status_code == 404:
            logger.info("Firecracker API reports no machine config, VM absent: vm=%s", vm_id)
            return None

        state = RemoteVMState(vm_id=vm_id)
        if resp.status_code == 200:
            try:
                data = resp.json()
                if not isinstance(data, dict):
                    raise ValueError(f"expected an object, got {type(data).__name__}")
                state.machine_config = MachineConfigBody.from_payload(data)
            except ValueError as e:
                raise ReconciliationError(resp.status_code, f"unparseable machine config: {e}") from e
        elif resp.status_code == 400 and resp.body.strip():
            # Reachable, but this build refuses GET on /machine-config and explains why.
            state.gaps.append(ReconciliationGap("machine-config", 400, resp.body))
        else:
            raise ReconciliationError(resp.status_code, resp.body)

        if not self._merge_full_config(state):
            self._merge_components(state)

        if state.gaps:
            logger.info(
                "VM exists but some config cannot be retrieved from API: vm=%s gaps=%s",
                vm_id,
                ",".join(gap.component for gap in state.gaps),
            )
        else:
            logger.info("VM exists and config retrieved: vm=%s", vm_id)
        return state

    def _merge_full_config(self, state: RemoteVMState) -> bool:
        data = self._read(FULL_CONFIG_PATH, "vm-config", gaps=None)
        if not isinstance(data, dict):
            return False
        state.boot_source = BootSourceBody.from_payload(data.get("boot-source") or {})
        state.drives = parse_drives(data.get("drives"))
        state.network_interfaces = parse_network_interfaces(data.get("network-interfaces"))
        if state.machine_config is None and isinstance(data.get("machine-config"), dict):
            state.machine_config = MachineConfigBody.from_payload(data["machine-config"])
            state.gaps = [gap for gap in state.gaps if gap.component != "machine-config"]
        return True

    def _merge_components(self, state: RemoteVMState) -> None:
        components: List[Tuple[str, str, Callable[[Any], Any], str]] = [
            ("boot-source", "/boot-source", BootSourceBody.from_payload, "boot_source"),
            ("drives", "/drives", parse_drives, "drives"),
            ("network-interfaces", "/network-interfaces", parse_network_interfaces, "network_interfaces"),
        ]
        for component, path, parse, attr in components:
            data = self._read(path, component, gaps=state.gaps)
            if data is None:
                continue
            try:
                setattr(state, attr, parse(data))
            except (TypeError, ValueError, AttributeError) as e:
                logger.warning("Failed to parse %s, using defaults: %s", component, e)
                state.gaps.append(ReconciliationGap(component, 200, f"unparseable response: {e}"))

    def _read(self, path: str, component: str, gaps: Optional[List[ReconciliationGap]]) -> Any:
        """GET one sub-resource; None (plus a gap when `gaps` is given) when it cannot be read."""
        try:
            resp = self.transport.send("GET", path)
        except TransportError as e:
            logger.warning("Failed to get %s info, using defaults: %s", component, e)
            if gaps is not None:
                gaps.append(ReconciliationGap(component, None, str(e)))
            return None
        if resp.status_code != 200:
            logger.debug("GET %s returned %s, using defaults", path, resp.status_code)
            if gaps is not None:
                gaps.append(ReconciliationGap(component, resp.status_code, resp.body))
            return None
        try:
            return resp.json()
        except ValueError as e:
            logger.warning("Failed to parse %s response, using defaults: %s", component, e)
            if gaps is not None:
                gaps.append(ReconciliationGap(component, resp.status_code, f"unparseable response: {e}"))
            return None


def detect_drift(spec: VMSpec, remote: RemoteVMState) -> List[str]:
    """Fields where a component that was actually read back disagrees with the spec."""
    drift: List[str] = []
    mc = remote.machine_config
    if mc is not None and remote.is_known("machine-config"):
        if mc.vcpu_count != spec.machine_config.vcpu_count:
            drift.append("machine_config.vcpu_count")
        if mc.mem_size_mib != spec.machine_config.mem_size_mib:
            drift.append("machine_config.mem_size_mib")
    bs = remote.boot_source
    if bs is not None and remote.is_known("boot-source") and bs.kernel_image_path:
        if bs.kernel_image_path != spec.kernel_image_path:
            drift.append("kernel_image_path")
        if bs.boot_args and bs.boot_args != normalize_boot_args(spec.boot_args):
            drift.append("boot_args")
    if remote.is_known("drives") and remote.drives:
        expected = {}
        for drive in spec.drives:
            root = coerce_bool(drive.is_root_device)
            expected[ROOT_DRIVE_ID if root else drive.drive_id] = drive.path_on_host
        actual = {d.drive_id: d.path_on_host for d in remote.drives}
        if actual != expected:
            drift.append("drives")
    if remote.is_known("network-interfaces") and remote.network_interfaces:
        expected_ifaces = {n.iface_id: n.host_dev_name for n in spec.network_interfaces}
        actual_ifaces = {n.iface_id: n.host_dev_name for n in remote.network_interfaces}
        if actual_ifaces != expected_ifaces:
            drift.append("network_interfaces")
    return drift

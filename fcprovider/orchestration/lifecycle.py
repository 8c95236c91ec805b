#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
VM Lifecycle module for the Firecracker provider.
This module maps desired state onto create, read, update and delete, calling
the provisioner for writes and the reconciler for reads, and keeps the local
record of every managed VM.
"""
import dataclasses
import logging
import time
import uuid
from typing import Any, Dict, List, Optional

from ..config import ConfigManager
from ..errors import (
    ConfigurationError,
    NotFoundError,
    ProvisioningError,
    ReconciliationError,
    ReplacementRequired,
    TransportError,
)
from ..models import ROOT_DRIVE_ID, RemoteVMState, VMRecord, VMSpec
from ..state import StateManager
from ..transport import Transport
from ..utils.validation import coerce_bool, validate_record_id, validate_spec
from .bootargs import normalize_boot_args
from .configurator import ComponentConfigurator, network_interface_body
from .provisioner import PlannedCall, Provisioner
from .reconciler import Reconciler

logger = logging.getLogger("fc-provider")

ABSENT = "absent"
CREATING = "creating"
PRESENT = "present"
UPDATING = "updating"
DELETING = "deleting"

# Machine config fields the control API accepts through PATCH.
PATCHABLE_MACHINE_FIELDS = ("vcpu_count", "mem_size_mib", "smt", "track_dirty_pages")


@dataclasses.dataclass
class UpdatePlan:
    """Outcome of diffing a remembered spec against a new one."""

    in_place: Dict[str, Any] = dataclasses.field(default_factory=dict)
    replace: List[str] = dataclasses.field(default_factory=list)

    @property
    def has_changes(self) -> bool:
        return bool(self.in_place or self.replace)

    def to_dict(self) -> Dict[str, Any]:
        return {"in_place": self.in_place, "replace": self.replace}


def _drive_key(spec: VMSpec):
    keys = []
    for drive in spec.drives:
        root = coerce_bool(drive.is_root_device)
        keys.append(
            (
                ROOT_DRIVE_ID if root else drive.drive_id,
                drive.path_on_host,
                root,
                coerce_bool(drive.is_read_only),
                drive.cache_type,
            )
        )
    return sorted(keys)


def _iface_key(spec: VMSpec):
    return [network_interface_body(iface).to_payload() for iface in spec.network_interfaces]


class VMLifecycle:
    """Top-level create/read/update/delete controller for firecracker_vm resources."""

    def __init__(self, transport: Transport, state_manager: StateManager):
        self.transport = transport
        self.configurator = ComponentConfigurator(transport)
        self.provisioner = Provisioner(self.configurator)
        self.reconciler = Reconciler(transport)
        self.state_manager = state_manager

    @classmethod
    def from_config(cls, cfg: Dict[str, Any]) -> "VMLifecycle":
        """Build the transport once and share it with every component."""
        transport = ConfigManager.build_transport(cfg)
        return cls(transport, StateManager(cfg.get("state_dir")))

    def close(self) -> None:
        self.transport.close()

    def _transition(self, vm_id: str, old: str, new: str) -> None:
        logger.debug("vm=%s %s -> %s", vm_id, old, new)

    def _load(self, vm_id: str) -> VMRecord:
        record = self.state_manager.load_record(vm_id)
        if record is None:
            raise NotFoundError(vm_id)
        return record

    def _fetch_mirror(self, vm_id: str) -> Optional[RemoteVMState]:
        try:
            return self.reconciler.fetch(vm_id)
        except ReconciliationError as e:
            logger.warning("Failed to read back VM state, keeping previous mirror: vm=%s error=%s", vm_id, e)
            return None

    def create(self, spec: VMSpec) -> VMRecord:
        """Validate, provision and start a VM, then record it.

        Nothing is recorded when any step fails.
        """
        validate_spec(spec)
        vm_id = uuid.uuid4().hex
        spec = spec.with_id(vm_id)
        self._transition(vm_id, ABSENT, CREATING)
        applied: List[str] = []
        try:
            self.provisioner.provision(spec, applied)
        except (ConfigurationError, TransportError) as e:
            step = e.component if isinstance(e, ConfigurationError) else self._pending_step(spec, applied)
            logger.error("VM creation failed: vm=%s step=%s applied=%s error=%s", vm_id, step, applied, e)
            self._transition(vm_id, CREATING, ABSENT)
            raise ProvisioningError(step, applied, e) from e
        record = VMRecord(id=vm_id, spec=spec, remote=self._fetch_mirror(vm_id))
        self.state_manager.save_record(record)
        self._transition(vm_id, CREATING, PRESENT)
        return record

    def _pending_step(self, spec: VMSpec, applied: List[str]) -> str:
        planned: List[PlannedCall] = self.provisioner.plan(spec)
        return planned[len(applied)].step if len(applied) < len(planned) else "unknown"

    def read(self, vm_id: str) -> Optional[VMRecord]:
        """Refresh the mirror. Returns None and drops the record when the VM is gone."""
        record = self._load(vm_id)
        remote = self.reconciler.fetch(vm_id)
        if remote is None:
            logger.info("VM no longer exists, removing from state: vm=%s", vm_id)
            self.state_manager.delete_record(vm_id)
            self._transition(vm_id, PRESENT, ABSENT)
            return None
        record.remote = remote
        record.updated_at = time.time()
        self.state_manager.save_record(record)
        return record

    def plan_update(self, old: VMSpec, new: VMSpec) -> UpdatePlan:
        plan = UpdatePlan()
        if old.kernel_image_path != new.kernel_image_path:
            plan.replace.append("kernel_image_path")
        if normalize_boot_args(old.boot_args) != normalize_boot_args(new.boot_args):
            plan.replace.append("boot_args")
        if old.initrd_path != new.initrd_path:
            plan.replace.append("initrd_path")
        if _drive_key(old) != _drive_key(new):
            plan.replace.append("drives")
        if _iface_key(old) != _iface_key(new):
            plan.replace.append("network_interfaces")
        for field in PATCHABLE_MACHINE_FIELDS:
            old_value = getattr(old.machine_config, field)
            new_value = getattr(new.machine_config, field)
            if old_value == new_value:
                continue
            if new_value is None:
                # PATCH cannot unset a field back to the API default.
                plan.replace.append(f"machine_config.{field}")
            else:
                plan.in_place[field] = new_value
        return plan

    def update(self, vm_id: str, new_spec: VMSpec, allow_replace: bool = False) -> VMRecord:
        """Apply machine-config changes in place; anything else needs replacement.

        With allow_replace the VM is deleted and re-created under a new id.
        """
        validate_spec(new_spec)
        record = self._load(vm_id)
        plan = self.plan_update(record.spec, new_spec)
        if not plan.has_changes:
            logger.info("No changes to apply: vm=%s", vm_id)
            return record
        if plan.replace:
            if not allow_replace:
                logger.warning("Update requires replacement: vm=%s fields=%s", vm_id, plan.replace)
                raise ReplacementRequired(plan.replace)
            logger.warning("Replacing VM: vm=%s fields=%s", vm_id, plan.replace)
            self.delete(vm_id)
            return self.create(new_spec.with_id(None))

        self._transition(vm_id, PRESENT, UPDATING)
        logger.info("Updating machine config in place: vm=%s changes=%s", vm_id, plan.in_place)
        try:
            self.configurator.patch_machine_config(**plan.in_place)
        finally:
            self._transition(vm_id, UPDATING, PRESENT)
        record.spec = new_spec.with_id(vm_id)
        remote = self._fetch_mirror(vm_id)
        if remote is not None:
            record.remote = remote
        record.updated_at = time.time()
        self.state_manager.save_record(record)
        return record

    def delete(self, vm_id: str) -> bool:
        """Best-effort shutdown; the local record is always removed.

        Returns whether a local record existed.
        """
        validate_record_id(vm_id)
        self._transition(vm_id, PRESENT, DELETING)
        logger.debug("Attempting to shut down VM as part of deletion: vm=%s", vm_id)
        try:
            self.configurator.send_ctrl_alt_del()
        except TransportError as e:
            logger.warning("Failed to connect to Firecracker API, assuming VM is already gone: vm=%s error=%s", vm_id, e)
        except ConfigurationError as e:
            if e.status_code == 404:
                logger.info("VM not found on Firecracker API, treating as deleted: vm=%s", vm_id)
            else:
                logger.warning(
                    "Received non-success status when shutting down VM: vm=%s status=%s body=%s",
                    vm_id,
                    e.status_code,
                    e.response_body,
                )
        finally:
            existed = self.state_manager.delete_record(vm_id)
        self._transition(vm_id, DELETING, ABSENT)
        logger.info("VM deletion process completed: vm=%s", vm_id)
        return existed

    def inspect(self, vm_id: str) -> RemoteVMState:
        """Read remote state without touching local records."""
        remote = self.reconciler.fetch(vm_id)
        if remote is None:
            raise NotFoundError(vm_id)
        return remote

    def plan_create(self, spec: VMSpec) -> List[PlannedCall]:
        validate_spec(spec)
        return self.provisioner.plan(spec)

    def list_records(self) -> List[VMRecord]:
        return self.state_manager.list_records()

#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
CLI commands module for the Firecracker provider.
This module contains the command-line interface commands for firecracker_vm resources.
"""
import logging
from pathlib import Path
from typing import Any, Dict, Optional

from ..config import ConfigManager
from ..errors import ProviderError, ProvisioningError, ReplacementRequired, ValidationError
from ..models import VMSpec
from ..orchestration import VMLifecycle, detect_drift
from ..utils.validation import fail, read_json, succeed

logger = logging.getLogger("fc-provider")


def _describe(e: ProviderError) -> str:
    if isinstance(e, ValidationError):
        return "invalid VM specification: " + "; ".join(e.problems)
    return str(e)


class CLICommands:
    """CLI commands handler."""

    def __init__(self, lifecycle: Optional[VMLifecycle] = None):
        if lifecycle is None:
            cfg = ConfigManager().load_provider_config()
            lifecycle = VMLifecycle.from_config(cfg)
        self.lifecycle = lifecycle

    def _load_spec(self, spec_file: Path) -> VMSpec:
        return VMSpec.from_document(read_json(spec_file))

    def create(self, spec_file: Path):
        """Create and start a VM."""
        try:
            record = self.lifecycle.create(self._load_spec(spec_file))
        except ProvisioningError as e:
            logger.error("VM creation failed: %s", e)
            fail(f"VM creation failed at step {e.step}: {e.cause}")
        except ProviderError as e:
            fail(f"VM creation failed: {_describe(e)}")
        succeed({"status": "success", "vm": record.to_dict()})

    def read(self, vm_id: str):
        """Refresh a VM from the control API."""
        try:
            record = self.lifecycle.read(vm_id)
        except ProviderError as e:
            fail(f"VM read failed: {_describe(e)}")
        if record is None:
            succeed({"status": "absent", "message": f"VM {vm_id} no longer exists"})
        drift = detect_drift(record.spec, record.remote) if record.remote else []
        succeed({"status": "success", "vm": record.to_dict(), "drift": drift})

    def update(self, vm_id: str, spec_file: Path, allow_replace: bool = False):
        """Apply a new spec to an existing VM."""
        try:
            record = self.lifecycle.update(vm_id, self._load_spec(spec_file), allow_replace=allow_replace)
        except ReplacementRequired as e:
            fail(f"{e}; re-run with --allow-replace to recreate the VM")
        except ProviderError as e:
            fail(f"VM update failed: {_describe(e)}")
        succeed({"status": "success", "replaced": record.id != vm_id, "vm": record.to_dict()})

    def plan(self, spec_file: Path, vm_id: Optional[str] = None):
        """Show the calls a create would issue, or the diff an update would apply."""
        try:
            spec = self._load_spec(spec_file)
            if vm_id is None:
                calls = self.lifecycle.plan_create(spec)
                result: Dict[str, Any] = {"status": "success", "calls": [call._asdict() for call in calls]}
            else:
                record = self.lifecycle.state_manager.load_record(vm_id)
                if record is None:
                    fail(f"VM with ID {vm_id} not found")
                result = {"status": "success", "plan": self.lifecycle.plan_update(record.spec, spec).to_dict()}
        except ProviderError as e:
            fail(f"Plan failed: {_describe(e)}")
        succeed(result)

    def delete(self, vm_id: str):
        """Delete a VM."""
        try:
            existed = self.lifecycle.delete(vm_id)
        except ProviderError as e:
            fail(f"VM delete failed: {_describe(e)}")
        succeed({"status": "success", "message": f"VM {vm_id} deleted", "existed": existed})

    def inspect(self, vm_id: str):
        try:
            remote = self.lifecycle.inspect(vm_id)
        except ProviderError as e:
            fail(f"VM inspect failed: {_describe(e)}")
        succeed({"status": "success", "remote": remote.to_dict()})

    def list(self):
        records = self.lifecycle.list_records()
        succeed({"status": "success", "vms": [r.to_dict() for r in records], "count": len(records)})

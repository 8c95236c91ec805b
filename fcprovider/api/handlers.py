#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
API handlers module for the Firecracker provider.
This module contains the endpoint handlers for firecracker_vm resources and
translates provider errors into HTTP responses.
"""
import logging
from typing import Any, Dict

from fastapi import HTTPException

from ..errors import (
    ConfigurationError,
    NotFoundError,
    ProviderError,
    ProvisioningError,
    ReconciliationError,
    ReplacementRequired,
    TransportError,
    ValidationError,
)
from ..models import VMResourceRequest, VMSpec
from ..orchestration import VMLifecycle, detect_drift

logger = logging.getLogger("fc-provider")


def to_http_exception(e: ProviderError) -> HTTPException:
    """Map a provider failure onto a status code and JSON detail."""
    if isinstance(e, ValidationError):
        return HTTPException(status_code=400, detail={"error": "invalid VM specification", "problems": e.problems})
    if isinstance(e, NotFoundError):
        return HTTPException(status_code=404, detail=str(e))
    if isinstance(e, ReplacementRequired):
        return HTTPException(status_code=409, detail={"error": str(e), "fields": e.fields})
    if isinstance(e, ProvisioningError):
        return HTTPException(status_code=502, detail=e.to_dict())
    if isinstance(e, TransportError):
        return HTTPException(status_code=503, detail=f"Firecracker API unreachable: {e}")
    if isinstance(e, (ConfigurationError, ReconciliationError)):
        return HTTPException(status_code=502, detail=str(e))
    return HTTPException(status_code=500, detail=str(e))


class APIHandlers:

    def __init__(self, lifecycle: VMLifecycle):
        self.lifecycle = lifecycle

    def healthz(self) -> Dict[str, Any]:
        return {"status": "ok"}

    def api_create(self, req: VMResourceRequest) -> Dict[str, Any]:
        """Provision and start a VM from a resource document."""
        try:
            spec = VMSpec.from_document(req.spec)
            record = self.lifecycle.create(spec)
        except ProviderError as e:
            logger.error("VM creation failed: %s", e)
            raise to_http_exception(e)
        return {
            "status": "success",
            "message": f"VM {record.id} created and started successfully",
            "vm": record.to_dict(),
        }

    def v1_list_vms(self) -> Dict[str, Any]:
        """List every VM with a local record."""
        records = self.lifecycle.list_records()
        vms = [record.to_dict() for record in records]
        return {"status": "success", "message": f"Found {len(vms)} VMs", "vms": vms, "count": len(vms)}

    def v1_read_vm(self, vm_id: str) -> Dict[str, Any]:
        """Refresh a VM from the control API; 404 once it is gone."""
        try:
            record = self.lifecycle.read(vm_id)
        except ProviderError as e:
            logger.error("VM read failed: vm=%s error=%s", vm_id, e)
            raise to_http_exception(e)
        if record is None:
            raise HTTPException(status_code=404, detail=f"VM {vm_id} no longer exists")
        drift = detect_drift(record.spec, record.remote) if record.remote else []
        return {"status": "success", "vm": record.to_dict(), "drift": drift}

    def v1_update_vm(self, vm_id: str, req: VMResourceRequest) -> Dict[str, Any]:
        try:
            spec = VMSpec.from_document(req.spec)
            record = self.lifecycle.update(vm_id, spec, allow_replace=req.allow_replace)
        except ProviderError as e:
            logger.error("VM update failed: vm=%s error=%s", vm_id, e)
            raise to_http_exception(e)
        return {"status": "success", "replaced": record.id != vm_id, "vm": record.to_dict()}

    def v1_plan_update(self, vm_id: str, req: VMResourceRequest) -> Dict[str, Any]:
        """Show what an update would do without applying it."""
        try:
            spec = VMSpec.from_document(req.spec)
            record = self.lifecycle.state_manager.load_record(vm_id)
            if record is None:
                raise NotFoundError(vm_id)
            plan = self.lifecycle.plan_update(record.spec, spec)
        except ProviderError as e:
            raise to_http_exception(e)
        return {"status": "success", "plan": plan.to_dict()}

    def v1_plan_create(self, req: VMResourceRequest) -> Dict[str, Any]:
        """The ordered control API calls a create would issue."""
        try:
            calls = self.lifecycle.plan_create(VMSpec.from_document(req.spec))
        except ProviderError as e:
            raise to_http_exception(e)
        return {"status": "success", "calls": [call._asdict() for call in calls]}

    def v1_delete_vm(self, vm_id: str) -> Dict[str, Any]:
        try:
            existed = self.lifecycle.delete(vm_id)
        except ProviderError as e:
            raise to_http_exception(e)
        return {"status": "success", "message": f"VM {vm_id} deleted", "existed": existed}

    def v1_inspect_vm(self, vm_id: str) -> Dict[str, Any]:
        """Raw reconciled view from the control API, local records untouched."""
        try:
            remote = self.lifecycle.inspect(vm_id)
        except ProviderError as e:
            raise to_http_exception(e)
        return {"status": "success", "remote": remote.to_dict()}

#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""API routes module for the Firecracker provider."""
from fastapi import FastAPI

from ..models import VMResourceRequest
from ..orchestration import VMLifecycle
from .handlers import APIHandlers


def register_routes(app: FastAPI, lifecycle: VMLifecycle) -> None:
    """Register all API routes with the FastAPI application."""
    handlers = APIHandlers(lifecycle)

    # Health endpoint
    @app.get("/healthz")
    def healthz():
        return handlers.healthz()

    # VM resource endpoints
    @app.post("/v1/vms", status_code=201)
    def create_vm(req: VMResourceRequest):
        return handlers.api_create(req)

    @app.get("/v1/vms")
    def v1_list_vms():
        return handlers.v1_list_vms()

    @app.get("/v1/vms/{vm_id}")
    def v1_read_vm(vm_id: str):
        return handlers.v1_read_vm(vm_id)

    @app.put("/v1/vms/{vm_id}")
    def v1_update_vm(vm_id: str, req: VMResourceRequest):
        return handlers.v1_update_vm(vm_id, req)

    @app.post("/v1/vms/{vm_id}/plan")
    def v1_plan_update(vm_id: str, req: VMResourceRequest):
        return handlers.v1_plan_update(vm_id, req)

    @app.delete("/v1/vms/{vm_id}")
    def v1_delete_vm(vm_id: str):
        return handlers.v1_delete_vm(vm_id)

    @app.post("/v1/plan")
    def v1_plan_create(req: VMResourceRequest):
        return handlers.v1_plan_create(req)

    # Hypervisor passthrough
    @app.get("/v1/hypervisor/vm/{vm_id}")
    def v1_inspect_vm(vm_id: str):
        return handlers.v1_inspect_vm(vm_id)

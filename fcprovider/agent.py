#!/usr/bin/env python3
# -*- coding: utf-8 -*-
# Licensed to the Apache Software Foundation (ASF) under one
# or more contributor license agreements.  See the NOTICE file
# distributed with this work for additional information
# regarding copyright ownership.  The ASF licenses this file
# to you under the Apache License, Version 2.0 (the
# "License"); you may not use this file except in compliance
# with the License.  You may obtain a copy of the License at
#
#   http://www.apache.org/licenses/LICENSE/2.0
#
# Unless required by applicable law or agreed to in writing,
# software distributed under the License is distributed on an
# "AS IS" BASIS, WITHOUT WARRANTIES OR CONDITIONS OF ANY
# KIND, either express or implied.  See the License for the
# specific language governing permissions and limitations
# under the License.
from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

import typer
import uvicorn
from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from starlette.responses import JSONResponse

from . import __version__
from .api import register_routes
from .cli import CLICommands
from .config import ConfigManager
from .orchestration import VMLifecycle

# Global variables
logger = logging.getLogger("fc-provider")
logger.setLevel(logging.INFO)
_DEF_HANDLER_SET = False
# Global configuration
PROVIDER_CFG: Dict[str, Any] = {}
LIFECYCLE: Optional[VMLifecycle] = None
# Initialize FastAPI app
app = FastAPI(title="Firecracker Provider", version=__version__)


def _apply_logging_from_cfg(cfg: Dict[str, Any]) -> None:
    """Apply logging configuration from provider config."""
    global _DEF_HANDLER_SET
    if _DEF_HANDLER_SET:
        return
    log_cfg = cfg.get("logging", {})
    if log_cfg:
        level = str(log_cfg.get("level", "INFO")).upper()
        try:
            logger.setLevel(getattr(logging, level))
        except AttributeError:
            logger.setLevel(logging.INFO)
        # Add console handler if not present
        if not logger.handlers:
            handler = logging.StreamHandler()
            formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
            handler.setFormatter(formatter)
            logger.addHandler(handler)
        _DEF_HANDLER_SET = True


def root_ok() -> Dict[str, Any]:
    """Root endpoint handler."""
    return {"status": "ok", "message": "Firecracker Provider is running", "version": __version__}


# FastAPI event handlers
@app.on_event("startup")
async def startup_event():
    """Load configuration and wire the lifecycle controller into the routes."""
    global PROVIDER_CFG, LIFECYCLE
    logger.info("Starting Firecracker Provider...")
    PROVIDER_CFG = ConfigManager().load_provider_config()
    _apply_logging_from_cfg(PROVIDER_CFG)
    logger.info("Configuration loaded successfully")
    logger.info("PROVIDER_CFG keys: %s", list(PROVIDER_CFG.keys()))
    LIFECYCLE = VMLifecycle.from_config(PROVIDER_CFG)
    register_routes(app, LIFECYCLE)
    logger.info("Firecracker Provider started successfully")


@app.on_event("shutdown")
async def shutdown_event():
    """Release pooled control API connections."""
    logger.info("Shutting down Firecracker Provider (VMs left running)")
    if LIFECYCLE is not None:
        LIFECYCLE.close()
    logger.info("Firecracker Provider shut down")


@app.middleware("http")
async def request_logging_middleware(request: Request, call_next):
    """Log incoming requests immediately upon receipt."""
    logger.info("%s %s", request.method, request.url.path)
    return await call_next(request)


# Root endpoint
@app.get("/", include_in_schema=False)
def root():
    return root_ok()


# Exception handlers
@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Handle request validation errors."""
    logger.error("Validation error: %s", exc)
    return JSONResponse(status_code=422, content={"error": "Validation error", "detail": exc.errors()})


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    """Handle HTTP exceptions."""
    logger.error("HTTP error: %s", exc.detail)
    return JSONResponse(status_code=exc.status_code, content={"error": exc.detail})


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Handle general exceptions."""
    logger.exception("Unhandled exception: %s", exc)
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


# CLI interface
cli = typer.Typer()


@cli.command()
def create(spec_file: Path):
    """Create and start a VM."""
    CLICommands().create(spec_file)


@cli.command()
def read(vm_id: str):
    """Refresh a VM's state from the Firecracker API."""
    CLICommands().read(vm_id)


@cli.command()
def update(vm_id: str, spec_file: Path, allow_replace: bool = False):
    """Apply a new spec to a VM."""
    CLICommands().update(vm_id, spec_file, allow_replace=allow_replace)


@cli.command()
def plan(spec_file: Path, vm_id: Optional[str] = None):
    """Show planned calls (create) or the planned diff (with --vm-id)."""
    CLICommands().plan(spec_file, vm_id)


@cli.command()
def delete(vm_id: str):
    """Delete a VM."""
    CLICommands().delete(vm_id)


@cli.command()
def inspect(vm_id: str):
    """Show what the Firecracker API reports for a VM."""
    CLICommands().inspect(vm_id)


@cli.command("list")
def list_vms():
    """List managed VMs."""
    CLICommands().list()


@cli.command()
def serve():
    """Run the HTTP API."""
    cfg = PROVIDER_CFG or ConfigManager().load_provider_config()
    uvicorn.run(app, host=cfg["bind_host"], port=int(cfg["bind_port"]), reload=False)


def main():
    """Main entry point."""
    global PROVIDER_CFG
    PROVIDER_CFG = ConfigManager().load_provider_config()
    _apply_logging_from_cfg(PROVIDER_CFG)
    # Run the CLI by default; set FC_PROVIDER_MODE=api to serve the HTTP API instead
    mode = os.environ.get("FC_PROVIDER_MODE", "cli").lower()
    if mode == "api":
        uvicorn.run(app, host=PROVIDER_CFG["bind_host"], port=int(PROVIDER_CFG["bind_port"]), reload=False)
    else:
        cli()


if __name__ == "__main__":
    main()

#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Validation utilities for the Firecracker provider.
This module checks VM specifications before anything is sent to the control
API, coerces loosely-typed document values and emits CLI results.
"""
import json
import re
from pathlib import Path
from typing import Any, Dict, List

import typer

from ..errors import ValidationError
from ..models import VMSpec

VCPU_RANGE = (1, 32)
MEM_MIB_RANGE = (128, 32768)
CACHE_TYPES = ("Unsafe", "Writeback")

_TRUE_STRINGS = {"1", "true", "yes", "on"}
_FALSE_STRINGS = {"0", "false", "no", "off", ""}
_MAC_RE = re.compile(r"^[0-9A-Fa-f]{2}([:-])(?:[0-9A-Fa-f]{2}\1){4}[0-9A-Fa-f]{2}$")


def fail(msg: str, is_api_mode: bool = False) -> None:
    """Emit an error. In API mode raise a runtime error (handled by endpoints);
    in CLI mode print JSON and exit with code 1.
    """
    if is_api_mode:
        raise RuntimeError(msg)
    typer.echo(json.dumps({"error": msg}))
    raise typer.Exit(code=1)


def succeed(data: Dict[str, Any], is_api_mode: bool = False) -> Dict[str, Any]:
    """Emit success response. In API mode return data; in CLI mode print JSON and exit with code 0."""
    if is_api_mode:
        return data
    typer.echo(json.dumps(data))
    raise typer.Exit(code=0)


def read_json(path: Path) -> Dict[str, Any]:
    """Load and parse a JSON file, failing the CLI on error."""
    try:
        with path.open("r", encoding="utf-8") as f:
            return json.load(f)
    except (OSError, ValueError) as e:
        fail(f"Invalid JSON '{path}': {e}", is_api_mode=False)


def validate_record_id(vm_id: str) -> None:
    """Validate a VM id (alnum and dashes only). Raise ValidationError on error."""
    if not re.match(r"^[A-Za-z0-9-]+$", vm_id or ""):
        raise ValidationError([f"Invalid VM id '{vm_id}'. Only A-Z, a-z, 0-9 and '-' allowed"])


def coerce_bool(value: Any, field: str = "value") -> bool:
    """Interpret booleans and their common string forms as a strict bool."""
    if isinstance(value, bool):
        return value
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in _TRUE_STRINGS:
            return True
        if lowered in _FALSE_STRINGS:
            return False
    if value is None:
        return False
    raise ValidationError([f"{field} must be a boolean, got {value!r}"])


def is_valid_mac(mac: str) -> bool:
    return bool(_MAC_RE.match(mac or ""))


def normalize_mac(mac: str) -> str:
    """Return the MAC colon-separated and lower-case."""
    if not is_valid_mac(mac):
        raise ValidationError([f"invalid guest_mac '{mac}'"])
    return mac.replace("-", ":").lower()


def validate_spec(spec: VMSpec) -> None:
    """Check a VM specification, raising ValidationError listing every problem."""
    problems: List[str] = []
    if not isinstance(spec.kernel_image_path, str) or not spec.kernel_image_path.strip():
        problems.append("kernel_image_path is required")

    if not spec.drives:
        problems.append("at least one drive is required")
    seen_drives = set()
    root_count = 0
    for index, drive in enumerate(spec.drives):
        label = drive.drive_id or f"drives[{index}]"
        if not drive.drive_id:
            problems.append(f"drives[{index}].drive_id is required")
        elif drive.drive_id in seen_drives:
            problems.append(f"duplicate drive_id '{drive.drive_id}'")
        seen_drives.add(drive.drive_id)
        if not drive.path_on_host:
            problems.append(f"drive '{label}' path_on_host is required")
        try:
            if coerce_bool(drive.is_root_device, f"drive '{label}' is_root_device"):
                root_count += 1
            coerce_bool(drive.is_read_only, f"drive '{label}' is_read_only")
        except ValidationError as e:
            problems.extend(e.problems)
        if drive.cache_type is not None and drive.cache_type not in CACHE_TYPES:
            problems.append(
                f"drive '{label}' cache_type must be one of {', '.join(CACHE_TYPES)}, got '{drive.cache_type}'"
            )
    if spec.drives and root_count != 1:
        problems.append(f"exactly one drive must have is_root_device = true (found {root_count})")

    mc = spec.machine_config
    if not VCPU_RANGE[0] <= mc.vcpu_count <= VCPU_RANGE[1]:
        problems.append(f"vcpu_count must be between {VCPU_RANGE[0]} and {VCPU_RANGE[1]}, got {mc.vcpu_count}")
    if not MEM_MIB_RANGE[0] <= mc.mem_size_mib <= MEM_MIB_RANGE[1]:
        problems.append(
            f"mem_size_mib must be between {MEM_MIB_RANGE[0]} and {MEM_MIB_RANGE[1]}, got {mc.mem_size_mib}"
        )
    for field in ("smt", "track_dirty_pages"):
        value = getattr(mc, field)
        if value is None:
            continue
        try:
            coerce_bool(value, f"machine_config.{field}")
        except ValidationError as e:
            problems.extend(e.problems)

    seen_ifaces = set()
    for index, iface in enumerate(spec.network_interfaces):
        if not iface.iface_id:
            problems.append(f"network_interfaces[{index}].iface_id is required")
        elif iface.iface_id in seen_ifaces:
            problems.append(f"duplicate iface_id '{iface.iface_id}'")
        seen_ifaces.add(iface.iface_id)
        if not iface.host_dev_name:
            problems.append(f"network interface '{iface.iface_id}' host_dev_name is required")
        if iface.guest_mac and not is_valid_mac(iface.guest_mac):
            problems.append(f"network interface '{iface.iface_id}' has invalid guest_mac '{iface.guest_mac}'")

    if problems:
        raise ValidationError(problems)

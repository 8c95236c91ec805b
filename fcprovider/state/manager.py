#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
State management module for the Firecracker provider.
This module persists lifecycle records between invocations, one JSON file per VM id.
"""
import json
import logging
import os
import tempfile
from pathlib import Path
from typing import List, Optional

from ..models import VMRecord
from ..utils.validation import validate_record_id

logger = logging.getLogger("fc-provider")


class StateManager:
    """Manager for lifecycle record persistence."""

    def __init__(self, state_dir: Optional[str]):
        self.state_dir = Path(state_dir) if state_dir else None

    def _record_file(self, vm_id: str) -> Path:
        validate_record_id(vm_id)
        return self.state_dir / f"vm-{vm_id}.json"

    def save_record(self, record: VMRecord) -> None:
        """Write the record atomically."""
        if self.state_dir is None:
            logger.warning("state_dir not configured, skipping record save for vm=%s", record.id)
            return
        self.state_dir.mkdir(parents=True, exist_ok=True)
        target = self._record_file(record.id)
        fd, tmp_name = tempfile.mkstemp(dir=str(self.state_dir), prefix=".vm-", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(record.to_dict(), f, indent=2)
            os.replace(tmp_name, target)
        except BaseException:
            try:
                os.unlink(tmp_name)
            except FileNotFoundError:
                pass
            raise
        logger.info("Saved record for vm=%s", record.id)

    def load_record(self, vm_id: str) -> Optional[VMRecord]:
        if self.state_dir is None:
            return None
        record_file = self._record_file(vm_id)
        if not record_file.exists():
            return None
        with record_file.open("r", encoding="utf-8") as f:
            data = json.load(f)
        return VMRecord.from_dict(data)

    def delete_record(self, vm_id: str) -> bool:
        if self.state_dir is None:
            return False
        try:
            self._record_file(vm_id).unlink()
        except FileNotFoundError:
            return False
        logger.info("Removed record for vm=%s", vm_id)
        return True

    def list_records(self) -> List[VMRecord]:
        if self.state_dir is None or not self.state_dir.exists():
            return []
        records = []
        for record_file in sorted(self.state_dir.glob("vm-*.json")):
            try:
                with record_file.open("r", encoding="utf-8") as f:
                    records.append(VMRecord.from_dict(json.load(f)))
            except (OSError, ValueError, KeyError) as e:
                logger.error("Failed to load record %s: %s", record_file, e)
        return records

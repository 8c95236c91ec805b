"""Tests for fcprovider.state."""

from __future__ import annotations

import pytest

from fcprovider.errors import ValidationError
from fcprovider.models import VMRecord
from fcprovider.state import StateManager


class TestStateManager:
    def test_save_and_load(self, state_manager, vm_spec):
        record = VMRecord(id="vm-1", spec=vm_spec.with_id("vm-1"))
        state_manager.save_record(record)
        loaded = state_manager.load_record("vm-1")
        assert loaded.id == "vm-1"
        assert loaded.spec == record.spec
        assert (state_manager.state_dir / "vm-vm-1.json").exists()

    def test_no_temp_files_left(self, state_manager, vm_spec):
        state_manager.save_record(VMRecord(id="vm-1", spec=vm_spec.with_id("vm-1")))
        assert [p.name for p in state_manager.state_dir.iterdir()] == ["vm-vm-1.json"]

    def test_load_missing(self, state_manager):
        assert state_manager.load_record("vm-1") is None

    def test_delete(self, state_manager, vm_spec):
        state_manager.save_record(VMRecord(id="vm-1", spec=vm_spec.with_id("vm-1")))
        assert state_manager.delete_record("vm-1") is True
        assert state_manager.delete_record("vm-1") is False

    def test_list_skips_corrupt_files(self, state_manager, vm_spec):
        state_manager.save_record(VMRecord(id="vm-1", spec=vm_spec.with_id("vm-1")))
        (state_manager.state_dir / "vm-broken.json").write_text("{")
        assert [r.id for r in state_manager.list_records()] == ["vm-1"]

    def test_rejects_path_traversal(self, state_manager):
        with pytest.raises(ValidationError):
            state_manager.load_record("../../etc/passwd")

    def test_without_state_dir(self, vm_spec):
        manager = StateManager(None)
        manager.save_record(VMRecord(id="vm-1", spec=vm_spec.with_id("vm-1")))
        assert manager.load_record("vm-1") is None
        assert manager.delete_record("vm-1") is False
        assert manager.list_records() == []

"""Tests for fcprovider.models."""

from __future__ import annotations

import pytest

from fcprovider.errors import ReconciliationGap, ValidationError
from fcprovider.models import (
    DEFAULT_BOOT_ARGS,
    MachineConfig,
    RemoteVMState,
    VMRecord,
    VMResourceRequest,
    VMSpec,
)


class TestVMSpecFromDocument:
    def test_hcl_block_list_accepted(self, spec_document):
        spec = VMSpec.from_document(spec_document)
        assert spec.machine_config == MachineConfig(vcpu_count=2, mem_size_mib=1024)
        assert [d.drive_id for d in spec.drives] == ["data", "root"]
        assert spec.drives[1].is_root_device == "true"
        assert spec.network_interfaces[0].guest_mac == "AA-FC-00-00-00-01"

    def test_machine_config_object_accepted(self, spec_document):
        spec_document["machine_config"] = {"vcpu_count": "4", "mem_size_mib": 2048, "smt": True}
        spec = VMSpec.from_document(spec_document)
        assert spec.machine_config.vcpu_count == 4
        assert spec.machine_config.smt is True

    def test_missing_boot_args_defaults(self, spec_document):
        del spec_document["boot_args"]
        assert VMSpec.from_document(spec_document).boot_args == DEFAULT_BOOT_ARGS

    def test_optional_fields_default(self, spec_document):
        del spec_document["network_interfaces"]
        spec = VMSpec.from_document(spec_document)
        assert spec.network_interfaces == ()
        assert spec.initrd_path is None
        assert spec.id is None

    @pytest.mark.parametrize("mc", [None, [], [{"vcpu_count": 1, "mem_size_mib": 128}] * 2, "big"])
    def test_bad_machine_config(self, spec_document, mc):
        spec_document["machine_config"] = mc
        with pytest.raises(ValidationError, match="machine_config"):
            VMSpec.from_document(spec_document)

    def test_non_integer_vcpu(self, spec_document):
        spec_document["machine_config"] = {"vcpu_count": "two", "mem_size_mib": 1024}
        with pytest.raises(ValidationError, match="vcpu_count must be an integer"):
            VMSpec.from_document(spec_document)

    def test_drives_must_be_list(self, spec_document):
        spec_document["drives"] = {"drive_id": "root"}
        with pytest.raises(ValidationError, match="drives must be a list"):
            VMSpec.from_document(spec_document)

    def test_not_an_object(self):
        with pytest.raises(ValidationError):
            VMSpec.from_document(["nope"])

    def test_document_round_trip(self, spec_document):
        spec = VMSpec.from_document(spec_document).with_id("abc")
        assert VMSpec.from_document(spec.to_document()) == spec


class TestRecords:
    def test_record_round_trip_with_gaps(self, vm_spec):
        remote = RemoteVMState(
            vm_id="abc",
            machine_config=MachineConfig(1, 512),
            gaps=[ReconciliationGap("drives", 400, "unsupported")],
        )
        record = VMRecord(id="abc", spec=vm_spec.with_id("abc"), remote=remote)
        restored = VMRecord.from_dict(record.to_dict())
        assert restored.spec == record.spec
        assert restored.remote == remote
        assert not restored.remote.is_known("drives")
        assert restored.remote.is_known("machine-config")

    def test_record_without_remote(self, vm_spec):
        record = VMRecord(id="abc", spec=vm_spec.with_id("abc"))
        assert VMRecord.from_dict(record.to_dict()).remote is None


class TestVMResourceRequest:
    def test_defaults(self):
        req = VMResourceRequest(spec={"kernel_image_path": "/k"})
        assert req.allow_replace is False

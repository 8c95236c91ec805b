"""Tests for fcprovider.orchestration.bootargs."""

from __future__ import annotations

import pytest

from fcprovider.models import DEFAULT_BOOT_ARGS
from fcprovider.orchestration.bootargs import ROOT_DEVICE_ARG, normalize_boot_args


class TestNormalizeBootArgs:
    def test_rewrites_conventional_root_device(self):
        assert normalize_boot_args("console=ttyS0 root=/dev/vda rw") == f"console=ttyS0 {ROOT_DEVICE_ARG} rw"

    def test_rewrites_partition_of_root_device(self):
        assert normalize_boot_args("root=/dev/vda1 rw") == f"{ROOT_DEVICE_ARG} rw"

    def test_appends_when_no_root_argument(self):
        assert normalize_boot_args("console=ttyS0 reboot=k") == f"console=ttyS0 reboot=k {ROOT_DEVICE_ARG}"

    @pytest.mark.parametrize("args", ["console=ttyS0 root=PARTUUID=1234-5678 rw", "root=PARTLABEL=rootfs rw"])
    def test_stable_root_left_alone(self, args):
        assert normalize_boot_args(args) == args

    def test_does_not_touch_similar_device_names(self):
        out = normalize_boot_args("root=/dev/vdb rw")
        assert "root=/dev/vdb" in out
        assert out.endswith(ROOT_DEVICE_ARG)

    def test_empty_uses_defaults(self):
        out = normalize_boot_args("")
        assert out == DEFAULT_BOOT_ARGS.replace("root=/dev/vda", ROOT_DEVICE_ARG)

    @pytest.mark.parametrize(
        "args",
        ["console=ttyS0 root=/dev/vda rw", "console=ttyS0", "", "root=PARTUUID=abcd", "  root=/dev/vda2   rw  "],
    )
    def test_idempotent(self, args):
        once = normalize_boot_args(args)
        assert normalize_boot_args(once) == once

    def test_references_root_drive_id(self):
        assert ROOT_DEVICE_ARG == "root=PARTLABEL=rootfs"

#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Kernel command line normalization.
The root drive is always attached under ROOT_DRIVE_ID, so the kernel's root=
argument is pointed at the partition carrying that label instead of a
enumeration-order device name such as /dev/vda.
"""
import re
from typing import Optional

from ..models import DEFAULT_BOOT_ARGS, ROOT_DRIVE_ID

# Requires a GPT partition named ROOT_DRIVE_ID on the root image.
# A PARTUUID is image-specific and not known before boot.
ROOT_DEVICE_ARG = f"root=PARTLABEL={ROOT_DRIVE_ID}"

_STABLE_ROOT_RE = re.compile(r"(?<!\S)root=PART(?:UUID|LABEL)=\S+")
_CONVENTIONAL_ROOT_RE = re.compile(r"(?<!\S)root=/dev/vda\d*(?!\S)")


def normalize_boot_args(boot_args: Optional[str]) -> str:
    """Make the root= argument reference the canonical root drive.

    Left untouched when it already uses a PARTUUID/PARTLABEL token, rewritten
    when it names /dev/vda (or a partition of it), appended otherwise.
    Idempotent.
    """
    args = " ".join((boot_args or "").split()) or DEFAULT_BOOT_ARGS
    if _STABLE_ROOT_RE.search(args):
        return args
    if _CONVENTIONAL_ROOT_RE.search(args):
        return _CONVENTIONAL_ROOT_RE.sub(ROOT_DEVICE_ARG, args)
    return f"{args} {ROOT_DEVICE_ARG}"

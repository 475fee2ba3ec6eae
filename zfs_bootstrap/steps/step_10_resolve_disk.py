from __future__ import annotations

import logging
import re

from ..context import RunContext, TargetDevice
from ..errors import ConfirmationDeclined, DiskError
from ..lib import block
from ..lib.lock import DeviceLock
from ..lib.zfs import pool_member_devices
from ..pipeline import BaseStep

logger = logging.getLogger(__name__)

CONFIRM_WORD = "yes"


def disk_in_use(ctx: RunContext, disk: str) -> None:
    """Raise DiskError if the disk or any of its partitions is mounted or pooled."""

    mounted = block.mountpoints(ctx.runner, disk)
    if mounted:
        raise DiskError(
            f"Target disk ({disk}) or its partitions are mounted ({', '.join(mounted)}). "
            "Unmount them before proceeding."
        )

    sep = "p" if disk[-1:].isdigit() else ""
    on_disk = re.compile(rf"^{re.escape(disk)}({sep}\d+)?$")
    pooled = [d for d in pool_member_devices(ctx.runner) if on_disk.match(d)]
    if pooled:
        raise DiskError(
            f"Target disk ({disk}) is part of an imported ZFS pool ({', '.join(pooled)}). "
            "Export the pool before proceeding."
        )


class ResolveDiskStep(BaseStep):
    step_id = "10_resolve_disk"

    def run(self, ctx: RunContext) -> None:
        cfg = ctx.config
        disks = block.list_disks(ctx.runner)

        logger.info("Available block devices:")
        for d in disks:
            logger.info("  %s (size: %s, canonical: %s)", d.path, block.human_size(d.size), block.canonical_path(d.path))

        if cfg.auto_disk:
            logger.info("TARGET_DISK is auto; detecting the largest available disk")
            largest = block.pick_largest(disks)
            if largest is None:
                raise DiskError("No suitable disk found.")
            chosen = largest.path
            logger.info("Autodetected target disk: %s", chosen)
        else:
            chosen = cfg.target_disk

        disk = block.canonical_path(chosen)
        logger.info("Using canonical disk name: %s", disk)

        if ctx.dry_run:
            logger.info("Would check that %s is a block device", disk)
        elif not block.is_block_device(disk):
            raise DiskError(f"Invalid target disk: {disk} is not a block device.")

        disk_in_use(ctx, disk)

        lock = DeviceLock(disk, lock_dir=ctx.lock_dir)
        lock.acquire()
        ctx.lock = lock

        print(f"WARNING: This operation will erase all data on {disk}.")
        answer = ctx.confirm("Are you sure you want to proceed? (yes/no): ")
        if (answer or "").strip() != CONFIRM_WORD:
            raise ConfirmationDeclined("Operation canceled.")

        ctx.target = TargetDevice(disk=disk)
        ctx.decide("target_disk", disk)
        ctx.decide("partitions", {
            "efi": ctx.target.efi_part,
            "boot": ctx.target.boot_part,
            "root": ctx.target.root_part,
        })
        logger.info("Target disk confirmed: %s", disk)

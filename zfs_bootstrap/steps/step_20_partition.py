from __future__ import annotations

import logging

from ..context import RunContext
from ..lib import storage
from ..pipeline import BaseStep
from .step_10_resolve_disk import disk_in_use

logger = logging.getLogger(__name__)


class PartitionStep(BaseStep):
    step_id = "20_partition"

    def check(self, ctx: RunContext) -> None:
        disk_in_use(ctx, ctx.require_target().disk)

    def run(self, ctx: RunContext) -> None:
        target = ctx.require_target()
        disk = target.disk
        dry_run = ctx.dry_run

        storage.wipe_disk(ctx.runner, disk, zero_fill=ctx.config.zero_fill)

        esp = storage.create_partition(ctx.runner, disk, storage.EFI_PARTITION)
        storage.wait_for_node(esp, dry_run=dry_run)
        storage.format_esp(ctx.runner, esp)
        ctx.runner.run(["blkid", esp], check=False)

        boot = storage.create_partition(ctx.runner, disk, storage.BOOT_PARTITION)
        storage.wait_for_node(boot, dry_run=dry_run)

        root = storage.create_partition(ctx.runner, disk, storage.ROOT_PARTITION)
        storage.wait_for_node(root, dry_run=dry_run)

        storage.reread(ctx.runner, disk)
        logger.info("Partitioning of %s complete (efi=%s boot=%s root=%s)", disk, esp, boot, root)

    def verify(self, ctx: RunContext) -> None:
        target = ctx.require_target()
        for part in (target.efi_part, target.boot_part, target.root_part):
            storage.wait_for_node(part, dry_run=ctx.dry_run)
        ctx.runner.run(["lsblk", target.disk], check=False)

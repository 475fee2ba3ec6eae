from __future__ import annotations

import logging

from ..context import RunContext
from ..errors import ResourceError
from ..lib import zfs
from ..lib.block import is_block_device
from ..pipeline import BaseStep

logger = logging.getLogger(__name__)


def _require_partition(ctx: RunContext, label: str, part: str) -> None:
    # Guards against an earlier step having silently failed.
    if not part:
        raise ResourceError(f"{label} partition path is empty")
    if ctx.dry_run:
        return
    if not is_block_device(part):
        raise ResourceError(f"{label} partition ({part}) is not valid.")


class CreatePoolsStep(BaseStep):
    step_id = "30_create_pools"

    def check(self, ctx: RunContext) -> None:
        clash = {zfs.BOOT_POOL, zfs.ROOT_POOL} & set(zfs.imported_pools(ctx.runner))
        if clash:
            raise ResourceError(f"Pool(s) already imported: {', '.join(sorted(clash))}")

    def run(self, ctx: RunContext) -> None:
        target = ctx.require_target()

        logger.info("Creating ZFS boot pool")
        _require_partition(ctx, "ZFS boot", target.boot_part)
        zfs.create_pool(
            ctx.runner,
            zfs.boot_pool_spec(target.boot_part, ctx.root, cachefile=ctx.host_zpool_cache),
        )

        logger.info("Creating ZFS root pool")
        _require_partition(ctx, "ZFS root", target.root_part)
        zfs.create_pool(
            ctx.runner,
            zfs.root_pool_spec(target.root_part, ctx.root),
            passphrase=ctx.config.zfs_passphrase,
        )

    def verify(self, ctx: RunContext) -> None:
        if ctx.dry_run:
            return
        missing = {zfs.BOOT_POOL, zfs.ROOT_POOL} - set(zfs.imported_pools(ctx.runner))
        if missing:
            raise ResourceError(f"Pool(s) missing after creation: {', '.join(sorted(missing))}")

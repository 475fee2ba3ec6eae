from __future__ import annotations

import logging
import shutil
from pathlib import Path

from ..context import RunContext
from ..errors import ResourceError
from ..lib.chroot import mount_run_tmpfs
from ..lib.files import make_dir, target_path
from ..lib.pkg import debootstrap_rootfs
from ..pipeline import BaseStep

logger = logging.getLogger(__name__)


class InstallBaseStep(BaseStep):
    step_id = "40_install_base"

    def run(self, ctx: RunContext) -> None:
        cfg = ctx.config
        target_root = ctx.root

        logger.info("Mounting tmpfs on %s/run", target_root)
        mount_run_tmpfs(ctx.runner, target_root)

        logger.info("Installing Debian %s into %s", cfg.debian_release, target_root)
        debootstrap_rootfs(
            ctx.runner,
            target_root=target_root,
            suite=cfg.debian_release,
            mirror=cfg.debian_mirror,
        )

        cache_dst = target_path(target_root, ctx.host_zpool_cache)
        make_dir(target_root, str(Path(ctx.host_zpool_cache).parent), dry_run=ctx.dry_run)
        if ctx.dry_run:
            logger.info("Would copy %s -> %s", ctx.host_zpool_cache, cache_dst)
        else:
            shutil.copy2(ctx.host_zpool_cache, cache_dst)
            logger.info("Copied %s -> %s", ctx.host_zpool_cache, cache_dst)

    def verify(self, ctx: RunContext) -> None:
        if ctx.dry_run:
            return
        for rel in ("etc", "usr/bin"):
            p = target_path(ctx.root, rel)
            if not p.is_dir():
                raise ResourceError(f"Base system incomplete: missing {p}")

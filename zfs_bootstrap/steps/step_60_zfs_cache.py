from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import List

from ..context import RunContext
from ..errors import CacheTimeoutError
from ..lib.chroot import chroot_cmd
from ..lib.env import PATHS
from ..lib.files import target_path
from ..lib.wait import WaitTimeout, poll_until
from ..lib.zfs import BOOT_POOL, ROOT_POOL, set_property
from ..pipeline import BaseStep

logger = logging.getLogger(__name__)


def strip_staging_prefix(text: str, staging_root: str) -> str:
    """Rewrite the first staging-root path on each line to the real root."""

    if staging_root in ("", "/"):
        return text
    prefix = re.compile(rf"{re.escape(staging_root)}(?:/|(?=\s)|$)")
    return "\n".join(prefix.sub("/", ln, count=1) for ln in text.split("\n"))


class ZfsCacheStep(BaseStep):
    """Make zed populate zfs-list.cache so systemd mounts datasets in order."""

    step_id = "60_zfs_cache"

    def cache_files(self, ctx: RunContext) -> List[Path]:
        cache_dir = target_path(ctx.root, PATHS.zfs_list_cache_dir)
        return [cache_dir / BOOT_POOL, cache_dir / ROOT_POOL]

    def populated(self, ctx: RunContext) -> bool:
        return all(p.exists() and p.stat().st_size > 0 for p in self.cache_files(ctx))

    def _wait(self, ctx: RunContext) -> bool:
        try:
            poll_until(lambda: self.populated(ctx), timeout=ctx.config.zed_timeout, what="zfs-list.cache")
            return True
        except WaitTimeout:
            return False

    def run(self, ctx: RunContext) -> None:
        if ctx.dry_run:
            logger.info("Would start zed and wait for %s", ", ".join(map(str, self.cache_files(ctx))))
            return

        for p in self.cache_files(ctx):
            p.parent.mkdir(parents=True, exist_ok=True)
            p.touch()

        logger.info("Starting zed to update ZFS cache")
        zed = ctx.runner.spawn(["chroot", ctx.root, "zed", "-F"])
        try:
            if not self._wait(ctx):
                logger.warning("Cache is empty. Forcing cache update")
                set_property(ctx.runner, ctx.config.boot_dataset, "canmount", "on")
                set_property(ctx.runner, ctx.config.root_dataset, "canmount", "noauto")
                if not self._wait(ctx):
                    raise CacheTimeoutError(
                        f"zed did not populate {target_path(ctx.root, PATHS.zfs_list_cache_dir)} "
                        f"within {ctx.config.zed_timeout:g}s after a forced update"
                    )
        finally:
            logger.info("Stopping zed")
            zed.stop()
            chroot_cmd(ctx.runner, ctx.root, ["killall", "-q", "zed"], check=False)

        logger.info("Fixing paths in ZFS cache files")
        for p in self.cache_files(ctx):
            p.write_text(strip_staging_prefix(p.read_text(encoding="utf-8"), ctx.root), encoding="utf-8")

    def verify(self, ctx: RunContext) -> None:
        if ctx.dry_run:
            return
        for p in self.cache_files(ctx):
            if ctx.root + "/" in p.read_text(encoding="utf-8"):
                logger.warning("%s still references %s", p, ctx.root)
        logger.info("Filesystem mount ordering for ZFS fixed")

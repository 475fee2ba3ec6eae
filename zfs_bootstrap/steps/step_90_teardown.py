from __future__ import annotations

import logging
from typing import List, Tuple

from ..context import RunContext
from ..lib.command import CommandRunner
from ..lib.zfs import export_all
from ..pipeline import BaseStep

logger = logging.getLogger(__name__)


def mounts_under(runner: CommandRunner, root: str) -> List[Tuple[str, str]]:
    """(target, fstype) of every mount at or below root, in mount order."""

    r = runner.run(["findmnt", "--list", "--noheadings", "--raw", "--output", "TARGET,FSTYPE"], check=False)
    found: List[Tuple[str, str]] = []
    for ln in (r.stdout or "").splitlines():
        parts = ln.split()
        if len(parts) < 2:
            continue
        # findmnt --raw escapes spaces as \x20
        target = parts[0].replace("\\x20", " ")
        if target == root or target.startswith(root.rstrip("/") + "/"):
            found.append((target, parts[1]))
    return found


class TeardownStep(BaseStep):
    step_id = "90_teardown"

    def run(self, ctx: RunContext) -> None:
        logger.info("Unmounting filesystems under %s", ctx.root)
        # ZFS datasets are released by the export below.
        non_zfs = [t for t, fstype in mounts_under(ctx.runner, ctx.root) if fstype != "zfs"]
        for target in reversed(non_zfs):
            r = ctx.runner.run(["umount", "-lf", target], check=False)
            if not r.ok:
                logger.warning("Could not unmount %s: %s", target, (r.stderr or "").strip())

        if not export_all(ctx.runner):
            logger.warning("zpool export -a reported a failure; pools may still be imported")

    def verify(self, ctx: RunContext) -> None:
        if ctx.dry_run:
            return
        remaining = mounts_under(ctx.runner, ctx.root)
        if remaining:
            logger.warning("Still mounted under %s: %s", ctx.root, ", ".join(t for t, _ in remaining))
        else:
            logger.info("Nothing left mounted under %s", ctx.root)

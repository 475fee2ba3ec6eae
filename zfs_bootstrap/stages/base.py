from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional, Sequence, Tuple

from ..context import RunContext
from ..lib.chroot import chroot_cmd
from ..lib.command import CmdResult
from ..lib.files import target_path, write_file
from ..lib.pkg import apt_install, enable_units

logger = logging.getLogger(__name__)


class ChrootStage:
    """One configuration stage executed against the staged root.

    A stage installs ``packages``, then ``configure()`` writes its files and
    runs its commands, then ``units`` are enabled for the next boot.
    """

    stage_id = ""
    packages: Tuple[str, ...] = ()
    units: Tuple[str, ...] = ()

    def enabled(self, ctx: RunContext) -> bool:
        return True

    def packages_for(self, ctx: RunContext) -> Sequence[str]:
        return self.packages

    def configure(self, ctx: RunContext) -> None:
        return None

    def run(self, ctx: RunContext) -> None:
        apt_install(ctx.runner, ctx.root, list(self.packages_for(ctx)))
        self.configure(ctx)
        enable_units(ctx.runner, ctx.root, self.units)

    # helpers

    def chroot(self, ctx: RunContext, argv: Sequence[str], **kwargs) -> CmdResult:
        return chroot_cmd(ctx.runner, ctx.root, argv, **kwargs)

    def write(self, ctx: RunContext, rel: str, contents: str, *, mode: Optional[int] = None) -> Path:
        return write_file(ctx.root, rel, contents, mode=mode, dry_run=ctx.dry_run)

    def read(self, ctx: RunContext, rel: str) -> Optional[str]:
        """Contents of a file in the staged root, or None in dry-run/when absent."""
        p = target_path(ctx.root, rel)
        if ctx.dry_run or not p.exists():
            return None
        return p.read_text(encoding="utf-8")

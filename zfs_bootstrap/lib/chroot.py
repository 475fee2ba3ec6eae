from __future__ import annotations

import logging
from typing import Mapping, Sequence

from .command import CmdResult, CommandRunner

logger = logging.getLogger(__name__)

BIND_MOUNTS = ("/dev", "/proc", "/sys")


def chroot_cmd(
    runner: CommandRunner,
    target_root: str,
    argv: Sequence[str],
    *,
    check: bool = True,
    env: Mapping[str, str] | None = None,
    input_text: str | None = None,
) -> CmdResult:
    """Run a command inside target root."""

    return runner.run(["chroot", target_root, *argv], check=check, env=env, input_text=input_text)


def mount_chroot_binds(runner: CommandRunner, target_root: str) -> None:
    # Recursive + private so unmounting the target never propagates to the host
    for src in BIND_MOUNTS:
        dst = f"{target_root}{src}"
        runner.run(["mkdir", "-p", dst])
        runner.run(["mount", "--make-private", "--rbind", src, dst])
    logger.info("Chroot session open on %s", target_root)


def mount_run_tmpfs(runner: CommandRunner, target_root: str) -> None:
    run_dir = f"{target_root}/run"
    runner.run(["mkdir", "-p", run_dir])
    runner.run(["mount", "-t", "tmpfs", "tmpfs", run_dir])
    runner.run(["mkdir", "-p", f"{run_dir}/lock"])

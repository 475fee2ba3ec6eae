from __future__ import annotations

import logging
import re

from .chroot import chroot_cmd
from .command import CommandRunner

logger = logging.getLogger(__name__)

_CMDLINE_RE = re.compile(r"^GRUB_CMDLINE_LINUX=.*$", re.MULTILINE)


def set_grub_cmdline(grub_default: str, cmdline: str) -> str:
    """Replace GRUB_CMDLINE_LINUX in /etc/default/grub contents, or append it."""

    line = f'GRUB_CMDLINE_LINUX="{cmdline}"'
    if _CMDLINE_RE.search(grub_default):
        return _CMDLINE_RE.sub(lambda _m: line, grub_default, count=1)
    if grub_default and not grub_default.endswith("\n"):
        grub_default += "\n"
    return grub_default + line + "\n"


def install_grub_efi(
    runner: CommandRunner,
    *,
    target_root: str,
    bootloader_id: str = "debian",
) -> None:
    """Install GRUB for x86_64 EFI targets."""

    # Assumes /boot/efi is mounted in target.
    chroot_cmd(runner, target_root, ["update-grub"])
    chroot_cmd(
        runner,
        target_root,
        [
            "grub-install",
            "--target=x86_64-efi",
            "--efi-directory=/boot/efi",
            f"--bootloader-id={bootloader_id}",
            "--recheck",
            "--no-floppy",
        ],
    )
    logger.info("GRUB EFI installed")

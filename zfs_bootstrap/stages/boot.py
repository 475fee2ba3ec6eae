from __future__ import annotations

import logging

from ..context import RunContext
from ..lib.block import get_uuid
from ..lib.bootloader import install_grub_efi, set_grub_cmdline
from ..lib.files import append_line, make_dir
from ..lib.pkg import apt_install
from ..lib.zfs import BOOT_POOL
from .base import ChrootStage

logger = logging.getLogger(__name__)

BPOOL_IMPORT_UNIT = f"""[Unit]
DefaultDependencies=no
Before=zfs-import-scan.service
Before=zfs-import-cache.service

[Service]
Type=oneshot
RemainAfterExit=yes
ExecStart=/sbin/zpool import -N -o cachefile=none {BOOT_POOL}
# Work-around to preserve zpool cache:
ExecStartPre=-/bin/mv /etc/zfs/zpool.cache /etc/zfs/preboot_zpool.cache
ExecStartPost=-/bin/mv /etc/zfs/preboot_zpool.cache /etc/zfs/zpool.cache

[Install]
WantedBy=zfs-import.target
"""


def efi_fstab_line(uuid: str) -> str:
    return f"/dev/disk/by-uuid/{uuid} /boot/efi vfat defaults 0 0"


class ZfsToolsStage(ChrootStage):
    stage_id = "zfs_tools"
    packages = ("dpkg-dev", "linux-headers-amd64", "zfs-initramfs", "zfsutils-linux")

    def configure(self, ctx: RunContext) -> None:
        self.write(ctx, "/etc/dkms/zfs.conf", "REMAKE_INITRD=yes\n")


class EfiMountStage(ChrootStage):
    stage_id = "efi_mount"
    packages = ("dosfstools",)

    def configure(self, ctx: RunContext) -> None:
        efi_part = ctx.require_target().efi_part
        make_dir(ctx.root, "/boot/efi", dry_run=ctx.dry_run)
        uuid = get_uuid(ctx.runner, efi_part)
        append_line(ctx.root, "/etc/fstab", efi_fstab_line(uuid), dry_run=ctx.dry_run)
        self.chroot(ctx, ["mount", "/boot/efi"])
        apt_install(ctx.runner, ctx.root, ["grub-efi-amd64", "shim-signed"])


class BootPoolImportStage(ChrootStage):
    stage_id = "bpool_import"
    units = ("zfs-import-bpool.service",)

    def configure(self, ctx: RunContext) -> None:
        self.write(ctx, "/etc/systemd/system/zfs-import-bpool.service", BPOOL_IMPORT_UNIT)


class TmpMountStage(ChrootStage):
    stage_id = "tmp_mount"
    units = ("tmp.mount",)

    def configure(self, ctx: RunContext) -> None:
        self.chroot(ctx, ["cp", "/usr/share/systemd/tmp.mount", "/etc/systemd/system/"])


class GrubStage(ChrootStage):
    stage_id = "grub"

    def configure(self, ctx: RunContext) -> None:
        self.chroot(ctx, ["grub-probe", "/boot"])
        self.chroot(ctx, ["update-initramfs", "-c", "-k", "all"])

        cmdline = f"root=ZFS={ctx.config.root_dataset}"
        current = self.read(ctx, "/etc/default/grub")
        if current is None and ctx.dry_run:
            logger.info("Would set GRUB_CMDLINE_LINUX=%s", cmdline)
        else:
            self.write(ctx, "/etc/default/grub", set_grub_cmdline(current or "", cmdline))

        install_grub_efi(ctx.runner, target_root=ctx.root)

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Paths:
    staging_root: str = "/mnt"
    zpool_cache: str = "/etc/zfs/zpool.cache"
    zfs_list_cache_dir: str = "/etc/zfs/zfs-list.cache"
    lock_dir: str = "/run/lock"
    record_default: str = "/var/lib/zfs-bootstrap/run.json"
    log_default: str = "/var/log/zfs-bootstrap.log"


PATHS = Paths()

# Tools the host must provide before anything destructive happens.
REQUIRED_COMMANDS = (
    "blkid",
    "chroot",
    "dd",
    "debootstrap",
    "findmnt",
    "lsblk",
    "mkfs.fat",
    "mount",
    "partprobe",
    "sgdisk",
    "umount",
    "wipefs",
    "zfs",
    "zpool",
)

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Tuple

from ..errors import ResourceError
from .block import is_block_device
from .command import CommandRunner
from .wait import WaitTimeout, poll_until

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PartitionSpec:
    number: int
    typecode: str
    label: str
    size: Optional[str]  # sgdisk size suffix; None = rest of the disk
    start: str = "0"

    @property
    def sgdisk_new(self) -> str:
        end = f"+{self.size}" if self.size else "0"
        return f"--new={self.number}:{self.start}:{end}"


# EFI system, ZFS boot (bpool), ZFS root (rpool).
EFI_PARTITION = PartitionSpec(1, "EF00", "EFI System", "512M", start="1M")
BOOT_PARTITION = PartitionSpec(2, "BF01", "ZFS Boot Partition", "2G")
ROOT_PARTITION = PartitionSpec(3, "BF00", "ZFS Root Partition", None)

PARTITION_PLAN: Tuple[PartitionSpec, ...] = (EFI_PARTITION, BOOT_PARTITION, ROOT_PARTITION)

NODE_TIMEOUT_S = 15.0


def partition_path(disk: str, n: int) -> str:
    # nvme/mmcblk/loop devices use a p separator
    if disk.endswith(tuple("0123456789")):
        return f"{disk}p{n}"
    return f"{disk}{n}"


def wipe_disk(runner: CommandRunner, disk: str, *, zero_fill: bool = True) -> None:
    """Destroy signatures and partition tables, then write a fresh GPT."""

    logger.info("Wiping partition table and signatures on %s", disk)
    runner.run(["wipefs", "--all", disk])
    runner.run(["sgdisk", "--zap-all", disk])

    if zero_fill:
        # dd always exits non-zero once it hits the end of the device.
        runner.run(["dd", "if=/dev/zero", f"of={disk}", "bs=1M", "status=progress"], check=False)

    logger.info("Creating a new partition table on %s", disk)
    runner.run(["sgdisk", "-o", disk])


def create_partition(runner: CommandRunner, disk: str, spec: PartitionSpec) -> str:
    logger.info("Creating partition %d (%s) on %s", spec.number, spec.label, disk)
    runner.run(
        [
            "sgdisk",
            spec.sgdisk_new,
            f"--typecode={spec.number}:{spec.typecode}",
            f"--change-name={spec.number}:{spec.label}",
            disk,
        ]
    )
    return partition_path(disk, spec.number)


def wait_for_node(path: str, *, timeout: Optional[float] = None, dry_run: bool = False) -> None:
    if dry_run:
        logger.info("Would wait for %s", path)
        return
    try:
        poll_until(
            lambda: is_block_device(path),
            timeout=NODE_TIMEOUT_S if timeout is None else timeout,
            what=f"device node {path}",
        )
    except WaitTimeout as e:
        raise ResourceError(f"Partition {path} does not exist") from e


def format_esp(runner: CommandRunner, part: str) -> None:
    logger.info("Formatting the EFI partition (%s) as FAT32", part)
    runner.run(["mkfs.fat", "-F", "32", "-n", "EFI", part])


def reread(runner: CommandRunner, disk: str) -> None:
    runner.run(["partprobe", disk])

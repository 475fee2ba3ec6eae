from __future__ import annotations

import json
import logging
import os
import stat
from dataclasses import dataclass
from typing import List, Optional, Sequence

from ..errors import ResourceError
from .command import CommandRunner

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DiskInfo:
    name: str
    path: str
    size: int
    type: str = "disk"


def get_uuid(runner: CommandRunner, dev: str) -> str:
    """Return filesystem UUID for a block device."""

    r = runner.run(["blkid", "-s", "UUID", "-o", "value", dev])
    uuid = (r.stdout or "").strip()
    if not uuid and not runner.dry_run:
        raise ResourceError(f"Unable to determine UUID for {dev}")
    return uuid or "DRY-RUN-UUID"


def canonical_path(path: str) -> str:
    return os.path.realpath(path)


def is_block_device(path: str) -> bool:
    if not path:
        return False
    try:
        return stat.S_ISBLK(os.stat(path).st_mode)
    except OSError:
        return False


def parse_lsblk_disks(payload: str) -> List[DiskInfo]:
    if not payload.strip():
        return []
    data = json.loads(payload)
    disks: List[DiskInfo] = []
    for dev in data.get("blockdevices") or []:
        if dev.get("type") != "disk":
            continue
        name = str(dev.get("name"))
        disks.append(
            DiskInfo(
                name=name,
                path=str(dev.get("path") or f"/dev/{name}"),
                size=int(dev.get("size") or 0),
            )
        )
    return disks


def list_disks(runner: CommandRunner) -> List[DiskInfo]:
    r = runner.run(["lsblk", "--json", "--bytes", "--nodeps", "--output", "NAME,PATH,SIZE,TYPE"])
    return parse_lsblk_disks(r.stdout or "")


def pick_largest(disks: Sequence[DiskInfo]) -> Optional[DiskInfo]:
    """Largest disk by size; the first listed wins a tie."""
    best: Optional[DiskInfo] = None
    for d in disks:
        if best is None or d.size > best.size:
            best = d
    return best


def mountpoints(runner: CommandRunner, disk: str) -> List[str]:
    """Mountpoints of the disk and all of its partitions (swap shows as [SWAP])."""

    r = runner.run(["lsblk", "--noheadings", "--raw", "--output", "MOUNTPOINT", disk])
    return [ln.strip() for ln in (r.stdout or "").splitlines() if ln.strip()]


def human_size(size: int) -> str:
    value = float(size)
    for unit in ("B", "K", "M", "G"):
        if value < 1024:
            return f"{value:.1f}{unit}"
        value /= 1024
    return f"{value:.1f}T"

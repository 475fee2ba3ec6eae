from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional

from .config import InstallConfig
from .errors import DiskError
from .lib.command import CommandRunner
from .lib.env import PATHS
from .lib.lock import DeviceLock
from .lib.storage import BOOT_PARTITION, EFI_PARTITION, ROOT_PARTITION, partition_path


@dataclass(frozen=True)
class TargetDevice:
    """The confirmed install disk. Immutable once the user said yes."""

    disk: str

    @property
    def efi_part(self) -> str:
        return partition_path(self.disk, EFI_PARTITION.number)

    @property
    def boot_part(self) -> str:
        return partition_path(self.disk, BOOT_PARTITION.number)

    @property
    def root_part(self) -> str:
        return partition_path(self.disk, ROOT_PARTITION.number)


@dataclass
class RunContext:
    """Everything a step may read or record. Passed explicitly to every step."""

    config: InstallConfig
    runner: CommandRunner
    confirm: Callable[[str], str] = input
    lock_dir: str = PATHS.lock_dir
    host_zpool_cache: str = PATHS.zpool_cache
    target: Optional[TargetDevice] = None
    lock: Optional[DeviceLock] = None
    record: Dict[str, Any] = field(default_factory=dict)

    @property
    def root(self) -> str:
        return self.config.staging_root

    @property
    def dry_run(self) -> bool:
        return self.runner.dry_run

    def require_target(self) -> TargetDevice:
        if self.target is None:
            raise DiskError("Target disk not resolved; 10_resolve_disk has not run")
        return self.target

    def decide(self, key: str, value: Any) -> None:
        self.record.setdefault("execution", {}).setdefault("decisions", {})[key] = value

    def release(self) -> None:
        if self.lock is not None:
            self.lock.release()

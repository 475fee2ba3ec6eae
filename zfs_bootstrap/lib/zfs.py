from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

from ..errors import ResourceError
from .command import CommandRunner

logger = logging.getLogger(__name__)


BOOT_POOL = "bpool"
ROOT_POOL = "rpool"


@dataclass(frozen=True)
class PoolSpec:
    name: str
    device: str
    altroot: str
    pool_props: Dict[str, str] = field(default_factory=dict)
    fs_props: Dict[str, str] = field(default_factory=dict)

    @property
    def encrypted(self) -> bool:
        return self.fs_props.get("encryption", "off") != "off"

    def argv(self) -> List[str]:
        argv = ["zpool", "create", "-f"]
        for k, v in self.pool_props.items():
            argv += ["-o", f"{k}={v}"]
        for k, v in self.fs_props.items():
            argv += ["-O", f"{k}={v}"]
        argv += ["-R", self.altroot, self.name, self.device]
        return argv


_COMMON_POOL_PROPS = {"ashift": "12", "autotrim": "on"}
_COMMON_FS_PROPS = {
    "acltype": "posixacl",
    "xattr": "sa",
    "compression": "lz4",
    "normalization": "formD",
    "relatime": "on",
}


def boot_pool_spec(device: str, altroot: str, *, cachefile: str) -> PoolSpec:
    return PoolSpec(
        name=BOOT_POOL,
        device=device,
        altroot=altroot,
        pool_props={**_COMMON_POOL_PROPS, "compatibility": "grub2", "cachefile": cachefile},
        fs_props={"devices": "off", **_COMMON_FS_PROPS, "canmount": "off", "mountpoint": "/boot"},
    )


def root_pool_spec(device: str, altroot: str) -> PoolSpec:
    return PoolSpec(
        name=ROOT_POOL,
        device=device,
        altroot=altroot,
        pool_props=dict(_COMMON_POOL_PROPS),
        fs_props={
            **_COMMON_FS_PROPS,
            "encryption": "on",
            "keyformat": "passphrase",
            "keylocation": "prompt",
            "canmount": "off",
            "mountpoint": "/",
        },
    )


def create_pool(runner: CommandRunner, spec: PoolSpec, *, passphrase: Optional[str] = None) -> None:
    logger.info("Creating ZFS pool %s on %s", spec.name, spec.device)
    if spec.encrypted:
        if not passphrase:
            raise ValueError(f"pool {spec.name} is encrypted but no passphrase was given")
        # zpool reads the key from stdin when it is not a tty
        runner.run(spec.argv(), input_text=passphrase + "\n")
    else:
        runner.run(spec.argv())


def imported_pools(runner: CommandRunner) -> List[str]:
    r = runner.run(["zpool", "list", "-H", "-o", "name"], check=False)
    if not r.ok:
        return []
    return [ln.strip() for ln in (r.stdout or "").splitlines() if ln.strip()]


def pool_member_devices(runner: CommandRunner) -> List[str]:
    """Full device paths of every vdev of every imported pool."""

    r = runner.run(["zpool", "list", "-v", "-H", "-P"], check=False)
    devices: List[str] = []
    if not r.ok:
        return devices
    for ln in (r.stdout or "").splitlines():
        first = ln.strip().split("\t")[0].strip()
        if first.startswith("/dev/"):
            devices.append(first)
    return devices


def export_all(runner: CommandRunner) -> bool:
    return runner.run(["zpool", "export", "-a"], check=False).ok


@dataclass(frozen=True)
class DatasetSpec:
    name: str
    props: Dict[str, str] = field(default_factory=dict)
    mount: bool = False  # canmount=noauto datasets the later steps need live
    mode: Optional[int] = None  # chmod of the mounted directory

    @property
    def parent(self) -> str:
        return self.name.rsplit("/", 1)[0]

    @property
    def pool(self) -> str:
        return self.name.split("/", 1)[0]

    def argv(self) -> List[str]:
        argv = ["zfs", "create"]
        for k, v in self.props.items():
            argv += ["-o", f"{k}={v}"]
        argv.append(self.name)
        return argv


def dataset_layout(release: str) -> List[DatasetSpec]:
    """The fixed dataset hierarchy, parents first."""

    return [
        DatasetSpec(f"{ROOT_POOL}/ROOT", {"canmount": "off", "mountpoint": "none"}),
        DatasetSpec(f"{BOOT_POOL}/BOOT", {"canmount": "off", "mountpoint": "none"}),
        DatasetSpec(f"{ROOT_POOL}/ROOT/{release}", {"canmount": "noauto", "mountpoint": "/"}, mount=True),
        DatasetSpec(f"{BOOT_POOL}/BOOT/{release}", {"mountpoint": "/boot"}),
        DatasetSpec(f"{ROOT_POOL}/home"),
        DatasetSpec(f"{ROOT_POOL}/home/root", {"mountpoint": "/root"}, mode=0o700),
        DatasetSpec(f"{ROOT_POOL}/var", {"canmount": "off"}),
        DatasetSpec(f"{ROOT_POOL}/var/lib", {"canmount": "off"}),
        DatasetSpec(f"{ROOT_POOL}/var/log"),
        DatasetSpec(f"{ROOT_POOL}/var/spool"),
        DatasetSpec(f"{ROOT_POOL}/tmp", {"com.sun:auto-snapshot": "false"}, mode=0o1777),
    ]


def dataset_exists(runner: CommandRunner, name: str) -> bool:
    if runner.dry_run:
        return True
    return runner.run(["zfs", "list", "-H", "-o", "name", name], check=False).ok


class DatasetBuilder:
    """Creates datasets, refusing any whose parent it has not seen yet."""

    def __init__(self, runner: CommandRunner) -> None:
        self.runner = runner
        self.created: List[str] = []

    def create(self, spec: DatasetSpec) -> None:
        if spec.parent != spec.pool and spec.parent not in self.created:
            raise ResourceError(f"Parent dataset {spec.parent} must be created before {spec.name}")

        logger.info("Creating dataset %s", spec.name)
        self.runner.run(spec.argv())
        if not dataset_exists(self.runner, spec.name):
            raise ResourceError(f"Dataset {spec.name} does not exist after creation")
        self.created.append(spec.name)

        if spec.mount:
            self.runner.run(["zfs", "mount", spec.name])

    def create_all(self, specs: Sequence[DatasetSpec]) -> List[str]:
        for spec in specs:
            self.create(spec)
        return list(self.created)


def set_property(runner: CommandRunner, dataset: str, prop: str, value: str) -> None:
    runner.run(["zfs", "set", f"{prop}={value}", dataset])

import functools
import json

import pytest

from conftest import FakeRunner
from zfs_bootstrap import main as main_mod
from zfs_bootstrap.context import RunContext
from zfs_bootstrap.errors import ConfirmationDeclined
from zfs_bootstrap.lib import block, storage
from zfs_bootstrap.pipeline import run_pipeline
from zfs_bootstrap.stages import network
from zfs_bootstrap.state_store import load_record
from zfs_bootstrap.steps import PreflightStep, step_30_create_pools

GB = 1000 ** 3


class HostSimulator:
    """Answers the probes a real host would, keyed on the command."""

    def __init__(self, root):
        self.root = root
        self.pools = []

    def __call__(self, argv):
        if argv[0] == "lsblk" and "--json" in argv:
            return 0, json.dumps(
                {
                    "blockdevices": [
                        {"name": "sda", "path": "/dev/sda", "size": 10 * GB, "type": "disk"},
                        {"name": "vdb", "path": "/dev/vdb", "size": 64 * GB, "type": "disk"},
                    ]
                }
            )
        if argv[:2] == ["zpool", "create"]:
            self.pools.append(argv[-2])
        if argv[:5] == ["zpool", "list", "-H", "-o", "name"]:
            return 0, "\n".join(self.pools)
        if argv[0] == "blkid" and "UUID" in argv:
            return 0, "1234-ABCD\n"
        if argv[0] == "findmnt":
            return 0, "\n".join(
                [
                    f"{self.root} zfs",
                    f"{self.root}/boot zfs",
                    f"{self.root}/run tmpfs",
                    f"{self.root}/dev devtmpfs",
                    f"{self.root}/proc proc",
                    f"{self.root}/sys sysfs",
                    f"{self.root}/boot/efi vfat",
                ]
            )
        return None


@pytest.fixture
def host(monkeypatch, staging, tmp_path):
    monkeypatch.setattr(block, "canonical_path", lambda p: p)
    monkeypatch.setattr(block, "is_block_device", lambda p: True)
    monkeypatch.setattr(storage, "is_block_device", lambda p: True)
    monkeypatch.setattr(step_30_create_pools, "is_block_device", lambda p: True)

    resolv = tmp_path / "resolv.conf"
    resolv.write_text("nameserver 192.0.2.1\n")
    monkeypatch.setattr(network, "HOST_RESOLV_CONF", str(resolv))
    (tmp_path / "host-zpool.cache").write_bytes(b"cache")

    # what debootstrap and the mounted datasets would leave behind
    for d in ("root", "tmp", "etc", "usr/bin", "usr/share/zoneinfo/Etc"):
        (staging / d).mkdir(parents=True, exist_ok=True)
    (staging / "usr/share/zoneinfo/Etc/UTC").write_text("TZif")

    return HostSimulator(str(staging))


def _steps(staging):
    steps = main_mod.build_steps()
    steps[0] = PreflightStep(
        geteuid=lambda: 0,
        which=lambda c: f"/usr/bin/{c}",
        zoneinfo_dir=str(staging / "usr/share/zoneinfo"),
    )
    return steps


def test_full_install(make_ctx, host, staging):
    runner = FakeRunner(handler=host)

    def zed_writes_cache(argv):
        for pool in ("bpool", "rpool"):
            (staging / "etc/zfs/zfs-list.cache" / pool).write_text(f"{pool}\t{staging}/boot\ton\n")

    runner.on_spawn = zed_writes_cache
    ctx = make_ctx(runner=runner, target_disk="auto")

    result = run_pipeline(ctx=ctx, steps=_steps(staging))
    ctx.release()

    assert result.ran_steps == [
        "05_preflight",
        "10_resolve_disk",
        "20_partition",
        "30_create_pools",
        "35_create_datasets",
        "40_install_base",
        "50_configure_system",
        "60_zfs_cache",
        "90_teardown",
    ]
    assert ctx.target.disk == "/dev/vdb"
    assert ctx.record["execution"].get("failed_step") is None
    assert (staging / "etc/zfs/zfs-list.cache/rpool").read_text() == "rpool\t/boot\ton\n"

    umounts = [c[-1] for c in runner.commands("umount")]
    assert umounts == [f"{staging}/boot/efi", f"{staging}/sys", f"{staging}/proc", f"{staging}/dev", f"{staging}/run"]
    export = runner.calls.index(["zpool", "export", "-a"])
    assert export > max(i for i, c in enumerate(runner.calls) if c[0] == "umount")

    # destructive commands only touch the chosen disk
    for argv in runner.commands("sgdisk") + runner.commands("wipefs"):
        assert argv[-1] == "/dev/vdb"


def test_decline_runs_nothing_destructive(make_ctx, host, staging):
    runner = FakeRunner(handler=host)
    ctx = make_ctx(runner=runner, confirm=lambda _p: "no")
    with pytest.raises(ConfirmationDeclined):
        run_pipeline(ctx=ctx, steps=_steps(staging))
    ctx.release()

    assert ctx.record["execution"]["failed_step"] == "10_resolve_disk"
    for name in ("wipefs", "sgdisk", "dd", "zpool", "debootstrap"):
        assert not [c for c in runner.commands(name) if c[:2] != ["zpool", "list"]], name


def test_run_saves_record_on_failure(tmp_path, host, staging, monkeypatch):
    monkeypatch.setattr(main_mod, "RunContext", functools.partial(RunContext, lock_dir=str(tmp_path / "lock")))
    conf = tmp_path / "install.conf"
    conf.write_text(
        f"TARGET_DISK=/dev/sda\nZFS_PASSPHRASE=pw\nROOT_PASSWORD=topsecret\nSTAGING_ROOT={staging}\n",
        encoding="utf-8",
    )
    record = tmp_path / "run.yaml"
    with pytest.raises(ConfirmationDeclined):
        main_mod.run(
            config_path=str(conf),
            record_path=str(record),
            runner=FakeRunner(handler=host),
            confirm=lambda _p: "nope",
            steps=_steps(staging)[:2],
        )
    saved = load_record(str(record))
    assert saved["execution"]["failed_step"] == "10_resolve_disk"
    assert saved["execution"]["completed_steps"] == ["05_preflight"]
    assert saved["config"]["root_password"] == "***"
    assert "topsecret" not in record.read_text()

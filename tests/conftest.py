from __future__ import annotations

from typing import Callable, List, Optional, Sequence, Tuple

import pytest

from zfs_bootstrap.config import InstallConfig
from zfs_bootstrap.context import RunContext
from zfs_bootstrap.errors import CommandError
from zfs_bootstrap.lib.command import CmdResult

Handler = Callable[[List[str]], Optional[Tuple[int, str]]]


class FakeProcess:
    def __init__(self, argv: List[str]) -> None:
        self.argv = argv
        self.stopped = False

    def stop(self, timeout: float = 5.0) -> None:
        self.stopped = True


class FakeRunner:
    """Records every argv; ``handler`` may return (returncode, stdout) per call."""

    def __init__(self, *, dry_run: bool = False, handler: Optional[Handler] = None) -> None:
        self.dry_run = dry_run
        self.handler = handler
        self.calls: List[List[str]] = []
        self.inputs: List[Optional[str]] = []
        self.spawned: List[FakeProcess] = []
        self.on_spawn: Optional[Callable[[List[str]], None]] = None

    def run(self, argv: Sequence[str], *, check: bool = True, env=None, input_text=None) -> CmdResult:
        argv = list(argv)
        self.calls.append(argv)
        self.inputs.append(input_text)
        rc, out = 0, ""
        if self.handler is not None:
            res = self.handler(argv)
            if res is not None:
                rc, out = res
        if check and rc != 0:
            raise CommandError(argv, rc, "")
        return CmdResult(argv=argv, returncode=rc, stdout=out, stderr="")

    def spawn(self, argv: Sequence[str]) -> FakeProcess:
        proc = FakeProcess(list(argv))
        self.spawned.append(proc)
        if self.on_spawn is not None:
            self.on_spawn(proc.argv)
        return proc

    def commands(self, name: str) -> List[List[str]]:
        """Calls of ``name`` on the host or inside a chroot, chroot prefix removed."""
        out = []
        for argv in self.calls:
            if argv[0] == "chroot" and len(argv) > 2:
                argv = argv[2:]
            if argv[0] == name:
                out.append(argv)
        return out


@pytest.fixture
def fake_runner():
    return FakeRunner()


@pytest.fixture
def staging(tmp_path):
    root = tmp_path / "target"
    root.mkdir()
    return root


@pytest.fixture
def make_config(staging):
    def _make(**overrides) -> InstallConfig:
        raw = {
            "TARGET_DISK": "/dev/sda",
            "ZFS_PASSPHRASE": "correct horse",
            "STAGING_ROOT": str(staging),
            "ZED_TIMEOUT": "0.05",
        }
        raw.update({k.upper(): v for k, v in overrides.items()})
        return InstallConfig.from_mapping(raw)

    return _make


@pytest.fixture
def make_ctx(tmp_path, make_config, fake_runner):
    def _make(runner=None, confirm=lambda _prompt: "yes", **overrides) -> RunContext:
        return RunContext(
            config=make_config(**overrides),
            runner=runner or fake_runner,
            confirm=confirm,
            lock_dir=str(tmp_path / "lock"),
            host_zpool_cache=str(tmp_path / "host-zpool.cache"),
            record={"execution": {}},
        )

    return _make

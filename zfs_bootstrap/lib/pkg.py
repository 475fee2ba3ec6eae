from __future__ import annotations

import logging
from typing import Sequence

from .chroot import chroot_cmd
from .command import CommandRunner

logger = logging.getLogger(__name__)

APT_ENV = {"DEBIAN_FRONTEND": "noninteractive"}


def debootstrap_rootfs(
    runner: CommandRunner,
    *,
    target_root: str,
    suite: str = "bookworm",
    mirror: str = "https://deb.debian.org/debian",
    arch: str | None = "amd64",
) -> None:
    argv = ["debootstrap"]
    if arch:
        argv.append(f"--arch={arch}")
    argv += [suite, target_root, mirror]
    runner.run(argv)


def apt_update(runner: CommandRunner, target_root: str) -> None:
    chroot_cmd(runner, target_root, ["apt-get", "update"], env=APT_ENV)


def apt_install(runner: CommandRunner, target_root: str, packages: Sequence[str]) -> None:
    if not packages:
        return
    chroot_cmd(runner, target_root, ["apt-get", "install", "-y", *packages], env=APT_ENV)


def enable_units(runner: CommandRunner, target_root: str, units: Sequence[str]) -> None:
    for unit in units:
        chroot_cmd(runner, target_root, ["systemctl", "enable", unit])


def render_sources_list(*, release: str, mirror: str) -> str:
    mirror = mirror.rstrip("/")
    return (
        f"deb {mirror} {release} main contrib\n"
        f"deb {mirror} {release}-updates main contrib\n"
        f"deb https://security.debian.org/debian-security {release}-security main contrib\n"
    )


def host_apt_update(runner: CommandRunner) -> None:
    runner.run(["apt-get", "update"], env=APT_ENV)


def host_apt_install(runner: CommandRunner, packages: Sequence[str]) -> None:
    if not packages:
        return
    runner.run(["apt-get", "install", "-y", *packages], env=APT_ENV)


def add_component(sources: str, component: str) -> str:
    """Add ``component`` to every deb/deb-src line and deb822 ``Components:`` field.

    Lines that already carry it are left alone, as are comments.
    """

    out = []
    for line in sources.splitlines():
        stripped = line.strip()
        words = stripped.split()
        if words and words[0] in ("deb", "deb-src") and component not in words[1:]:
            line = line.rstrip() + f" {component}"
        elif stripped.lower().startswith("components:") and component not in words[1:]:
            line = line.rstrip() + f" {component}"
        out.append(line)
    text = "\n".join(out)
    if sources.endswith("\n"):
        text += "\n"
    return text

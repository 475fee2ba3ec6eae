from __future__ import annotations

import logging
import os
import shlex
import shutil
from pathlib import Path
from typing import Callable, Dict

from ..context import RunContext
from ..errors import PreflightError
from ..lib.pkg import add_component, host_apt_install, host_apt_update
from ..pipeline import BaseStep
from .step_05_preflight import ROOT_REQUIRED_MSG

logger = logging.getLogger(__name__)

SUPPORTED_DEBIAN = ("12",)

HOST_PACKAGES = (
    "debootstrap",
    "zfsutils-linux",
    "linux-headers-amd64",
    "gdisk",
    "dosfstools",
    "parted",
)

# zfsutils-linux lives in contrib
HOST_SOURCES = ("etc/apt/sources.list", "etc/apt/sources.list.d/debian.sources")


def parse_os_release(text: str) -> Dict[str, str]:
    values: Dict[str, str] = {}
    for line in text.splitlines():
        line = line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, _, value = line.partition("=")
        try:
            words = shlex.split(value)
        except ValueError:
            words = [value.strip("\"'")]
        values[key] = words[0] if words else ""
    return values


class PrepareHostStep(BaseStep):
    """Turn a stock Debian 12 live system into one that can run the installer."""

    step_id = "00_prepare_host"

    def __init__(self, *, host_root: str = "/", geteuid: Callable[[], int] = os.geteuid) -> None:
        self.host_root = Path(host_root)
        self.geteuid = geteuid

    def check(self, ctx: RunContext) -> None:
        if self.geteuid() != 0:
            raise PreflightError(ROOT_REQUIRED_MSG)

        os_release = self.host_root / "etc/os-release"
        if not os_release.is_file():
            raise PreflightError("Unable to detect the operating system (no /etc/os-release).")
        info = parse_os_release(os_release.read_text(encoding="utf-8"))
        os_id, version = info.get("ID", ""), info.get("VERSION_ID", "")
        if os_id != "debian":
            raise PreflightError(f"Unsupported operating system: {os_id or 'unknown'}.")
        if version not in SUPPORTED_DEBIAN:
            raise PreflightError(f"Unsupported Debian version: {version or 'unknown'}.")
        logger.info("Debian %s detected", version)

    def run(self, ctx: RunContext) -> None:
        logger.info("Adding contrib to the host apt sources")
        for rel in HOST_SOURCES:
            p = self.host_root / rel
            if not p.is_file():
                continue
            current = p.read_text(encoding="utf-8")
            updated = add_component(current, "contrib")
            if updated == current:
                continue
            if ctx.dry_run:
                logger.info("Would add contrib to %s", p)
                continue
            shutil.copy2(p, f"{p}.BAK")
            p.write_text(updated, encoding="utf-8")
            logger.info("Updated %s (backup %s.BAK)", p, p)

        host_apt_update(ctx.runner)
        host_apt_install(ctx.runner, HOST_PACKAGES)
        logger.info("Host packages installed")

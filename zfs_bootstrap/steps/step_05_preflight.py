from __future__ import annotations

import logging
import os
import shutil
from pathlib import Path
from typing import Callable, Optional, Sequence

from ..config import InstallConfig
from ..context import RunContext
from ..errors import PreflightError
from ..lib.env import REQUIRED_COMMANDS
from ..lib.firmware import detect_firmware
from ..pipeline import BaseStep
from ..stages.network import prefix_length

logger = logging.getLogger(__name__)

ROOT_REQUIRED_MSG = "This program must be run as root."

HOST_ZONEINFO = "/usr/share/zoneinfo"


def check_network(cfg: InstallConfig) -> None:
    """Reject malformed static addressing before anything is touched."""
    for address, netmask, version in (
        (cfg.ipv4_address, cfg.ipv4_netmask, 4),
        (cfg.ipv6_address, cfg.ipv6_netmask, 6),
    ):
        if address and netmask and "/" not in address:
            prefix_length(netmask, version=version)


def check_timezone(tz: str, zoneinfo_dir: str = HOST_ZONEINFO) -> None:
    base = Path(zoneinfo_dir)
    zone = base / tz
    if not tz or ".." in Path(tz).parts or tz.startswith("/") or not zone.is_file():
        raise PreflightError(f"Unknown timezone {tz!r}: not found under {base}")


class PreflightStep(BaseStep):
    step_id = "05_preflight"

    def __init__(
        self,
        *,
        commands: Sequence[str] = REQUIRED_COMMANDS,
        geteuid: Callable[[], int] = os.geteuid,
        which: Callable[[str], Optional[str]] = shutil.which,
        zoneinfo_dir: str = HOST_ZONEINFO,
    ) -> None:
        self.commands = tuple(commands)
        self.geteuid = geteuid
        self.which = which
        self.zoneinfo_dir = zoneinfo_dir

    def run(self, ctx: RunContext) -> None:
        cfg = ctx.config
        if self.geteuid() != 0:
            raise PreflightError(ROOT_REQUIRED_MSG)

        missing_cmds = [c for c in self.commands if self.which(c) is None]
        if missing_cmds:
            raise PreflightError(
                "Required command(s) not available: " + ", ".join(missing_cmds) + ". Please install them."
            )

        missing = cfg.missing_required()
        if missing:
            raise PreflightError("Configuration value(s) not set: " + ", ".join(missing))

        # Each of these raises before the disk is touched.
        cfg.ssh_port_number
        check_network(cfg)
        check_timezone(cfg.timezone, self.zoneinfo_dir)

        if detect_firmware() != "efi":
            logger.warning("Live system is not booted via UEFI; grub-install may not register a boot entry")

        logger.info("Preflight passed")

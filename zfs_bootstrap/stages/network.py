from __future__ import annotations

import ipaddress
import logging
import os
import shutil
from typing import List, Sequence

from ..config import InstallConfig
from ..context import RunContext
from ..errors import PreflightError
from ..lib.files import target_path
from .base import ChrootStage

logger = logging.getLogger(__name__)

HOST_RESOLV_CONF = "/etc/resolv.conf"

FALLBACK_NTP = (
    "0.debian.pool.ntp.org",
    "1.debian.pool.ntp.org",
    "2.debian.pool.ntp.org",
    "3.debian.pool.ntp.org",
)


def prefix_length(netmask: str, *, version: int) -> int:
    """Accept a prefix length ("24", "/64") or a dotted IPv4 mask."""

    mask = netmask.strip().lstrip("/")
    try:
        if version == 4 and "." in mask:
            return ipaddress.IPv4Network(f"0.0.0.0/{mask}").prefixlen
        plen = int(mask)
    except ValueError as e:
        raise PreflightError(f"Invalid IPv{version} netmask: {netmask!r}") from e
    if not 0 <= plen <= (32 if version == 4 else 128):
        raise PreflightError(f"Invalid IPv{version} prefix length: {plen}")
    return plen


def _address(address: str, netmask: str, *, version: int) -> str:
    if "/" in address or not netmask:
        return address
    return f"{address}/{prefix_length(netmask, version=version)}"


def render_network(cfg: InstallConfig) -> str:
    lines: List[str] = ["[Match]", f"Name={cfg.interface_name}", "", "[Network]"]
    static = False
    if cfg.ipv4_address:
        lines.append(f"Address={_address(cfg.ipv4_address, cfg.ipv4_netmask, version=4)}")
        static = True
    if cfg.ipv4_gateway:
        lines.append(f"Gateway={cfg.ipv4_gateway}")
    if cfg.ipv6_address:
        lines.append(f"Address={_address(cfg.ipv6_address, cfg.ipv6_netmask, version=6)}")
        static = True
    if cfg.ipv6_gateway:
        lines.append(f"Gateway={cfg.ipv6_gateway}")
    if not static:
        lines.append("DHCP=yes")
    lines += [f"DNS={dns}" for dns in cfg.dns_servers]
    return "\n".join(lines) + "\n"


def render_timesyncd(servers: Sequence[str]) -> str:
    lines = ["[Time]"]
    if servers:
        lines.append("NTP=" + " ".join(servers))
    lines.append("FallbackNTP=" + " ".join(FALLBACK_NTP))
    return "\n".join(lines) + "\n"


class TimesyncStage(ChrootStage):
    stage_id = "timesync"
    packages = ("systemd-timesyncd",)
    units = ("systemd-timesyncd",)

    def configure(self, ctx: RunContext) -> None:
        self.write(ctx, "/etc/systemd/timesyncd.conf", render_timesyncd(ctx.config.ntp_servers))


class NetworkStage(ChrootStage):
    stage_id = "network"
    packages = ("systemd-resolved",)
    units = ("systemd-networkd", "systemd-resolved")

    def configure(self, ctx: RunContext) -> None:
        iface = ctx.config.interface_name
        logger.info("Configuring systemd-networkd for interface %s", iface)
        self.write(ctx, f"/etc/systemd/network/10-{iface}.network", render_network(ctx.config))
        self._seed_stub_resolver(ctx)

    def _seed_stub_resolver(self, ctx: RunContext) -> None:
        # resolv.conf now links into the target's /run; keep apt resolving
        # inside the chroot until reboot by seeding it from the host.
        stub = target_path(ctx.root, "/run/systemd/resolve/stub-resolv.conf")
        if ctx.dry_run:
            logger.info("Would seed %s from %s", stub, HOST_RESOLV_CONF)
            return
        if not os.path.exists(HOST_RESOLV_CONF):
            logger.warning("%s missing on host; name resolution in the chroot may fail", HOST_RESOLV_CONF)
            return
        stub.parent.mkdir(parents=True, exist_ok=True)
        shutil.copyfile(HOST_RESOLV_CONF, stub)

from __future__ import annotations

import logging
from typing import List

from ..context import RunContext
from ..errors import InstallerError
from ..lib.files import target_path
from ..lib.pkg import apt_update, render_sources_list
from .base import ChrootStage

logger = logging.getLogger(__name__)


def host_names(hostname: str, fqdn: str) -> List[str]:
    names: List[str] = []
    for n in (hostname.split(".")[0], hostname, fqdn):
        if n and n not in names:
            names.append(n)
    return names


def render_hosts(hostname: str, fqdn: str) -> str:
    names = " ".join(host_names(hostname, fqdn))
    return (
        f"127.0.0.1   localhost {names}\n"
        "\n"
        f"::1         localhost ip6-localhost ip6-loopback {names}\n"
        "ff02::1     ip6-allnodes\n"
        "ff02::2     ip6-allrouters\n"
    )


def render_keyboard(model: str, layout: str, variant: str, options: str) -> str:
    return (
        f'XKBMODEL="{model}"\n'
        f'XKBLAYOUT="{layout}"\n'
        f'XKBVARIANT="{variant}"\n'
        f'XKBOPTIONS="{options}"\n'
        "\n"
        'BACKSPACE="guess"\n'
    )


def locale_gen_line(lang: str) -> str:
    charset = lang.split(".", 1)[1] if "." in lang else "UTF-8"
    return f"{lang} {charset}"


class AptSourcesStage(ChrootStage):
    stage_id = "apt_sources"

    def configure(self, ctx: RunContext) -> None:
        cfg = ctx.config
        self.write(ctx, "/etc/apt/sources.list", render_sources_list(release=cfg.debian_release, mirror=cfg.debian_mirror))
        apt_update(ctx.runner, ctx.root)


class KernelStage(ChrootStage):
    stage_id = "kernel"
    packages = ("linux-image-amd64",)


class InitSystemStage(ChrootStage):
    stage_id = "init_system"
    packages = ("systemd-sysv",)


class LocaleStage(ChrootStage):
    stage_id = "locale"
    packages = ("locales", "console-setup")

    def configure(self, ctx: RunContext) -> None:
        lang = ctx.config.lang
        self.write(ctx, "/etc/locale.gen", locale_gen_line(lang) + "\n")
        self.chroot(ctx, ["locale-gen"])
        argv = ["update-locale", f"LANG={lang}"]
        if ctx.config.language:
            argv.append(f"LANGUAGE={ctx.config.language}")
        self.chroot(ctx, argv)


class KeyboardStage(ChrootStage):
    stage_id = "keyboard"
    packages = ("keyboard-configuration",)

    def configure(self, ctx: RunContext) -> None:
        cfg = ctx.config
        self.write(
            ctx,
            "/etc/default/keyboard",
            render_keyboard(cfg.xkbmodel, cfg.xkblayout, cfg.xkbvariant, cfg.xkboptions),
        )
        # reads the file just written back into debconf
        self.chroot(ctx, ["dpkg-reconfigure", "-f", "noninteractive", "keyboard-configuration"])


class HostnameStage(ChrootStage):
    stage_id = "hostname"

    def configure(self, ctx: RunContext) -> None:
        self.write(ctx, "/etc/hostname", host_names(ctx.config.hostname, "")[0] + "\n")


class HostsStage(ChrootStage):
    stage_id = "hosts"

    def configure(self, ctx: RunContext) -> None:
        self.write(ctx, "/etc/hosts", render_hosts(ctx.config.hostname, ctx.config.fqdn))


class TimezoneStage(ChrootStage):
    stage_id = "timezone"
    packages = ("tzdata",)

    def configure(self, ctx: RunContext) -> None:
        tz = ctx.config.timezone
        zoneinfo = f"/usr/share/zoneinfo/{tz}"
        if not ctx.dry_run and not target_path(ctx.root, zoneinfo).exists():
            raise InstallerError(f"Unknown timezone {tz!r}: {zoneinfo} missing in target")
        self.write(ctx, "/etc/timezone", tz + "\n")
        self.chroot(ctx, ["ln", "-sf", zoneinfo, "/etc/localtime"])
        self.chroot(ctx, ["dpkg-reconfigure", "-f", "noninteractive", "tzdata"])

from __future__ import annotations

import logging
import re
from typing import Sequence

from ..context import RunContext
from ..lib.files import make_dir
from .base import ChrootStage

logger = logging.getLogger(__name__)

SSHD_CONFIG = "/etc/ssh/sshd_config"


def set_sshd_option(text: str, key: str, value: str) -> str:
    """Set ``key value``, replacing the first (possibly commented) occurrence."""

    line = f"{key} {value}"
    pattern = re.compile(rf"^[ \t]*#?[ \t]*{re.escape(key)}\b.*$", re.MULTILINE)
    if pattern.search(text):
        return pattern.sub(lambda _m: line, text, count=1)
    if text and not text.endswith("\n"):
        text += "\n"
    return text + line + "\n"


def harden_sshd_config(text: str, *, port: int, allowed_users: Sequence[str]) -> str:
    text = set_sshd_option(text, "Port", str(port))
    text = set_sshd_option(text, "PasswordAuthentication", "no")
    text = set_sshd_option(text, "UsePAM", "no")
    text = set_sshd_option(text, "PermitEmptyPasswords", "no")
    if allowed_users:
        text = set_sshd_option(text, "AllowUsers", " ".join(allowed_users))
    return text


class RootPasswordStage(ChrootStage):
    stage_id = "root_password"

    def enabled(self, ctx: RunContext) -> bool:
        return bool(ctx.config.root_password)

    def configure(self, ctx: RunContext) -> None:
        logger.info("Setting root user password")
        # stdin keeps the password out of argv and the log
        self.chroot(ctx, ["chpasswd"], input_text=f"root:{ctx.config.root_password}\n")


class RootSshKeyStage(ChrootStage):
    stage_id = "root_ssh_key"

    def enabled(self, ctx: RunContext) -> bool:
        return bool(ctx.config.root_ssh_public_key)

    def configure(self, ctx: RunContext) -> None:
        logger.info("Setting up SSH key for root user")
        make_dir(ctx.root, "/root/.ssh", mode=0o700, dry_run=ctx.dry_run)
        self.write(ctx, "/root/.ssh/authorized_keys", ctx.config.root_ssh_public_key.strip() + "\n", mode=0o600)
        self.chroot(ctx, ["chown", "-R", "root:root", "/root/.ssh"])


class SshServerStage(ChrootStage):
    stage_id = "ssh_server"
    packages = ("openssh-server",)
    units = ("ssh",)

    def configure(self, ctx: RunContext) -> None:
        cfg = ctx.config
        self.chroot(ctx, ["cp", SSHD_CONFIG, f"{SSHD_CONFIG}.bak"])
        current = self.read(ctx, SSHD_CONFIG)
        if current is None and ctx.dry_run:
            logger.info("Would harden %s (port %s)", SSHD_CONFIG, cfg.ssh_port_number)
            return
        self.write(
            ctx,
            SSHD_CONFIG,
            harden_sshd_config(current or "", port=cfg.ssh_port_number, allowed_users=cfg.allowed_ssh_users),
        )


class ExtraPackagesStage(ChrootStage):
    stage_id = "extra_packages"

    def enabled(self, ctx: RunContext) -> bool:
        return bool(ctx.config.additional_packages)

    def packages_for(self, ctx: RunContext) -> Sequence[str]:
        return ctx.config.additional_packages

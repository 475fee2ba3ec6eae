from __future__ import annotations

import logging
import shlex
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Tuple

import yaml

from .errors import PreflightError
from .lib.env import PATHS

logger = logging.getLogger(__name__)

AUTO_DISK = "auto"

REQUIRED_KEYS = ("target_disk", "zfs_passphrase")

# Never written to logs or the run record.
SECRET_KEYS = frozenset({"zfs_passphrase", "root_password"})

_TRUE = {"1", "yes", "true", "on"}
_FALSE = {"0", "no", "false", "off", ""}


def parse_shell_config(text: str) -> Dict[str, str]:
    """Parse KEY=value lines the way a POSIX shell would assign them.

    No expansion is performed. Later assignments override earlier ones.
    """

    values: Dict[str, str] = {}
    for lineno, raw_line in enumerate(text.splitlines(), start=1):
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        try:
            words = shlex.split(line, comments=True)
        except ValueError as e:
            raise PreflightError(f"Config line {lineno}: {e}") from e
        if words and words[0] == "export":
            words = words[1:]
        for word in words:
            key, sep, value = word.partition("=")
            if not sep or not key.replace("_", "").isalnum():
                raise PreflightError(f"Config line {lineno}: expected KEY=value, got {raw_line!r}")
            values[key] = value
    return values


def _as_list(value: Any) -> Tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, (list, tuple)):
        return tuple(str(v).strip() for v in value if str(v).strip())
    return tuple(str(value).split())


def _as_bool(key: str, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    s = str(value).strip().lower()
    if s in _TRUE:
        return True
    if s in _FALSE:
        return False
    raise PreflightError(f"{key.upper()} must be yes/no, got {value!r}")


def _as_str(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


@dataclass(frozen=True)
class InstallConfig:
    target_disk: str = ""
    zfs_passphrase: str = field(default="", repr=False)

    hostname: str = "debian"
    fqdn: str = ""
    lang: str = "en_US.UTF-8"
    language: str = ""
    xkbmodel: str = "pc105"
    xkblayout: str = "us"
    xkbvariant: str = ""
    xkboptions: str = ""
    timezone: str = "Etc/UTC"

    interface_name: str = "eth0"
    ipv4_address: str = ""
    ipv4_netmask: str = ""
    ipv4_gateway: str = ""
    ipv6_address: str = ""
    ipv6_netmask: str = ""
    ipv6_gateway: str = ""
    dns_servers: Tuple[str, ...] = ()
    ntp_servers: Tuple[str, ...] = ()

    ssh_port: str = "22"
    allowed_ssh_users: Tuple[str, ...] = ()
    root_password: str = field(default="", repr=False)
    root_ssh_public_key: str = ""
    additional_packages: Tuple[str, ...] = ()

    debian_release: str = "bookworm"
    debian_mirror: str = "https://deb.debian.org/debian"
    staging_root: str = PATHS.staging_root
    zero_fill: bool = True
    zed_timeout: float = 30.0

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> "InstallConfig":
        """Build from a mapping with case-insensitive keys; unknown keys are ignored."""

        data = {str(k).strip().lower(): v for k, v in raw.items()}
        known = set(cls.__dataclass_fields__)
        ignored = sorted(k for k in data if k not in known)
        if ignored:
            logger.debug("Ignoring unrecognized config keys: %s", ", ".join(ignored))

        kwargs: Dict[str, Any] = {}
        for name, f in cls.__dataclass_fields__.items():
            if name not in data:
                continue
            value = data[name]
            if isinstance(f.default, tuple):
                kwargs[name] = _as_list(value)
            elif isinstance(f.default, bool):
                kwargs[name] = _as_bool(name, value)
            elif isinstance(f.default, float):
                try:
                    kwargs[name] = float(value)
                except (TypeError, ValueError) as e:
                    raise PreflightError(f"{name.upper()} must be a number, got {value!r}") from e
            else:
                kwargs[name] = _as_str(value)

        if kwargs.get("staging_root"):
            kwargs["staging_root"] = kwargs["staging_root"].rstrip("/") or "/"
        return cls(**kwargs)

    @property
    def auto_disk(self) -> bool:
        return self.target_disk.lower() == AUTO_DISK

    @property
    def ssh_port_number(self) -> int:
        try:
            port = int(self.ssh_port)
        except ValueError as e:
            raise PreflightError(f"SSH_PORT must be an integer, got {self.ssh_port!r}") from e
        if not 1 <= port <= 65535:
            raise PreflightError(f"SSH_PORT out of range: {port}")
        return port

    @property
    def root_dataset(self) -> str:
        return f"rpool/ROOT/{self.debian_release}"

    @property
    def boot_dataset(self) -> str:
        return f"bpool/BOOT/{self.debian_release}"

    def missing_required(self) -> List[str]:
        return [k.upper() for k in REQUIRED_KEYS if not getattr(self, k)]

    def redacted(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {}
        for name in self.__dataclass_fields__:
            value = getattr(self, name)
            if name in SECRET_KEYS:
                value = "***" if value else ""
            elif isinstance(value, tuple):
                value = list(value)
            out[name] = value
        return out


def load_config(path: str) -> InstallConfig:
    p = Path(path)
    if not p.is_file():
        raise PreflightError(f"Configuration file {path} not found.")

    logger.info("Loading configuration from %s", path)
    text = p.read_text(encoding="utf-8")

    if p.suffix.lower() in {".yaml", ".yml"}:
        try:
            raw = yaml.safe_load(text) or {}
        except yaml.YAMLError as e:
            raise PreflightError(f"Invalid YAML in {path}: {e}") from e
        if not isinstance(raw, dict):
            raise PreflightError(f"{path} must contain a mapping/object")
    else:
        raw = parse_shell_config(text)

    return InstallConfig.from_mapping(raw)

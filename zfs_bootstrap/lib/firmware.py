from __future__ import annotations

from pathlib import Path


def detect_firmware(sys_root: str = "/sys") -> str:
    """Detect firmware type for the *currently running* environment.

    Returns: 'efi' or 'bios'. grub-install can only register an NVRAM boot
    entry when the live system itself was booted through UEFI.
    """

    if (Path(sys_root) / "firmware/efi").exists():
        return "efi"
    return "bios"

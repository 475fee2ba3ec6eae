from typing import List

from .access import ExtraPackagesStage, RootPasswordStage, RootSshKeyStage, SshServerStage
from .base import ChrootStage
from .boot import BootPoolImportStage, EfiMountStage, GrubStage, TmpMountStage, ZfsToolsStage
from .network import NetworkStage, TimesyncStage
from .system import (
    AptSourcesStage,
    HostnameStage,
    HostsStage,
    InitSystemStage,
    KernelStage,
    KeyboardStage,
    LocaleStage,
    TimezoneStage,
)


def build_stages() -> List[ChrootStage]:
    # Order matters: later stages rely on packages and files from earlier ones.
    return [
        AptSourcesStage(),
        KernelStage(),
        InitSystemStage(),
        LocaleStage(),
        KeyboardStage(),
        HostnameStage(),
        HostsStage(),
        ZfsToolsStage(),
        EfiMountStage(),
        BootPoolImportStage(),
        TmpMountStage(),
        TimezoneStage(),
        TimesyncStage(),
        NetworkStage(),
        RootPasswordStage(),
        RootSshKeyStage(),
        SshServerStage(),
        ExtraPackagesStage(),
        GrubStage(),
    ]


__all__ = ["ChrootStage", "build_stages"]

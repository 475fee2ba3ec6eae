from .step_00_prepare_host import PrepareHostStep
from .step_05_preflight import PreflightStep
from .step_10_resolve_disk import ResolveDiskStep
from .step_20_partition import PartitionStep
from .step_30_create_pools import CreatePoolsStep
from .step_35_create_datasets import CreateDatasetsStep
from .step_40_install_base import InstallBaseStep
from .step_50_configure_system import ConfigureSystemStep
from .step_60_zfs_cache import ZfsCacheStep
from .step_90_teardown import TeardownStep

__all__ = [
    "PrepareHostStep",
    "PreflightStep",
    "ResolveDiskStep",
    "PartitionStep",
    "CreatePoolsStep",
    "CreateDatasetsStep",
    "InstallBaseStep",
    "ConfigureSystemStep",
    "ZfsCacheStep",
    "TeardownStep",
]

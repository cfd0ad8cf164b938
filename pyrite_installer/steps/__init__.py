from .step_10_check_requirements import CheckRequirementsStep
from .step_15_collect_config import CollectConfigStep
from .step_20_plan_disk import PlanDiskStep
from .step_30_partition import PartitionStep
from .step_40_provision_fs import ProvisionFilesystemStep
from .step_50_install_base import InstallBaseStep
from .step_60_configure_system import ConfigureSystemStep
from .step_70_install_bootloader import InstallBootloaderStep
from .step_80_harden import HardenStep
from .step_90_finalize import FinalizeStep

__all__ = [
    "CheckRequirementsStep",
    "CollectConfigStep",
    "PlanDiskStep",
    "PartitionStep",
    "ProvisionFilesystemStep",
    "InstallBaseStep",
    "ConfigureSystemStep",
    "InstallBootloaderStep",
    "HardenStep",
    "FinalizeStep",
]

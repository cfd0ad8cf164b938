from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .cleanup import CleanupManager
from .errors import InstallerError
from .lib.block import Disk
from .lib.bootloader import BootEntry
from .lib.btrfs import MountPlan
from .lib.env import PATHS, Paths
from .lib.pkg import PackageOptions
from .lib.storage import PartitionPlan, PartitionTable
from .settings import InstallSettings


class PipelineStage(enum.Enum):
    START = "start"
    REQUIREMENTS_CHECKED = "requirements_checked"
    CONFIG_COLLECTED = "config_collected"
    DISK_PLANNED = "disk_planned"
    PARTITIONED = "partitioned"
    FILESYSTEMS_MOUNTED = "filesystems_mounted"
    BASE_INSTALLED = "base_installed"
    CONFIGURED = "configured"
    BOOTLOADER_INSTALLED = "bootloader_installed"
    HARDENED = "hardened"
    FINALIZED = "finalized"


@dataclass(frozen=True)
class SystemConfig:
    """Operator choices, validated before construction and frozen afterwards."""

    hostname: str
    username: str
    user_password: str = field(repr=False)
    root_password: str = field(repr=False)
    timezone: str = "UTC"
    locale: str = "en_US.UTF-8"
    enable_ssh: bool = False
    enable_firewall: bool = True
    enable_swap: bool = False
    swap_size_gb: int = 0
    ssh_password_auth: bool = False

    def public(self) -> Dict[str, Any]:
        """Everything except password material."""
        return {
            "hostname": self.hostname,
            "username": self.username,
            "timezone": self.timezone,
            "locale": self.locale,
            "enable_ssh": self.enable_ssh,
            "enable_firewall": self.enable_firewall,
            "enable_swap": self.enable_swap,
            "swap_size_gb": self.swap_size_gb,
            "ssh_password_auth": self.ssh_password_auth,
        }


@dataclass
class InstallContext:
    """Everything one run knows, passed explicitly to every step."""

    settings: InstallSettings
    cleanup: CleanupManager
    paths: Paths = PATHS
    config: Optional[SystemConfig] = None
    disk: Optional[Disk] = None
    plan: Optional[PartitionPlan] = None
    table: Optional[PartitionTable] = None
    mount_plan: Optional[MountPlan] = None
    boot_entries: List[BootEntry] = field(default_factory=list)
    extra_packages: List[str] = field(default_factory=list)
    package_options: PackageOptions = field(default_factory=PackageOptions)
    stage: PipelineStage = PipelineStage.START
    completed_steps: List[str] = field(default_factory=list)
    decisions: Dict[str, Any] = field(default_factory=dict)

    @property
    def mount_root(self) -> str:
        return self.paths.mount_root

    def require(self, *names: str) -> None:
        missing = [n for n in names if getattr(self, n, None) in (None, [])]
        if missing:
            raise InstallerError(f"Pipeline precondition not met: {', '.join(missing)} not set")

    def record(self) -> Dict[str, Any]:
        """Run record for the post-install validator; never contains secrets."""

        out: Dict[str, Any] = {
            "stage": self.stage.value,
            "completed_steps": list(self.completed_steps),
            "decisions": dict(self.decisions),
        }
        if self.config:
            out["config"] = self.config.public()
        if self.disk:
            out["disk"] = {"path": self.disk.path, "size_gb": round(self.disk.size_gb, 1), "model": self.disk.model}
        if self.table:
            out["partitions"] = {role.value: dev for role, dev in self.table.parts.items()}
        if self.mount_plan:
            out["mounts"] = [
                {"source": m.source, "target": m.target, "options": m.options} for m in self.mount_plan.all_mounts()
            ]
        if self.boot_entries:
            out["boot_entries"] = [{"id": e.entry_id, "initrd": e.initrd, "options": e.options} for e in self.boot_entries]
        return out

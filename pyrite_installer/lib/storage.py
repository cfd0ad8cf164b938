from __future__ import annotations

import enum
import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional, Tuple

from ..errors import PlanningError
from .command import run_cmd
from .block import partition_path

logger = logging.getLogger(__name__)


class PartitionRole(enum.Enum):
    EFI = "efi"
    SWAP = "swap"
    ROOT = "root"


@dataclass(frozen=True)
class PartitionSpec:
    role: PartitionRole
    size_mib: Optional[int]  # None: rest of the disk
    fs_type: str
    type_code: str
    label: str

    @property
    def size_arg(self) -> str:
        return "0" if self.size_mib is None else f"+{self.size_mib}MiB"


def efi_spec(size_mib: int) -> PartitionSpec:
    return PartitionSpec(PartitionRole.EFI, size_mib, "vfat", "ef00", "EFI")


def swap_spec(size_mib: int) -> PartitionSpec:
    return PartitionSpec(PartitionRole.SWAP, size_mib, "swap", "8200", "SWAP")


def root_spec() -> PartitionSpec:
    return PartitionSpec(PartitionRole.ROOT, None, "btrfs", "8300", "ROOT")


@dataclass(frozen=True)
class PartitionPlan:
    disk: str
    partitions: Tuple[PartitionSpec, ...]

    def roles(self) -> list[PartitionRole]:
        return [p.role for p in self.partitions]

    def validate(self) -> "PartitionPlan":
        roles = self.roles()
        if not roles or roles[0] is not PartitionRole.EFI or roles.count(PartitionRole.EFI) != 1:
            raise PlanningError("Partition plan needs exactly one EFI partition, placed first")
        if roles.count(PartitionRole.SWAP) > 1:
            raise PlanningError("Partition plan allows at most one swap partition")
        if roles.count(PartitionRole.ROOT) != 1 or roles[-1] is not PartitionRole.ROOT:
            raise PlanningError("Partition plan needs exactly one root partition, placed last")
        if self.partitions[-1].size_mib is not None:
            raise PlanningError("Root partition must take the remaining space")
        for p in self.partitions[:-1]:
            if p.size_mib is None or p.size_mib <= 0:
                raise PlanningError(f"{p.label} partition needs a fixed positive size")
        return self


def build_plan(
    disk: str,
    *,
    want_swap: bool,
    swap_size_gb: int = 0,
    esp_size_mib: int = 512,
) -> PartitionPlan:
    """EFI first, optional swap, root over the remaining space."""

    parts = [efi_spec(esp_size_mib)]
    if want_swap:
        if swap_size_gb <= 0:
            raise PlanningError(f"Swap size must be a positive number of GB, got {swap_size_gb}")
        parts.append(swap_spec(swap_size_gb * 1024))
    parts.append(root_spec())
    return PartitionPlan(disk=disk, partitions=tuple(parts)).validate()


@dataclass(frozen=True)
class PartitionTable:
    disk: str
    parts: Dict[PartitionRole, str]

    @property
    def efi(self) -> str:
        return self.parts[PartitionRole.EFI]

    @property
    def root(self) -> str:
        return self.parts[PartitionRole.ROOT]

    @property
    def swap(self) -> Optional[str]:
        return self.parts.get(PartitionRole.SWAP)


def resolve_table(plan: PartitionPlan) -> PartitionTable:
    return PartitionTable(
        disk=plan.disk,
        parts={spec.role: partition_path(plan.disk, n) for n, spec in enumerate(plan.partitions, start=1)},
    )


def preclean(mount_root: str) -> None:
    """Unmount anything left under mount_root. Safe when nothing is mounted."""

    r = run_cmd(["umount", "-R", mount_root], check=False)
    if r.ok:
        logger.info("Unmounted leftovers under %s", mount_root)


def format_partition(spec: PartitionSpec, device: str) -> None:
    if spec.fs_type == "vfat":
        run_cmd(["mkfs.fat", "-F", "32", "-n", spec.label, device])
    elif spec.fs_type == "swap":
        run_cmd(["mkswap", "-L", spec.label, device])
    elif spec.fs_type == "btrfs":
        run_cmd(["mkfs.btrfs", "-f", "-L", spec.label, device])
    else:
        raise PlanningError(f"Unsupported filesystem type {spec.fs_type!r} for {device}")


def execute_plan(
    plan: PartitionPlan,
    *,
    mount_root: str,
    settle_seconds: float = 2.0,
) -> PartitionTable:
    """Destructively write the GPT described by plan, then format each partition.

    Order: pre-clean, wipe signatures, zap table, create entries in plan order,
    let the kernel re-read the table, format.
    """

    plan.validate()
    disk = plan.disk
    logger.info("Partitioning disk=%s layout=%s", disk, [r.value for r in plan.roles()])

    preclean(mount_root)
    run_cmd(["wipefs", "-af", disk])
    run_cmd(["sgdisk", "--zap-all", disk])

    for n, spec in enumerate(plan.partitions, start=1):
        run_cmd(
            [
                "sgdisk",
                f"--new={n}:0:{spec.size_arg}",
                f"--typecode={n}:{spec.type_code}",
                f"--change-name={n}:{spec.label}",
                disk,
            ]
        )

    # Inform kernel; partition nodes are not usable until udev has caught up.
    run_cmd(["partprobe", disk])
    run_cmd(["udevadm", "settle"], check=False)
    if settle_seconds > 0:
        time.sleep(settle_seconds)

    table = resolve_table(plan)
    for spec in plan.partitions:
        format_partition(spec, table.parts[spec.role])

    logger.info("Partition table: %s", {r.value: p for r, p in table.parts.items()})
    return table


def write_bookkeeping(table: PartitionTable, *, boot_file: str, root_file: str) -> list[Path]:
    written = []
    for path, value in ((boot_file, table.efi), (root_file, table.root)):
        p = Path(path)
        p.parent.mkdir(parents=True, exist_ok=True)
        p.write_text(value + "\n", encoding="utf-8")
        written.append(p)
    return written

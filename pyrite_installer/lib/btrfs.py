from __future__ import annotations

import logging
import posixpath
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Iterable, List, Optional, Sequence, Tuple

from ..errors import InstallerError
from .command import run_cmd
from .storage import PartitionTable

if TYPE_CHECKING:
    from ..cleanup import CleanupManager

logger = logging.getLogger(__name__)

ROOT_SUBVOLUME = "@"


@dataclass(frozen=True)
class Subvolume:
    name: str
    mountpoint: str  # absolute, inside the installed system


@dataclass(frozen=True)
class SubvolumeLayout:
    subvolumes: Tuple[Subvolume, ...]

    @classmethod
    def from_pairs(cls, pairs: Iterable[Tuple[str, str]]) -> "SubvolumeLayout":
        layout = cls(tuple(Subvolume(name=n, mountpoint=m) for n, m in pairs))
        layout.validate()
        return layout

    def validate(self) -> None:
        if not self.subvolumes or self.subvolumes[0].mountpoint != "/":
            raise InstallerError("Subvolume layout must start with the root subvolume mounted at /")
        names = [s.name for s in self.subvolumes]
        if len(set(names)) != len(names):
            raise InstallerError(f"Duplicate subvolume names: {names}")
        points = [s.mountpoint for s in self.subvolumes]
        if len(set(points)) != len(points):
            raise InstallerError(f"Duplicate subvolume mount points: {points}")

    @property
    def root(self) -> Subvolume:
        return self.subvolumes[0]

    @property
    def children(self) -> Tuple[Subvolume, ...]:
        return self.subvolumes[1:]


def subvolume_options(name: str, shared: str) -> str:
    return f"subvol={name},{shared}"


def strip_subvolume(options: str) -> str:
    return ",".join(o for o in options.split(",") if not o.startswith("subvol="))


def target_path(mount_root: str, mountpoint: str) -> str:
    return posixpath.normpath(posixpath.join(mount_root, mountpoint.lstrip("/")))


@dataclass(frozen=True)
class MountSpec:
    source: str
    target: str
    options: str
    subvolume: Optional[str] = None


@dataclass
class MountPlan:
    mount_root: str
    subvolume_mounts: List[MountSpec] = field(default_factory=list)
    efi_mount: Optional[MountSpec] = None
    swap_device: Optional[str] = None

    @property
    def root_spec(self) -> MountSpec:
        if not self.subvolume_mounts:
            raise InstallerError("Mount plan has no root subvolume")
        return self.subvolume_mounts[0]

    def all_mounts(self) -> List[MountSpec]:
        mounts = list(self.subvolume_mounts)
        if self.efi_mount:
            mounts.append(self.efi_mount)
        return mounts


def plan_mounts(
    table: PartitionTable,
    layout: SubvolumeLayout,
    *,
    mount_root: str,
    shared_options: str,
    use_swap: bool,
) -> MountPlan:
    """Derive every mount from the single shared option string."""

    subvol_mounts = [
        MountSpec(
            source=table.root,
            target=target_path(mount_root, s.mountpoint),
            options=subvolume_options(s.name, shared_options),
            subvolume=s.name,
        )
        for s in layout.subvolumes
    ]
    return MountPlan(
        mount_root=posixpath.normpath(mount_root),
        subvolume_mounts=subvol_mounts,
        efi_mount=MountSpec(source=table.efi, target=target_path(mount_root, "/boot"), options="umask=0077"),
        swap_device=table.swap if use_swap else None,
    )


def create_subvolumes(top_level: str, names: Sequence[str]) -> None:
    for name in names:
        run_cmd(["btrfs", "subvolume", "create", posixpath.join(top_level, name)])


def _mount(spec: MountSpec, cleanup: CleanupManager) -> None:
    run_cmd(["mount", "-o", spec.options, spec.source, spec.target])
    cleanup.push_mount(spec.target)


def provision(
    table: PartitionTable,
    layout: SubvolumeLayout,
    *,
    mount_root: str,
    shared_options: str,
    cleanup: CleanupManager,
    use_swap: bool,
) -> MountPlan:
    """Create the subvolumes and mount the final tree.

    The top level has to be mounted bare to create subvolumes, and a subvolume
    can only be selected once it exists, so creation and final mounting use
    separate mount calls.
    """

    plan = plan_mounts(table, layout, mount_root=mount_root, shared_options=shared_options, use_swap=use_swap)
    root = plan.mount_root

    # 1-3: top level, create subvolumes, unmount.
    run_cmd(["mkdir", "-p", root])
    run_cmd(["mount", table.root, root])
    top = cleanup.push_mount(root)
    create_subvolumes(root, [s.name for s in layout.subvolumes])
    run_cmd(["umount", root])
    top.released = True
    logger.info("Created subvolumes: %s", ", ".join(s.name for s in layout.subvolumes))

    # 4: root subvolume.
    _mount(plan.root_spec, cleanup)

    # 5: mount points live inside @, so only now.
    for spec in plan.subvolume_mounts[1:]:
        run_cmd(["mkdir", "-p", spec.target])

    # 6: nested points (var/log under @var) need re-creating once the parent is mounted.
    for spec in plan.subvolume_mounts[1:]:
        run_cmd(["mkdir", "-p", spec.target])
        _mount(spec, cleanup)

    # 7: ESP.
    if plan.efi_mount:
        run_cmd(["mkdir", "-p", plan.efi_mount.target])
        _mount(plan.efi_mount, cleanup)

    # 8: swap.
    if plan.swap_device:
        run_cmd(["swapon", plan.swap_device])
        cleanup.push_swap(plan.swap_device)

    logger.info("Mounted %d filesystems under %s", len(plan.all_mounts()), root)
    return plan

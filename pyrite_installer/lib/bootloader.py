from __future__ import annotations

import logging
import os
import re
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from .btrfs import MountSpec
from .chroot import run_in_target

logger = logging.getLogger(__name__)

_UUID_RE = re.compile(r"\broot=UUID=([0-9A-Fa-f-]+)")


@dataclass(frozen=True)
class BootEntry:
    entry_id: str
    title: str
    linux: str
    initrd: str
    options: str
    root_uuid: str

    @property
    def filename(self) -> str:
        return f"{self.entry_id}.conf"

    def render(self) -> str:
        return (
            f"title   {self.title}\n"
            f"linux   {self.linux}\n"
            f"initrd  {self.initrd}\n"
            f"options {self.options}\n"
        )


def kernel_options(root_uuid: str, root_mount: MountSpec) -> str:
    # rootflags must be the exact option string the root subvolume was mounted with.
    return f"root=UUID={root_uuid} rootflags={root_mount.options} rw"


def build_entries(
    root_uuid: str,
    root_mount: MountSpec,
    *,
    entry_id: str = "pyrite",
    title: str = "Pyrite Linux",
    linux: str = "/vmlinuz-linux",
    initrd: str = "/initramfs-linux.img",
    fallback_initrd: str = "/initramfs-linux-fallback.img",
) -> List[BootEntry]:
    """Primary and fallback entries, identical except for the initramfs."""

    if not root_uuid:
        raise ValueError("root_uuid is required")
    options = kernel_options(root_uuid, root_mount)
    return [
        BootEntry(entry_id, title, linux, initrd, options, root_uuid),
        BootEntry(f"{entry_id}-fallback", f"{title} (fallback initramfs)", linux, fallback_initrd, options, root_uuid),
    ]


def render_loader_conf(default_entry: BootEntry, timeout: int = 3) -> str:
    return (
        f"default {default_entry.filename}\n"
        f"timeout {timeout}\n"
        "console-mode max\n"
        "editor no\n"
    )


def parse_entry_uuid(text: str) -> Optional[str]:
    m = _UUID_RE.search(text)
    return m.group(1) if m else None


def atomic_write(path: Path, contents: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp = tempfile.mkstemp(prefix=f".{path.name}.", dir=str(path.parent))
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(contents)
            f.flush()
            os.fsync(f.fileno())
        os.chmod(tmp, 0o644)
        os.replace(tmp, path)
    except BaseException:
        Path(tmp).unlink(missing_ok=True)
        raise


def install_systemd_boot(*, target_root: str, esp_path: str = "/boot") -> None:
    """Install systemd-boot into the ESP mounted at esp_path inside target."""

    run_in_target(target_root, ["bootctl", f"--esp-path={esp_path}", "install"])
    logger.info("systemd-boot installed")


def write_boot_config(
    *,
    target_root: str,
    entries: List[BootEntry],
    timeout: int = 3,
    esp_rel: str = "boot",
) -> List[Path]:
    loader_dir = Path(target_root) / esp_rel / "loader"
    written = []
    for entry in entries:
        p = loader_dir / "entries" / entry.filename
        atomic_write(p, entry.render())
        written.append(p)
    conf = loader_dir / "loader.conf"
    atomic_write(conf, render_loader_conf(entries[0], timeout))
    written.append(conf)
    for p in written:
        logger.info("Wrote boot config: %s", str(p))
    return written

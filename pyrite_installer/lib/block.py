from __future__ import annotations

import enum
import logging
import re
import shlex
from dataclasses import dataclass
from typing import Dict, List, Optional

from ..errors import InstallerError, PlanningError
from .command import run_cmd

logger = logging.getLogger(__name__)

_SIZE_RE = re.compile(r"^\s*([0-9]+(?:[.,][0-9]+)?)\s*([BKMGTPE]?)(?:i?B)?\s*$", re.IGNORECASE)

# Powers of 1024 relative to bytes; lsblk reports binary units.
_UNIT_EXP = {"": 0, "B": 0, "K": 1, "M": 2, "G": 3, "T": 4, "P": 5, "E": 6}

_SKIP_PREFIXES = ("loop", "sr", "zram", "ram", "fd")


@dataclass(frozen=True)
class Disk:
    path: str
    size_gb: float
    model: str = ""

    def describe(self) -> str:
        model = self.model or "unknown model"
        return f"{self.path} ({self.size_gb:.1f} GB, {model})"


class PartitionNaming(enum.Enum):
    """How the kernel names partitions of a given disk."""

    PLAIN = "plain"  # /dev/sda -> /dev/sda1
    P_INFIX = "p_infix"  # /dev/nvme0n1 -> /dev/nvme0n1p1


def classify_disk(disk: str) -> PartitionNaming:
    name = disk.rstrip("/").rsplit("/", 1)[-1]
    if name.startswith(("nvme", "mmcblk", "loop", "nbd")):
        return PartitionNaming.P_INFIX
    # Any other device ending in a digit would make "<disk><n>" ambiguous.
    if name[-1:].isdigit():
        return PartitionNaming.P_INFIX
    return PartitionNaming.PLAIN


def partition_path(disk: str, n: int) -> str:
    if n < 1:
        raise ValueError(f"Partition numbers start at 1, got {n}")
    if classify_disk(disk) is PartitionNaming.P_INFIX:
        return f"{disk}p{n}"
    return f"{disk}{n}"


def parse_size_gb(value: str) -> float:
    """Normalize an lsblk-style size ("931.5G", "512M", "1.8T") to GiB."""

    m = _SIZE_RE.match(value or "")
    if not m:
        raise ValueError(f"Unrecognized size: {value!r}")
    number = float(m.group(1).replace(",", "."))
    exp = _UNIT_EXP[m.group(2).upper()]
    return number * (1024 ** exp) / (1024 ** 3)


def _parse_pairs(line: str) -> Dict[str, str]:
    out: Dict[str, str] = {}
    for tok in shlex.split(line):
        key, sep, val = tok.partition("=")
        if sep:
            out[key] = val
    return out


def _lsblk_rows(device: Optional[str] = None) -> List[Dict[str, str]]:
    argv = ["lsblk", "-dn", "-P", "-o", "NAME,SIZE,MODEL,TYPE"]
    if device:
        argv.append(device)
    r = run_cmd(argv)
    return [_parse_pairs(line) for line in r.stdout.splitlines() if line.strip()]


def _row_to_disk(row: Dict[str, str]) -> Optional[Disk]:
    name = row.get("NAME", "")
    if not name or row.get("TYPE") != "disk" or name.startswith(_SKIP_PREFIXES):
        return None
    try:
        size_gb = parse_size_gb(row.get("SIZE", ""))
    except ValueError:
        logger.warning("Ignoring %s: unparseable size %r", name, row.get("SIZE"))
        return None
    path = name if name.startswith("/") else f"/dev/{name}"
    return Disk(path=path, size_gb=size_gb, model=row.get("MODEL", "").strip())


def filter_disks(disks: List[Disk], min_gb: float) -> List[Disk]:
    seen: set[str] = set()
    out: List[Disk] = []
    for d in disks:
        if d.size_gb < min_gb or d.path in seen:
            continue
        seen.add(d.path)
        out.append(d)
    return out


def list_disks(min_gb: float) -> List[Disk]:
    """Return whole disks of at least min_gb GiB, each exactly once."""

    found = [d for d in (_row_to_disk(r) for r in _lsblk_rows()) if d is not None]
    disks = filter_disks(found, min_gb)
    for d in found:
        if d not in disks:
            logger.info("Skipping %s (below %.0f GB minimum)", d.describe(), min_gb)
    if not disks:
        raise PlanningError(f"No disk of at least {min_gb:.0f} GB found")
    return disks


def reprobe_disk(disk: Disk) -> None:
    """Fail if the selected disk no longer matches what was enumerated."""

    rows = [d for d in (_row_to_disk(r) for r in _lsblk_rows(disk.path)) if d is not None]
    if not rows:
        raise PlanningError(f"Selected disk {disk.path} is no longer present")
    current = rows[0]
    if abs(current.size_gb - disk.size_gb) > 0.05 or current.model != disk.model:
        raise PlanningError(
            f"Selected disk changed since it was chosen: was {disk.describe()}, now {current.describe()}"
        )
    logger.info("Re-probed %s: unchanged", disk.path)


def get_uuid(dev: str) -> str:
    """Return filesystem UUID for a block device."""

    r = run_cmd(["blkid", "-s", "UUID", "-o", "value", dev])
    uuid = (r.stdout or "").strip()
    if not uuid:
        raise InstallerError(f"Unable to determine UUID for {dev}")
    return uuid

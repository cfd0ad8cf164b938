from __future__ import annotations

import logging
import re
from pathlib import Path

from ..errors import InstallerError, PreconditionError
from .block import list_disks
from .firmware import detect_firmware
from .net import is_online

logger = logging.getLogger(__name__)


def read_memory_mb(meminfo: str = "/proc/meminfo") -> int:
    text = Path(meminfo).read_text(encoding="utf-8")
    m = re.search(r"^MemTotal:\s+(\d+)\s*kB", text, re.MULTILINE)
    if not m:
        raise PreconditionError(f"MemTotal not found in {meminfo}")
    return int(m.group(1)) // 1024


def check_uefi(efivars: str) -> None:
    if detect_firmware(efivars) != "uefi":
        raise PreconditionError("UEFI firmware required (system booted in legacy BIOS mode)")
    logger.info("Boot mode: UEFI")


def check_network(host: str, timeout_s: int) -> None:
    if not is_online(host, timeout_s=timeout_s):
        raise PreconditionError(f"No network connectivity (could not reach {host})")
    logger.info("Network: %s reachable", host)


def check_memory(min_mb: int, meminfo: str) -> None:
    total = read_memory_mb(meminfo)
    if total < min_mb:
        raise PreconditionError(f"Insufficient memory. Required: {min_mb}MB, Available: {total}MB")
    logger.info("Memory: %d MB", total)


def check_disks(min_gb: float) -> None:
    try:
        disks = list_disks(min_gb)
    except InstallerError as e:
        raise PreconditionError(str(e)) from e
    logger.info("Disks: %d candidate(s) of at least %.0f GB", len(disks), min_gb)


def check_all(settings, paths) -> None:
    """Run every requirement check in order; the first failure aborts."""

    check_uefi(paths.efivars)
    check_network(settings.connectivity_host, settings.connectivity_timeout_s)
    check_memory(settings.min_memory_mb, paths.meminfo)
    check_disks(settings.min_disk_gb)

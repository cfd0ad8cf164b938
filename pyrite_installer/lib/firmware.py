from __future__ import annotations

from pathlib import Path


def detect_firmware(efivars: str = "/sys/firmware/efi/efivars") -> str:
    """Detect firmware type for the *currently running* environment.

    Returns: 'uefi' or 'bios'.
    """

    if Path(efivars).is_dir():
        return "uefi"
    return "bios"

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Paths:
    mount_root: str = "/mnt"
    log_default: str = "/tmp/pyrite-install.log"
    boot_part_file: str = "/tmp/pyrite-boot-part"
    root_part_file: str = "/tmp/pyrite-root-part"
    packages_file: str = "/tmp/pyrite-packages.txt"
    hardware_file: str = "/tmp/pyrite-hardware.json"
    package_config_file: str = "/tmp/pyrite-package-config.sh"
    efivars: str = "/sys/firmware/efi/efivars"
    meminfo: str = "/proc/meminfo"
    zoneinfo: str = "/usr/share/zoneinfo"
    # Relative to the target root.
    state_record: str = "var/log/pyrite-install-state.yaml"


PATHS = Paths()

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from .lib.manifests import load_install_manifest


@dataclass(frozen=True)
class InstallSettings:
    """Typed view over the packaged install manifest."""

    raw: Dict[str, Any]

    def _section(self, name: str) -> Dict[str, Any]:
        return self.raw.get(name) or {}

    @property
    def min_memory_mb(self) -> int:
        return int(self._section("requirements").get("min_memory_mb", 512))

    @property
    def min_disk_gb(self) -> float:
        return float(self._section("requirements").get("min_disk_gb", 20))

    @property
    def connectivity_host(self) -> str:
        return str(self._section("requirements").get("connectivity_host") or "archlinux.org")

    @property
    def connectivity_timeout_s(self) -> int:
        return int(self._section("requirements").get("connectivity_timeout_s", 5))

    @property
    def esp_size_mib(self) -> int:
        return int(self._section("partitioning").get("esp_size_mib", 512))

    @property
    def settle_seconds(self) -> float:
        return float(self._section("partitioning").get("settle_seconds", 2))

    @property
    def btrfs_mount_options(self) -> str:
        opts = str(self._section("btrfs").get("mount_options") or "").strip()
        if not opts:
            raise ValueError("btrfs.mount_options must not be empty")
        if "subvol=" in opts:
            raise ValueError("btrfs.mount_options must not name a subvolume")
        return opts

    @property
    def subvolumes(self) -> List[Tuple[str, str]]:
        return [(str(s["name"]), str(s["mountpoint"])) for s in self._section("btrfs").get("subvolumes") or []]

    def packages(self, group: str) -> List[str]:
        return [str(p) for p in self._section("packages").get(group) or []]

    @property
    def user_groups(self) -> List[str]:
        return [str(g) for g in self._section("users").get("groups") or ["wheel"]]

    @property
    def user_shell(self) -> str:
        return str(self._section("users").get("shell") or "/bin/bash")

    @property
    def enabled_services(self) -> List[str]:
        return [str(s) for s in self._section("services").get("enable") or []]

    @property
    def disabled_services(self) -> List[str]:
        return [str(s) for s in self._section("services").get("disable") or []]

    @property
    def initramfs_modules(self) -> List[str]:
        return [str(m) for m in self._section("initramfs").get("modules") or []]

    @property
    def initramfs_hooks(self) -> List[str]:
        return [str(h) for h in self._section("initramfs").get("hooks") or []]

    def boot(self, key: str) -> Any:
        return self._section("boot").get(key)

    @property
    def geolocation_url(self) -> Optional[str]:
        return self._section("geolocation").get("url")

    @property
    def geolocation_timeout_s(self) -> int:
        return int(self._section("geolocation").get("timeout_s", 5))


def load_settings(name: Optional[str] = None) -> InstallSettings:
    raw = load_install_manifest(name) if name else load_install_manifest()
    return InstallSettings(raw=raw)

from __future__ import annotations

import json
import logging
import re
import shlex
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Sequence

from ..errors import InstallerError
from .chroot import chroot_shell, run_in_target
from .command import run_cmd

logger = logging.getLogger(__name__)

FLATHUB_URL = "https://dl.flathub.org/repo/flathub.flatpakrepo"
AUR_HELPER_REPO = "https://aur.archlinux.org/yay-bin.git"


def pacstrap_rootfs(target_root: str, packages: Sequence[str]) -> None:
    if not packages:
        raise ValueError("pacstrap needs at least one package")
    run_cmd(["pacstrap", "-K", target_root, *packages])


def pacman_install(target_root: str, packages: Sequence[str]) -> None:
    if not packages:
        return
    run_in_target(target_root, ["pacman", "-S", "--needed", "--noconfirm", *packages])


def read_package_list(path: str) -> List[str]:
    """Packages chosen by the profile selector, one per line, '#' comments allowed."""

    p = Path(path)
    if not p.exists():
        return []
    try:
        text = p.read_text(encoding="utf-8")
    except UnicodeDecodeError as e:
        logger.warning("Ignoring unreadable package list %s: %s", path, e)
        return []
    out = []
    for line in text.splitlines():
        name = line.split("#", 1)[0].strip()
        if name:
            out.append(name)
    return out


def read_hardware_packages(path: str) -> List[str]:
    """recommended_packages from the hardware detection report, if present."""

    p = Path(path)
    if not p.exists():
        return []
    try:
        data = json.loads(p.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        logger.warning("Ignoring unreadable hardware report %s: %s", path, e)
        return []
    pkgs = data.get("recommended_packages") if isinstance(data, dict) else None
    return [str(x).strip() for x in (pkgs or []) if str(x).strip()]


def merge_packages(*groups: Iterable[str], exclude: Iterable[str] = ()) -> List[str]:
    seen = set(exclude)
    out = []
    for group in groups:
        for name in group:
            if name not in seen:
                seen.add(name)
                out.append(name)
    return out


def rewrite_atime(fstab: str, policy: str = "noatime") -> str:
    return re.sub(r"\brelatime\b", policy, fstab)


def write_fstab(target_root: str, *, atime_policy: str = "noatime") -> str:
    """genfstab -U (UUID references only), with the atime policy rewritten."""

    r = run_cmd(["genfstab", "-U", target_root])
    contents = rewrite_atime(r.stdout, atime_policy)
    if "UUID=" not in contents:
        raise InstallerError("genfstab produced no UUID entries")
    fstab = Path(target_root) / "etc/fstab"
    fstab.parent.mkdir(parents=True, exist_ok=True)
    with fstab.open("a", encoding="utf-8") as f:
        f.write(contents)
    logger.info("Wrote %s", str(fstab))
    return contents


@dataclass(frozen=True)
class PackageOptions:
    """Extras chosen in the package selector alongside the package list."""

    enable_aur: bool = False
    enable_flatpak: bool = False


def read_package_options(path: str) -> PackageOptions:
    """Parse ENABLE_AUR / ENABLE_FLATPAK from the selector's KEY=value file."""

    p = Path(path)
    if not p.exists():
        return PackageOptions()
    try:
        text = p.read_text(encoding="utf-8")
    except UnicodeDecodeError as e:
        logger.warning("Ignoring unreadable package config %s: %s", path, e)
        return PackageOptions()

    values = {}
    for line in text.splitlines():
        key, sep, value = line.strip().partition("=")
        if sep and not key.startswith("#"):
            values[key.strip()] = value.strip().strip("\"'").lower()
    return PackageOptions(
        enable_aur=values.get("ENABLE_AUR") == "true",
        enable_flatpak=values.get("ENABLE_FLATPAK") == "true",
    )


def add_flathub_remote(target_root: str) -> None:
    run_in_target(target_root, ["flatpak", "remote-add", "--if-not-exists", "flathub", FLATHUB_URL])
    logger.info("Flathub remote added")


def install_aur_helper(target_root: str, username: str, *, repo: str = AUR_HELPER_REPO) -> None:
    """Build the AUR helper as `username` (makepkg refuses root), install it as root."""

    build_dir = f"/home/{username}/.cache/pyrite-aur"
    quoted = shlex.quote(build_dir)
    run_in_target(target_root, ["rm", "-rf", build_dir])
    run_in_target(target_root, ["runuser", "-u", username, "--", "git", "clone", "--depth", "1", repo, build_dir])
    try:
        run_in_target(target_root, ["runuser", "-u", username, "--", "sh", "-c", f"cd {quoted} && makepkg --noconfirm"])
        chroot_shell(target_root, f"pacman -U --noconfirm {quoted}/*.pkg.tar.zst")
    finally:
        run_in_target(target_root, ["rm", "-rf", build_dir], check=False)
    logger.info("AUR helper installed for %s", username)

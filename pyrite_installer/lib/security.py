from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List, Sequence

from .chroot import run_in_target, write_target_file
from .pkg import pacman_install

logger = logging.getLogger(__name__)

FAIL2BAN_SSHD_JAIL = """[DEFAULT]
bantime = 1h
findtime = 10m
maxretry = 5

[sshd]
enabled = true
port = ssh
backend = systemd
"""


@dataclass
class HardeningReport:
    applied: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    @property
    def clean(self) -> bool:
        return not self.warnings


def best_effort(report: HardeningReport, name: str, fn: Callable[[], object]) -> bool:
    """Run one hardening action; failures become warnings."""

    try:
        fn()
    except Exception as e:
        logger.warning("Hardening step %r failed: %s", name, e)
        report.warnings.append(f"{name}: {e}")
        return False
    report.applied.append(name)
    return True


def _set_conf_value(path: Path, key: str, value: str) -> None:
    text = path.read_text(encoding="utf-8") if path.exists() else ""
    line = f"{key}={value}"
    pattern = re.compile(rf"^\s*#?\s*{re.escape(key)}\s*=.*$", re.MULTILINE)
    text = pattern.sub(line, text, count=1) if pattern.search(text) else text + line + "\n"
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")


def configure_firewall(target_root: str, report: HardeningReport, *, packages: Sequence[str], allow_ssh: bool) -> None:
    if not best_effort(report, "install firewall", lambda: pacman_install(target_root, packages)):
        return
    best_effort(report, "deny inbound", lambda: run_in_target(target_root, ["ufw", "default", "deny", "incoming"]))
    best_effort(report, "allow outbound", lambda: run_in_target(target_root, ["ufw", "default", "allow", "outgoing"]))
    if allow_ssh:
        best_effort(report, "allow ssh", lambda: run_in_target(target_root, ["ufw", "allow", "ssh"]))
    best_effort(
        report,
        "enable ufw at boot",
        lambda: _set_conf_value(Path(target_root) / "etc/ufw/ufw.conf", "ENABLED", "yes"),
    )
    best_effort(report, "enable ufw.service", lambda: run_in_target(target_root, ["systemctl", "enable", "ufw"]))


def disable_services(target_root: str, report: HardeningReport, services: Sequence[str]) -> None:
    for svc in services:
        best_effort(
            report,
            f"disable {svc}",
            lambda s=svc: run_in_target(target_root, ["systemctl", "disable", f"{s}.service"]),
        )


def configure_fail2ban(target_root: str, report: HardeningReport, *, packages: Sequence[str]) -> None:
    if not best_effort(report, "install fail2ban", lambda: pacman_install(target_root, packages)):
        return
    best_effort(
        report,
        "sshd jail",
        lambda: write_target_file(target_root, "/etc/fail2ban/jail.local", FAIL2BAN_SSHD_JAIL),
    )
    best_effort(report, "enable fail2ban", lambda: run_in_target(target_root, ["systemctl", "enable", "fail2ban"]))


def restrict_homes(target_root: str, report: HardeningReport, username: str) -> None:
    for home in ("/root", f"/home/{username}"):
        best_effort(report, f"chmod 700 {home}", lambda h=home: run_in_target(target_root, ["chmod", "700", h]))

from __future__ import annotations

import logging
import re
from pathlib import Path

from ..context import InstallContext, PipelineStage
from ..errors import CommandError
from ..lib.chroot import run_in_target, set_passwords, write_target_file
from ..lib.pkg import install_aur_helper, pacman_install

logger = logging.getLogger(__name__)


def render_hosts(hostname: str) -> str:
    return "\n".join(
        [
            "127.0.0.1\tlocalhost",
            "::1\t\tlocalhost",
            f"127.0.1.1\t{hostname}.localdomain\t{hostname}",
            "",
        ]
    )


def enable_locale(locale_gen: str, locale: str) -> str:
    """Uncomment (or append) the locale's line in /etc/locale.gen."""

    charset = locale.split(".", 1)[1] if "." in locale else "UTF-8"
    entry = f"{locale} {charset}"
    pattern = re.compile(rf"^#\s*{re.escape(locale)}\s+{re.escape(charset)}\s*$", re.MULTILINE)
    if pattern.search(locale_gen):
        return pattern.sub(entry, locale_gen, count=1)
    if re.search(rf"^{re.escape(entry)}\s*$", locale_gen, re.MULTILINE):
        return locale_gen
    return locale_gen.rstrip("\n") + ("\n" if locale_gen else "") + entry + "\n"


BUILTIN_LOCALES = {"C", "POSIX"}


def needs_generation(locale: str) -> bool:
    """C and POSIX ship with glibc; everything else goes through locale-gen."""
    return locale.split(".", 1)[0] not in BUILTIN_LOCALES


def set_directive(text: str, key: str, value: str, *, sep: str = " ", commented: bool = True) -> str:
    """Set `key<sep>value`, replacing the first existing directive.

    commented=True also replaces a commented-out default (sshd_config style).
    """

    line = f"{key}{sep}{value}"
    lead = r"^\s*#?\s*" if commented else r"^"
    tail = r"\s*=" if sep == "=" else r"\s"
    pattern = re.compile(rf"{lead}{re.escape(key)}{tail}.*$", re.MULTILINE)
    if pattern.search(text):
        return pattern.sub(line, text, count=1)
    return text.rstrip("\n") + "\n" + line + "\n"


def harden_sshd_config(text: str, *, password_auth: bool) -> str:
    text = set_directive(text, "PermitRootLogin", "no")
    text = set_directive(text, "PubkeyAuthentication", "yes")
    return set_directive(text, "PasswordAuthentication", "yes" if password_auth else "no")


def render_mkinitcpio(text: str, *, modules: list[str], hooks: list[str]) -> str:
    text = set_directive(text, "MODULES", f"({' '.join(modules)})", sep="=", commented=False)
    return set_directive(text, "HOOKS", f"({' '.join(hooks)})", sep="=", commented=False)


def _edit(target_root: str, rel: str, fn) -> None:
    p = Path(target_root) / rel.lstrip("/")
    current = p.read_text(encoding="utf-8") if p.exists() else ""
    write_target_file(target_root, rel, fn(current))


class ConfigureSystemStep:
    step_id = "60_configure_system"
    stage = PipelineStage.CONFIGURED

    def run(self, ctx: InstallContext) -> None:
        ctx.require("config", "mount_plan")
        cfg = ctx.config
        settings = ctx.settings
        root = ctx.mount_root

        # Time
        run_in_target(root, ["ln", "-sf", f"/usr/share/zoneinfo/{cfg.timezone}", "/etc/localtime"])
        run_in_target(root, ["hwclock", "--systohc"])

        # Locale
        if needs_generation(cfg.locale):
            _edit(root, "/etc/locale.gen", lambda t: enable_locale(t, cfg.locale))
            run_in_target(root, ["locale-gen"])
        write_target_file(root, "/etc/locale.conf", f"LANG={cfg.locale}\n")

        # Network identity
        write_target_file(root, "/etc/hostname", cfg.hostname + "\n")
        write_target_file(root, "/etc/hosts", render_hosts(cfg.hostname))

        # Accounts
        run_in_target(
            root,
            ["useradd", "-m", "-G", ",".join(settings.user_groups), "-s", settings.user_shell, cfg.username],
        )
        set_passwords(root, {"root": cfg.root_password, cfg.username: cfg.user_password}, ctx.cleanup)
        write_target_file(root, "/etc/sudoers.d/wheel", "%wheel ALL=(ALL:ALL) ALL\n", mode=0o440)

        if ctx.package_options.enable_aur:
            try:
                install_aur_helper(root, cfg.username)
                ctx.decisions["aur_helper"] = "installed"
            except CommandError as e:
                logger.warning("AUR helper not installed: %s", e)
                ctx.decisions["aur_helper"] = "failed"

        # Services
        if settings.enabled_services:
            run_in_target(root, ["systemctl", "enable", *settings.enabled_services])

        if cfg.enable_ssh:
            ssh_pkgs = settings.packages("ssh")
            if ssh_pkgs:
                pacman_install(root, ssh_pkgs)
            _edit(root, "/etc/ssh/sshd_config", lambda t: harden_sshd_config(t, password_auth=cfg.ssh_password_auth))
            run_in_target(root, ["systemctl", "enable", "sshd"])

        # Initramfs with btrfs support
        _edit(
            root,
            "/etc/mkinitcpio.conf",
            lambda t: render_mkinitcpio(t, modules=settings.initramfs_modules, hooks=settings.initramfs_hooks),
        )
        run_in_target(root, ["mkinitcpio", "-P"])

        ctx.decisions["ssh_password_auth"] = cfg.ssh_password_auth if cfg.enable_ssh else None
        logger.info("Configured hostname=%s user=%s tz=%s locale=%s", cfg.hostname, cfg.username, cfg.timezone, cfg.locale)

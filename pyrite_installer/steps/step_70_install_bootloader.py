from __future__ import annotations

import logging

from ..context import InstallContext, PipelineStage
from ..errors import InstallerError
from ..lib.block import get_uuid
from ..lib.bootloader import build_entries, install_systemd_boot, write_boot_config

logger = logging.getLogger(__name__)


class InstallBootloaderStep:
    step_id = "70_install_bootloader"
    stage = PipelineStage.BOOTLOADER_INSTALLED

    def run(self, ctx: InstallContext) -> None:
        ctx.require("table", "mount_plan")
        settings = ctx.settings
        root_mount = ctx.mount_plan.root_spec

        if root_mount.source != ctx.table.root:
            raise InstallerError(f"Root mount source {root_mount.source} is not the root partition {ctx.table.root}")

        install_systemd_boot(target_root=ctx.mount_root, esp_path="/boot")

        root_uuid = get_uuid(ctx.table.root)
        entries = build_entries(
            root_uuid,
            root_mount,
            entry_id=str(settings.boot("entry_id") or "pyrite"),
            title=str(settings.boot("title") or "Pyrite Linux"),
            linux=str(settings.boot("linux") or "/vmlinuz-linux"),
            initrd=str(settings.boot("initrd") or "/initramfs-linux.img"),
            fallback_initrd=str(settings.boot("fallback_initrd") or "/initramfs-linux-fallback.img"),
        )
        write_boot_config(target_root=ctx.mount_root, entries=entries, timeout=int(settings.boot("timeout") or 3))

        ctx.boot_entries = entries
        ctx.decisions["root_uuid"] = root_uuid
        logger.info("Boot entries written (root UUID=%s)", root_uuid)

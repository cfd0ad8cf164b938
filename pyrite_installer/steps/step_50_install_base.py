from __future__ import annotations

import logging

from ..context import InstallContext, PipelineStage
from ..errors import CommandError
from ..lib.pkg import add_flathub_remote, pacman_install, pacstrap_rootfs, write_fstab

logger = logging.getLogger(__name__)


class InstallBaseStep:
    step_id = "50_install_base"
    stage = PipelineStage.BASE_INSTALLED

    def run(self, ctx: InstallContext) -> None:
        ctx.require("mount_plan")
        target_root = ctx.mount_root

        base = ctx.settings.packages("base")
        pacstrap_rootfs(target_root, base)
        if ctx.extra_packages:
            logger.info("Installing %d selected packages", len(ctx.extra_packages))
            pacman_install(target_root, ctx.extra_packages)

        if ctx.package_options.enable_flatpak:
            try:
                add_flathub_remote(target_root)
                ctx.decisions["flathub"] = "added"
            except CommandError as e:
                logger.warning("Could not add the Flathub remote: %s", e)
                ctx.decisions["flathub"] = "failed"

        # Same atime policy as the live mounts.
        atime = "noatime" if "noatime" in ctx.settings.btrfs_mount_options.split(",") else "relatime"
        write_fstab(target_root, atime_policy=atime)
        logger.info("Base system installed at %s", target_root)

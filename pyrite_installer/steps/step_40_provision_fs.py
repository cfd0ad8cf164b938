from __future__ import annotations

import logging

from ..context import InstallContext, PipelineStage
from ..lib.btrfs import SubvolumeLayout, provision

logger = logging.getLogger(__name__)


class ProvisionFilesystemStep:
    step_id = "40_provision_fs"
    stage = PipelineStage.FILESYSTEMS_MOUNTED

    def run(self, ctx: InstallContext) -> None:
        ctx.require("table", "config")

        layout = SubvolumeLayout.from_pairs(ctx.settings.subvolumes)
        ctx.mount_plan = provision(
            ctx.table,
            layout,
            mount_root=ctx.mount_root,
            shared_options=ctx.settings.btrfs_mount_options,
            cleanup=ctx.cleanup,
            use_swap=ctx.config.enable_swap and ctx.table.swap is not None,
        )
        ctx.decisions["subvolumes"] = [s.name for s in layout.subvolumes]
        ctx.decisions["mount_options"] = ctx.settings.btrfs_mount_options

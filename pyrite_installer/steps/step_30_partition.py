from __future__ import annotations

import logging

from ..context import InstallContext, PipelineStage
from ..lib.block import reprobe_disk
from ..lib.storage import execute_plan, write_bookkeeping

logger = logging.getLogger(__name__)


class PartitionStep:
    step_id = "30_partition"
    stage = PipelineStage.PARTITIONED

    def run(self, ctx: InstallContext) -> None:
        ctx.require("disk", "plan")

        # The disk was chosen interactively; make sure it is still the same one.
        reprobe_disk(ctx.disk)

        table = execute_plan(ctx.plan, mount_root=ctx.mount_root, settle_seconds=ctx.settings.settle_seconds)
        for p in write_bookkeeping(table, boot_file=ctx.paths.boot_part_file, root_file=ctx.paths.root_part_file):
            ctx.cleanup.register_file(p)

        ctx.table = table
        logger.info("Partitioned %s (root=%s efi=%s swap=%s)", table.disk, table.root, table.efi, table.swap)

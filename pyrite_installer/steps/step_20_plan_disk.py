from __future__ import annotations

import logging

from ..context import InstallContext, PipelineStage
from ..errors import AbortedByOperator
from ..lib.block import list_disks
from ..lib.storage import build_plan
from ..prompts import Prompter

logger = logging.getLogger(__name__)


class PlanDiskStep:
    step_id = "20_plan_disk"
    stage = PipelineStage.DISK_PLANNED

    def __init__(self, prompter: Prompter) -> None:
        self.prompter = prompter

    def run(self, ctx: InstallContext) -> None:
        ctx.require("config")
        cfg = ctx.config

        disks = list_disks(ctx.settings.min_disk_gb)
        disk = self.prompter.choose_disk(disks)
        plan = build_plan(
            disk.path,
            want_swap=cfg.enable_swap,
            swap_size_gb=cfg.swap_size_gb,
            esp_size_mib=ctx.settings.esp_size_mib,
        )

        logger.info("Selected %s", disk.describe())
        for n, spec in enumerate(plan.partitions, start=1):
            size = "remaining space" if spec.size_mib is None else f"{spec.size_mib} MiB"
            logger.info("  partition %d: %s (%s, %s)", n, spec.label, spec.fs_type, size)

        logger.warning("ALL DATA ON %s WILL BE DESTROYED", disk.path)
        if not self.prompter.confirm(f"Erase {disk.path} and install Pyrite Linux?", default=False):
            raise AbortedByOperator("Installation cancelled; no changes were made")

        ctx.disk = disk
        ctx.plan = plan
        ctx.decisions["target_disk"] = disk.path

from __future__ import annotations

import logging
import shutil
from pathlib import Path

from ..context import InstallContext, PipelineStage
from ..lib.command import run_cmd
from ..state_store import save_state

logger = logging.getLogger(__name__)


class FinalizeStep:
    step_id = "90_finalize"
    stage = PipelineStage.FINALIZED

    def __init__(self, log_path: str | None = None) -> None:
        self.log_path = log_path

    def run(self, ctx: InstallContext) -> None:
        ctx.require("mount_plan")
        target = Path(ctx.mount_root)

        record = ctx.record()
        record["stage"] = self.stage.value
        record["completed_steps"] = [*ctx.completed_steps, self.step_id]
        save_state(str(target / ctx.paths.state_record), record)

        if self.log_path and Path(self.log_path).exists():
            dest = target / "var/log" / Path(self.log_path).name
            dest.parent.mkdir(parents=True, exist_ok=True)
            shutil.copyfile(self.log_path, dest)
            logger.info("Copied installation log to %s", str(dest))

        run_cmd(["sync"])
        logger.info("Installation complete. Remove the installation media and reboot.")

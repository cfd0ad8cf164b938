from __future__ import annotations

import logging

from ..context import InstallContext, PipelineStage
from ..lib.requirements import check_all

logger = logging.getLogger(__name__)


class CheckRequirementsStep:
    step_id = "10_check_requirements"
    stage = PipelineStage.REQUIREMENTS_CHECKED

    def run(self, ctx: InstallContext) -> None:
        check_all(ctx.settings, ctx.paths)
        logger.info("All requirement checks passed")

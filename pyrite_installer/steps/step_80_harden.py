from __future__ import annotations

import logging

from ..context import InstallContext, PipelineStage
from ..lib.security import (
    HardeningReport,
    configure_fail2ban,
    configure_firewall,
    disable_services,
    restrict_homes,
)

logger = logging.getLogger(__name__)


class HardenStep:
    """Best-effort: failures are warnings, never fatal."""

    step_id = "80_harden"
    stage = PipelineStage.HARDENED

    def run(self, ctx: InstallContext) -> None:
        ctx.require("config")
        cfg = ctx.config
        settings = ctx.settings
        root = ctx.mount_root
        report = HardeningReport()

        if cfg.enable_firewall:
            configure_firewall(root, report, packages=settings.packages("firewall"), allow_ssh=cfg.enable_ssh)
        disable_services(root, report, settings.disabled_services)
        if cfg.enable_ssh:
            configure_fail2ban(root, report, packages=settings.packages("bruteforce"))
        restrict_homes(root, report, cfg.username)

        ctx.decisions["hardening"] = {"applied": report.applied, "warnings": report.warnings}
        if report.clean:
            logger.info("Hardening applied (%d steps)", len(report.applied))
        else:
            logger.warning("Hardening finished with %d warning(s)", len(report.warnings))

from __future__ import annotations

import logging

from ..context import InstallContext, PipelineStage
from ..lib.net import guess_timezone
from ..lib.pkg import merge_packages, read_hardware_packages, read_package_list, read_package_options
from ..lib.requirements import read_memory_mb
from ..prompts import Prompter, collect_config

logger = logging.getLogger(__name__)


class CollectConfigStep:
    step_id = "15_collect_config"
    stage = PipelineStage.CONFIG_COLLECTED

    def __init__(self, prompter: Prompter) -> None:
        self.prompter = prompter

    def run(self, ctx: InstallContext) -> None:
        settings = ctx.settings
        tz_guess = None
        if settings.geolocation_url:
            tz_guess = guess_timezone(settings.geolocation_url, timeout_s=settings.geolocation_timeout_s)
            logger.info("Geolocated timezone: %s", tz_guess or "unknown")

        ctx.config = collect_config(
            self.prompter,
            zoneinfo=ctx.paths.zoneinfo,
            timezone_guess=tz_guess,
            memory_gb=max(1, round(read_memory_mb(ctx.paths.meminfo) / 1024)),
        )

        # Inputs from hardware detection and profile selection, when they ran.
        ctx.package_options = read_package_options(ctx.paths.package_config_file)
        ctx.extra_packages = merge_packages(
            read_package_list(ctx.paths.packages_file),
            read_hardware_packages(ctx.paths.hardware_file),
            ["flatpak"] if ctx.package_options.enable_flatpak else [],
            exclude=settings.packages("base"),
        )

        ctx.decisions["config"] = ctx.config.public()
        ctx.decisions["extra_packages"] = len(ctx.extra_packages)
        ctx.decisions["aur"] = ctx.package_options.enable_aur
        ctx.decisions["flatpak"] = ctx.package_options.enable_flatpak
        logger.info("Configuration collected: %s", ctx.config.public())

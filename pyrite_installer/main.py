from __future__ import annotations

import argparse
import logging
from typing import Optional

from .cleanup import CleanupManager
from .context import InstallContext
from .errors import AbortedByOperator, InstallerError
from .lib.env import PATHS
from .logging_utils import DEFAULT_LOG_PATH, configure_logging
from .pipeline import run_pipeline
from .prompts import Prompter
from .settings import load_settings
from .steps import (
    CheckRequirementsStep,
    CollectConfigStep,
    ConfigureSystemStep,
    FinalizeStep,
    HardenStep,
    InstallBaseStep,
    InstallBootloaderStep,
    PartitionStep,
    PlanDiskStep,
    ProvisionFilesystemStep,
)

logger = logging.getLogger(__name__)


def build_steps(prompter: Prompter, log_path: Optional[str] = None):
    return [
        CheckRequirementsStep(),
        CollectConfigStep(prompter),
        PlanDiskStep(prompter),
        PartitionStep(),
        ProvisionFilesystemStep(),
        InstallBaseStep(),
        ConfigureSystemStep(),
        InstallBootloaderStep(),
        HardenStep(),
        FinalizeStep(log_path),
    ]


def _current_step(ctx: Optional[InstallContext]) -> Optional[str]:
    return ctx.decisions.get("current_step") if ctx else None


def run(*, log_path: str = DEFAULT_LOG_PATH, prompter: Optional[Prompter] = None) -> int:
    """Run the installer once. Returns the process exit code."""

    actual_log_path = configure_logging(log_path=log_path)
    prompter = prompter or Prompter()

    with CleanupManager(PATHS.mount_root).install() as cleanup:
        ctx: Optional[InstallContext] = None
        try:
            ctx = InstallContext(settings=load_settings(), cleanup=cleanup, paths=PATHS)
            run_pipeline(ctx=ctx, steps=build_steps(prompter, actual_log_path))
        except AbortedByOperator as e:
            logger.warning("%s", e)
            return 1
        except (InstallerError, OSError) as e:
            logger.error("Installation failed at %s: %s", _current_step(ctx), e)
            logger.error("See %s for details", actual_log_path)
            return 1
        except KeyboardInterrupt:
            logger.error("Interrupted by operator at %s", _current_step(ctx))
            return 130
        except Exception:
            logger.exception("Installation failed at %s", _current_step(ctx))
            logger.error("See %s for details", actual_log_path)
            return 1
    return 0


def main(argv: Optional[list[str]] = None) -> int:
    p = argparse.ArgumentParser(
        prog="pyrite-install",
        description="Install Pyrite Linux (btrfs + systemd-boot) onto a whole disk. All choices are asked interactively.",
    )
    p.add_argument("--log", default=DEFAULT_LOG_PATH, help="Path to the installation log")

    args = p.parse_args(argv)
    return run(log_path=args.log)


if __name__ == "__main__":
    raise SystemExit(main())

import pytest

from pyrite_installer.cleanup import CleanupManager
from pyrite_installer.context import InstallContext, PipelineStage
from pyrite_installer.errors import CommandError, InstallerError
from pyrite_installer.pipeline import run_pipeline
from pyrite_installer.settings import load_settings


class Recorder:
    def __init__(self, step_id, stage, log, fail=False):
        self.step_id = step_id
        self.stage = stage
        self.log = log
        self.fail = fail

    def run(self, ctx):
        self.log.append(self.step_id)
        if self.fail:
            raise CommandError(["mkfs.btrfs"], 1, "boom")


@pytest.fixture
def ctx():
    return InstallContext(settings=load_settings(), cleanup=CleanupManager("/mnt"))


def test_steps_run_in_order_and_advance_stage(ctx):
    log = []
    steps = [
        Recorder("10_check_requirements", PipelineStage.REQUIREMENTS_CHECKED, log),
        Recorder("20_plan_disk", PipelineStage.DISK_PLANNED, log),
    ]
    result = run_pipeline(ctx=ctx, steps=steps)
    assert log == result.ran_steps == ["10_check_requirements", "20_plan_disk"]
    assert ctx.stage is PipelineStage.DISK_PLANNED
    assert "current_step" not in ctx.decisions


def test_failure_stops_the_pipeline(ctx):
    log = []
    steps = [
        Recorder("20_plan_disk", PipelineStage.DISK_PLANNED, log),
        Recorder("30_partition", PipelineStage.PARTITIONED, log, fail=True),
        Recorder("40_provision_fs", PipelineStage.FILESYSTEMS_MOUNTED, log),
    ]
    with pytest.raises(CommandError):
        run_pipeline(ctx=ctx, steps=steps)
    assert log == ["20_plan_disk", "30_partition"]
    assert ctx.stage is PipelineStage.DISK_PLANNED
    assert ctx.completed_steps == ["20_plan_disk"]
    assert ctx.decisions["current_step"] == "30_partition"


def test_require_reports_missing_fields(ctx):
    with pytest.raises(InstallerError, match="table"):
        ctx.require("config", "table")


def test_record_never_contains_passwords(ctx):
    from pyrite_installer.context import SystemConfig

    ctx.config = SystemConfig(hostname="h", username="u", user_password="s3cret!", root_password="t0psecret")
    text = repr(ctx.record())
    assert "s3cret!" not in text and "t0psecret" not in text


def test_context_declares_its_cleanup_manager():
    from typing import get_type_hints

    assert get_type_hints(InstallContext)["cleanup"] is CleanupManager

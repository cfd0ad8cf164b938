from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Protocol, Sequence

from .context import InstallContext, PipelineStage

logger = logging.getLogger(__name__)


class Step(Protocol):
    """A single pipeline step; reaching its end moves the context to `stage`."""

    step_id: str
    stage: PipelineStage

    def run(self, ctx: InstallContext) -> None:
        ...


@dataclass(frozen=True)
class PipelineResult:
    ctx: InstallContext
    ran_steps: List[str]


def run_pipeline(*, ctx: InstallContext, steps: Sequence[Step]) -> PipelineResult:
    """Run steps strictly in order. A raised error stops the run where it is."""

    ran: List[str] = []
    for step in steps:
        logger.info("Running step %s", step.step_id)
        ctx.decisions["current_step"] = step.step_id
        step.run(ctx)
        ctx.stage = step.stage
        ctx.completed_steps.append(step.step_id)
        ran.append(step.step_id)

    ctx.decisions.pop("current_step", None)
    return PipelineResult(ctx=ctx, ran_steps=ran)

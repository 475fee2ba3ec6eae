from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional, Protocol, Sequence

from .context import RunContext
from .state_store import mark_step_completed, mark_step_failed

logger = logging.getLogger(__name__)


class Step(Protocol):
    """A single gated step: precondition, action, postcondition."""

    step_id: str

    def check(self, ctx: RunContext) -> None:
        ...

    def run(self, ctx: RunContext) -> None:
        ...

    def verify(self, ctx: RunContext) -> None:
        ...


class BaseStep:
    """Default no-op precondition and postcondition."""

    step_id = ""

    def check(self, ctx: RunContext) -> None:
        return None

    def run(self, ctx: RunContext) -> None:
        raise NotImplementedError

    def verify(self, ctx: RunContext) -> None:
        return None


@dataclass(frozen=True)
class PipelineResult:
    ran_steps: List[str]
    stopped_after: Optional[str] = None


def run_pipeline(
    *,
    ctx: RunContext,
    steps: Sequence[Step],
    stop_after: Optional[str] = None,
) -> PipelineResult:
    """Run steps in order; the first failure halts the run and is recorded."""

    ran: List[str] = []
    exe = ctx.record.setdefault("execution", {})

    for step in steps:
        exe["current_step"] = step.step_id
        logger.info("Running step %s", step.step_id)
        try:
            step.check(ctx)
            step.run(ctx)
            step.verify(ctx)
        except Exception as e:
            logger.error("Step %s failed: %s", step.step_id, e)
            mark_step_failed(ctx.record, step.step_id, e)
            raise
        mark_step_completed(ctx.record, step.step_id)
        ran.append(step.step_id)

        if stop_after is not None and step.step_id == stop_after:
            logger.info("Stopping after %s", stop_after)
            exe["current_step"] = None
            return PipelineResult(ran_steps=ran, stopped_after=stop_after)

    exe["current_step"] = None
    return PipelineResult(ran_steps=ran)

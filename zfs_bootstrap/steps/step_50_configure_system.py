from __future__ import annotations

import logging
from typing import List, Optional, Sequence

from ..context import RunContext
from ..lib.chroot import mount_chroot_binds
from ..pipeline import BaseStep
from ..stages import ChrootStage, build_stages

logger = logging.getLogger(__name__)


class ConfigureSystemStep(BaseStep):
    step_id = "50_configure_system"

    def __init__(self, stages: Optional[Sequence[ChrootStage]] = None) -> None:
        self.stages: List[ChrootStage] = list(stages) if stages is not None else build_stages()

    def run(self, ctx: RunContext) -> None:
        # Held open until teardown: zed in the next step needs /dev and /proc too.
        mount_chroot_binds(ctx.runner, ctx.root)

        ran: List[str] = []
        for stage in self.stages:
            if not stage.enabled(ctx):
                logger.info("Skipping stage %s (nothing configured)", stage.stage_id)
                continue
            logger.info("Running stage %s", stage.stage_id)
            stage.run(ctx)
            ran.append(stage.stage_id)

        ctx.decide("stages", ran)

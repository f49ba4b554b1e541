"""PipelineSchedule - cadence tick that triggers a pipeline run."""

import logging
from dataclasses import dataclass
from typing import Any

from wsi.domain.pipeline.model.value import RunOutcome
from wsi.domain.pipeline.service.scheduler import PipelineScheduler
from wsi.domain.shared.schedule import Schedule

logger = logging.getLogger(__name__)


@dataclass
class PipelineSchedule(Schedule):
    """Triggers a non-forced run on each tick.

    A tick that lands while a run is active is simply skipped. An aborted
    run is raised so the host counts consecutive failures.
    """

    scheduler: PipelineScheduler

    async def run(self, **params: Any) -> None:
        run = await self.scheduler.trigger_run(force=params.get("force", False))
        if run.outcome == RunOutcome.ABORTED:
            raise RuntimeError(f"Pipeline run aborted in {run.failed_stage}: {run.error}")
        logger.debug(f"Scheduled pipeline tick finished: {run.outcome}")

"""PipelineScheduler - single-flight orchestration of one pipeline run."""

import asyncio
import logging
from dataclasses import field

import logfire

from wsi.domain.catalog.port.url_repository import UrlRepository
from wsi.domain.pipeline.model.settings import PipelineSettings
from wsi.domain.pipeline.model.value import BatchSizes, PipelineRun, RunOutcome
from wsi.domain.pipeline.port.settings import SettingsProvider
from wsi.domain.pipeline.port.stages import StageFactory
from wsi.domain.shared.port.clock import Clock
from wsi.domain.shared.service import Service

logger = logging.getLogger(__name__)


class PipelineScheduler(Service):
    """Runs requeue, crawl, submission and inspection in sequence, one run at a time.

    The scheduler holds no timer; a cadence loop or a manual trigger calls
    ``trigger_run``. The running flag is checked and set with no await in
    between, so on one event loop the check-and-claim cannot interleave. A
    second non-forced trigger is rejected at once. A forced trigger waits
    for the active run to finish and then runs, never overlapping it.

    Each stage gets its own unit of work. A stage that raises aborts the
    run: its uncommitted work is rolled back, later stages are skipped, and
    the next trigger starts again from whatever state the URLs are in. Quota
    reservations commit on their own as they are made and stay spent.
    """

    stages: StageFactory
    settings: SettingsProvider
    clock: Clock
    batches: BatchSizes = field(default_factory=BatchSizes)
    _running: bool = field(default=False, init=False, repr=False)
    _idle: asyncio.Event = field(default_factory=asyncio.Event, init=False, repr=False)
    _last_run: PipelineRun | None = field(default=None, init=False, repr=False)

    def __post_init__(self) -> None:
        self._idle.set()

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def last_run(self) -> PipelineRun | None:
        return self._last_run

    async def trigger_run(
        self, force: bool = False, settings: PipelineSettings | None = None
    ) -> PipelineRun:
        if self._running and not force:
            logger.info("Pipeline run skipped: a run is already in progress")
            now = self.clock.now()
            return PipelineRun(started_at=now).finish(RunOutcome.SKIPPED_ALREADY_RUNNING, now)

        while self._running:
            await self._idle.wait()

        self._running = True
        self._idle.clear()
        try:
            return await self._execute(force, settings)
        finally:
            self._running = False
            self._idle.set()

    async def _execute(self, force: bool, settings: PipelineSettings | None) -> PipelineRun:
        run = PipelineRun(started_at=self.clock.now(), forced=force)
        stage = "settings"

        with logfire.span("PipelineScheduler.trigger_run", run_id=str(run.id), forced=force):
            try:
                snapshot = settings if settings is not None else await self.settings.get()
                if not snapshot.enabled:
                    logger.info("Pipeline run skipped: pipeline is disabled")
                    return run.finish(RunOutcome.SKIPPED_DISABLED, self.clock.now())

                stage = "requeue"
                async with self.stages.open() as stages:
                    run.requeued = await self._requeue_due(stages.urls)

                stage = "crawl"
                async with self.stages.open() as stages:
                    run.crawl = await stages.crawler.process_pending_urls(self.batches.crawl)

                stage = "submission"
                async with self.stages.open() as stages:
                    run.submission = await stages.submission.submit_ready(
                        self.batches.submit, snapshot
                    )

                stage = "inspection"
                async with self.stages.open() as stages:
                    run.inspection = await stages.inspection.process_submitted(
                        self.batches.inspect
                    )

                run.finish(RunOutcome.COMPLETED, self.clock.now())
            except asyncio.CancelledError:
                run.failed_stage = stage
                run.error = "cancelled"
                self._last_run = run.finish(RunOutcome.ABORTED, self.clock.now())
                logger.warning(f"Pipeline run {run.id} cancelled during {stage}")
                raise
            except Exception as e:
                run.failed_stage = stage
                run.error = str(e) or type(e).__name__
                run.finish(RunOutcome.ABORTED, self.clock.now())
                logger.error(f"Pipeline run {run.id} aborted in {stage}: {e}", exc_info=True)

        self._last_run = run
        logger.info(
            f"Pipeline run {run.id} {run.outcome}: requeued={run.requeued} "
            f"verified={run.verified} submitted={run.submitted} "
            f"failed={run.failed} retried={run.retried}"
        )
        return run

    async def _requeue_due(self, urls: UrlRepository) -> int:
        """Move RETRYING URLs whose delay has elapsed back to PENDING."""
        now = self.clock.now()
        due = await urls.list_due_retries(now, limit=self.batches.requeue)
        for item in due:
            item.requeue(now)
            await urls.save(item)
        if due:
            logger.info(f"Re-queued {len(due)} URL(s) for retry")
        return len(due)

"""Trigger queue and hosted cadence loop for the pipeline scheduler."""

import asyncio
import logging
from contextlib import AsyncExitStack
from dataclasses import dataclass, field
from datetime import UTC, datetime
from uuid import UUID, uuid4

from apscheduler import AsyncScheduler
from apscheduler.abc import Trigger
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger
from dishka import AsyncContainer

from wsi.config import SchedulerConfig
from wsi.domain.pipeline.model.value import PipelineRun
from wsi.domain.pipeline.schedule.pipeline_schedule import PipelineSchedule
from wsi.domain.pipeline.service.scheduler import PipelineScheduler
from wsi.domain.shared.error import RunQueueFullError
from wsi.util.di.scope import Scope

logger = logging.getLogger(__name__)

SCHEDULE_ID = "pipeline"


@dataclass
class RunRequest:
    """A queued request for a pipeline run."""

    force: bool
    future: asyncio.Future[PipelineRun]
    id: UUID = field(default_factory=uuid4)
    requested_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    started: bool = False


class RunTicket:
    """Handle returned to the caller of ``PipelineWorker.request_run``.

    Cancelling a waiter of ``wait()`` never touches the run itself; use
    ``cancel()`` to withdraw a request that has not started yet.
    """

    def __init__(self, request: RunRequest) -> None:
        self._request = request

    @property
    def id(self) -> UUID:
        return self._request.id

    @property
    def started(self) -> bool:
        return self._request.started

    def done(self) -> bool:
        return self._request.future.done()

    async def wait(self) -> PipelineRun:
        return await asyncio.shield(self._request.future)

    def cancel(self) -> bool:
        """Withdraw the request. Returns False once the run has started."""
        if self._request.started:
            return False
        return self._request.future.cancel()


class PipelineWorker:
    """Consumes run requests from a bounded queue, one at a time.

    Callers enqueue and get a ticket back at once; they never block on the
    run. A full queue is rejected rather than waited on.
    """

    def __init__(self, scheduler: PipelineScheduler, queue_size: int = 8) -> None:
        self._scheduler = scheduler
        self._queue: asyncio.Queue[RunRequest] = asyncio.Queue(maxsize=queue_size)
        self._task: asyncio.Task | None = None
        self._busy = False
        self._shutdown = False

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def request_run(self, force: bool = True) -> RunTicket:
        future: asyncio.Future[PipelineRun] = asyncio.get_running_loop().create_future()
        request = RunRequest(force=force, future=future)
        try:
            self._queue.put_nowait(request)
        except asyncio.QueueFull:
            raise RunQueueFullError(self._queue.maxsize) from None
        logger.info(f"Queued pipeline run request {request.id} (force={force})")
        return RunTicket(request)

    def start(self) -> asyncio.Task:
        """Start the worker loop in a background task."""
        self._shutdown = False
        self._task = asyncio.create_task(self._run(), name="pipeline-worker")
        logger.info("Pipeline worker started")
        return self._task

    async def stop(self, timeout: float = 30.0) -> None:
        """Stop the loop, letting an active run finish within ``timeout``."""
        self._shutdown = True
        if self._task is not None and not self._task.done():
            if not self._busy:
                self._task.cancel()
            done, _ = await asyncio.wait([self._task], timeout=timeout)
            if not done:
                self._task.cancel()
                await asyncio.wait([self._task])

        # Requests that never started are withdrawn
        while not self._queue.empty():
            self._queue.get_nowait().future.cancel()
        logger.info("Pipeline worker stopped")

    async def _run(self) -> None:
        try:
            while not self._shutdown:
                request = await self._queue.get()
                await self._process(request)
        except asyncio.CancelledError:
            logger.info("Pipeline worker cancelled")
            raise
        except Exception as e:
            logger.exception(f"Pipeline worker crashed: {e}")
            raise

    async def _process(self, request: RunRequest) -> None:
        if request.future.cancelled():
            logger.info(f"Skipping withdrawn run request {request.id}")
            return

        request.started = True
        self._busy = True
        try:
            run = await self._scheduler.trigger_run(force=request.force)
        except asyncio.CancelledError:
            request.future.cancel()
            raise
        except Exception as e:
            logger.error(f"Run request {request.id} failed: {e}")
            if not request.future.done():
                request.future.set_exception(e)
        else:
            if not request.future.done():
                request.future.set_result(run)
        finally:
            self._busy = False


class PipelineHost:
    """Runs the cadence schedule and the trigger queue worker.

    Usage:
        async with PipelineHost(container, worker, config.scheduler):
            await stop_event.wait()
    """

    def __init__(
        self,
        container: AsyncContainer,
        worker: PipelineWorker,
        config: SchedulerConfig,
    ) -> None:
        self._container = container
        self._worker = worker
        self._config = config
        self._scheduler: AsyncScheduler | None = None
        self._exit_stack: AsyncExitStack | None = None
        self._schedule_failures = 0

    @property
    def worker(self) -> PipelineWorker:
        return self._worker

    @property
    def consecutive_failures(self) -> int:
        return self._schedule_failures

    def build_trigger(self) -> Trigger:
        if self._config.cron:
            return CronTrigger.from_crontab(self._config.cron)
        return IntervalTrigger(seconds=self._config.interval_seconds)

    async def start(self) -> None:
        self._exit_stack = AsyncExitStack()
        await self._exit_stack.__aenter__()

        self._scheduler = AsyncScheduler()
        await self._exit_stack.enter_async_context(self._scheduler)

        trigger = self.build_trigger()
        await self._scheduler.add_schedule(self._run_schedule, trigger, id=SCHEDULE_ID)
        await self._scheduler.start_in_background()

        self._worker.start()
        logger.info(f"Pipeline host started (trigger={trigger})")

    async def stop(self, timeout: float = 30.0) -> None:
        await self._worker.stop(timeout=timeout)

        if self._exit_stack:
            await self._exit_stack.__aexit__(None, None, None)
            self._exit_stack = None

        logger.info("Pipeline host stopped")

    async def _run_schedule(self) -> None:
        """Cadence tick: run the pipeline schedule in a UOW scope."""
        try:
            async with self._container(scope=Scope.UOW) as scope:
                schedule = await scope.get(PipelineSchedule)
                await schedule.run()

            self._schedule_failures = 0
        except (asyncio.CancelledError, SystemExit, KeyboardInterrupt):
            raise
        except Exception as e:
            self._schedule_failures += 1
            failures = self._schedule_failures
            logger.error(f"Pipeline schedule failed (failures: {failures}): {e}")
            if failures >= 5:
                logger.critical(f"Pipeline schedule has failed {failures} consecutive times")

    async def __aenter__(self) -> "PipelineHost":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:  # noqa: ANN001
        await self.stop()

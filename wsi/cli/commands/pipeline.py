"""Pipeline commands: hosted loop, one-off runs and status."""

import asyncio
import signal

from wsi.cli.console import get_console
from wsi.cli.runtime import open_container, run
from wsi.config import Config
from wsi.domain.crawl.service.crawler import CrawlerService
from wsi.domain.inspection.service.inspection import InspectionService
from wsi.domain.pipeline.service.scheduler import PipelineScheduler
from wsi.domain.quota.service.ledger import QuotaLedger
from wsi.domain.shared.error import ConflictError
from wsi.infrastructure.persistence.repository.settings import SQLAlchemySettingsProvider
from wsi.infrastructure.pipeline.worker import PipelineHost
from wsi.util.di.scope import Scope


def serve() -> None:
    """Run the pipeline on its configured cadence until interrupted.

    SIGUSR1 queues an extra forced run.
    """

    async def main(config: Config) -> None:
        console = get_console()
        stop = asyncio.Event()
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, stop.set)

        async with open_container(config) as container:
            host = await container.get(PipelineHost)
            trigger = host.build_trigger()
            loop.add_signal_handler(signal.SIGUSR1, _queue_manual_run, host)
            async with host:
                console.success(f"Pipeline host running ({trigger}); Ctrl+C to stop")
                await stop.wait()
        console.info("Stopped")

    run(main)


def run_now() -> None:
    """Run the pipeline once now, waiting for any active run to finish first."""

    async def main(config: Config) -> None:
        async with open_container(config) as container:
            scheduler = await container.get(PipelineScheduler)
            result = await scheduler.trigger_run(force=True)
        get_console().run_summary(result)

    run(main)


def status() -> None:
    """Show queue depths, quota usage and effective settings."""

    async def main(config: Config) -> None:
        console = get_console()
        async with open_container(config) as container:
            async with container(scope=Scope.UOW) as scope:
                crawler = await scope.get(CrawlerService)
                inspection = await scope.get(InspectionService)
                ledger = await scope.get(QuotaLedger)
                settings = await (await scope.get(SQLAlchemySettingsProvider)).get()

                pending = await crawler.get_pending_count()
                inspecting = await inspection.get_pending_inspection_count()
                used = await ledger.global_used()
                accounts = await ledger.active_account_count()

        console.table(
            [
                {"key": "Enabled", "value": "yes" if settings.enabled else "no"},
                {"key": "Pending URLs", "value": pending},
                {"key": "Awaiting inspection", "value": inspecting},
                {"key": "Active accounts", "value": accounts},
                {"key": "Quota used today", "value": f"{used} / {settings.requests_per_day}"},
            ],
            [("key", "Metric"), ("value", "Value")],
            title="Pipeline status",
        )

    run(main)


def _queue_manual_run(host: PipelineHost) -> None:
    try:
        ticket = host.worker.request_run(force=True)
    except ConflictError as e:
        get_console().warning(e.message)
        return
    get_console().info(f"Queued manual run {ticket.id}")

"""Container-backed units of work for the scheduler."""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from dishka import AsyncContainer

from wsi.domain.catalog.model.value import ServiceAccountId
from wsi.domain.catalog.port.url_repository import UrlRepository
from wsi.domain.crawl.service.crawler import CrawlerService
from wsi.domain.inspection.service.inspection import InspectionService
from wsi.domain.pipeline.model.settings import PipelineSettings
from wsi.domain.pipeline.port.settings import SettingsProvider
from wsi.domain.pipeline.port.stages import PipelineStages, StageFactory
from wsi.domain.quota.port.reservations import QuotaReservations
from wsi.domain.quota.service.ledger import QuotaLedger
from wsi.domain.submission.service.submission import SubmissionService
from wsi.infrastructure.persistence.repository.settings import SQLAlchemySettingsProvider
from wsi.util.di.scope import Scope


class ContainerStageFactory(StageFactory):
    """Opens a UOW scope per stage.

    Its session commits when the stage returns and rolls back when it raises.
    """

    def __init__(self, container: AsyncContainer) -> None:
        self._container = container

    @asynccontextmanager
    async def open(self) -> AsyncIterator[PipelineStages]:
        async with self._container(scope=Scope.UOW) as scope:
            yield PipelineStages(
                urls=await scope.get(UrlRepository),
                crawler=await scope.get(CrawlerService),
                submission=await scope.get(SubmissionService),
                inspection=await scope.get(InspectionService),
            )


class ScopedSettingsProvider(SettingsProvider):
    """Reads the tenant settings in a short unit of work of its own."""

    def __init__(self, container: AsyncContainer) -> None:
        self._container = container

    async def get(self) -> PipelineSettings:
        async with self._container(scope=Scope.UOW) as scope:
            repo = await scope.get(SQLAlchemySettingsProvider)
            return await repo.get()


class ScopedQuotaReservations(QuotaReservations):
    """Each reservation runs and commits in a short unit of work of its own.

    The submission stage calls this between publish calls, so a unit is on
    record before the request that spends it goes out.
    """

    def __init__(self, container: AsyncContainer) -> None:
        self._container = container

    async def reserve(self, global_cap: int) -> ServiceAccountId | None:
        async with self._container(scope=Scope.UOW) as scope:
            ledger = await scope.get(QuotaLedger)
            return await ledger.reserve(global_cap)

    async def remaining_global(self, cap: int) -> int:
        async with self._container(scope=Scope.UOW) as scope:
            ledger = await scope.get(QuotaLedger)
            return await ledger.remaining_global(cap)

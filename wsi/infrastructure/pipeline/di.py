"""Dependency injection provider for the pipeline runtime."""

from dishka import AsyncContainer, from_context, provide

from wsi.config import Config
from wsi.domain.pipeline.port.settings import SettingsProvider
from wsi.domain.pipeline.port.stages import StageFactory
from wsi.domain.pipeline.service.scheduler import PipelineScheduler
from wsi.domain.quota.port.reservations import QuotaReservations
from wsi.domain.shared.port.clock import Clock
from wsi.infrastructure.clock import SystemClock
from wsi.infrastructure.pipeline.stages import (
    ContainerStageFactory,
    ScopedQuotaReservations,
    ScopedSettingsProvider,
)
from wsi.infrastructure.pipeline.worker import PipelineHost, PipelineWorker
from wsi.util.di.base import Provider
from wsi.util.di.scope import Scope


class RuntimeProvider(Provider):
    """Config from context, clock, stage factory, quota reservations, trigger queue and host.

    All APP-scoped singletons.
    """

    config = from_context(provides=Config, scope=Scope.APP)

    clock = provide(SystemClock, scope=Scope.APP, provides=Clock)

    @provide(scope=Scope.APP)
    def get_stage_factory(self, container: AsyncContainer) -> StageFactory:
        return ContainerStageFactory(container)

    @provide(scope=Scope.APP)
    def get_settings_provider(self, container: AsyncContainer) -> SettingsProvider:
        return ScopedSettingsProvider(container)

    @provide(scope=Scope.APP)
    def get_quota_reservations(self, container: AsyncContainer) -> QuotaReservations:
        return ScopedQuotaReservations(container)

    @provide(scope=Scope.APP)
    def get_worker(self, scheduler: PipelineScheduler, config: Config) -> PipelineWorker:
        return PipelineWorker(scheduler, queue_size=config.scheduler.queue_size)

    @provide(scope=Scope.APP)
    def get_host(
        self, container: AsyncContainer, worker: PipelineWorker, config: Config
    ) -> PipelineHost:
        return PipelineHost(container, worker, config.scheduler)

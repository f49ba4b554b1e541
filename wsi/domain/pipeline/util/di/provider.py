from datetime import timedelta

from dishka import provide

from wsi.config import Config
from wsi.domain.catalog.port.service_account_repository import ServiceAccountRepository
from wsi.domain.catalog.port.url_repository import UrlRepository
from wsi.domain.crawl.port.reachability import ReachabilityChecker
from wsi.domain.crawl.service.crawler import CrawlerService
from wsi.domain.inspection.model.retry_policy import RetryPolicy
from wsi.domain.inspection.service.inspection import InspectionService
from wsi.domain.pipeline.model.value import BatchSizes
from wsi.domain.pipeline.port.settings import SettingsProvider
from wsi.domain.pipeline.port.stages import StageFactory
from wsi.domain.pipeline.schedule.pipeline_schedule import PipelineSchedule
from wsi.domain.pipeline.service.scheduler import PipelineScheduler
from wsi.domain.quota.model.period import QuotaPeriod
from wsi.domain.quota.service.ledger import QuotaLedger
from wsi.domain.shared.port.clock import Clock
from wsi.domain.submission.port.indexing_api import IndexingApiClient
from wsi.domain.submission.service.submission import SubmissionService
from wsi.util.di.base import Provider
from wsi.util.di.scope import Scope


class PipelineProvider(Provider):
    """Pipeline stages, quota ledger and the scheduler.

    Stages and the ledger are UOW-scoped (fresh repositories per unit of
    work). The scheduler is an APP-scoped singleton since it owns the
    single-flight state.
    """

    @provide(scope=Scope.APP)
    def get_quota_period(self, config: Config) -> QuotaPeriod:
        return QuotaPeriod.for_timezone(config.tenant.timezone)

    @provide(scope=Scope.APP)
    def get_retry_policy(self, config: Config, period: QuotaPeriod) -> RetryPolicy:
        return RetryPolicy(
            period=period,
            base=timedelta(seconds=config.inspection.backoff_base_seconds),
            cap=timedelta(seconds=config.inspection.backoff_cap_seconds),
            max_attempts=config.pipeline.max_attempts,
        )

    @provide(scope=Scope.APP)
    def get_batch_sizes(self, config: Config) -> BatchSizes:
        return BatchSizes(
            crawl=config.pipeline.crawl_batch_size,
            submit=config.pipeline.submit_batch_size,
            inspect=config.pipeline.inspect_batch_size,
        )

    ledger = provide(QuotaLedger, scope=Scope.UOW)
    submission = provide(SubmissionService, scope=Scope.UOW)

    @provide(scope=Scope.UOW)
    def get_crawler(
        self,
        urls: UrlRepository,
        checker: ReachabilityChecker,
        clock: Clock,
        config: Config,
    ) -> CrawlerService:
        return CrawlerService(
            urls=urls, checker=checker, clock=clock, max_attempts=config.crawler.max_attempts
        )

    @provide(scope=Scope.UOW)
    def get_inspection(
        self,
        urls: UrlRepository,
        accounts: ServiceAccountRepository,
        api: IndexingApiClient,
        clock: Clock,
        policy: RetryPolicy,
        config: Config,
    ) -> InspectionService:
        return InspectionService(
            urls=urls,
            accounts=accounts,
            api=api,
            clock=clock,
            policy=policy,
            settle_delay=timedelta(seconds=config.inspection.settle_delay_seconds),
        )

    @provide(scope=Scope.APP)
    def get_scheduler(
        self,
        stages: StageFactory,
        settings: SettingsProvider,
        clock: Clock,
        batches: BatchSizes,
    ) -> PipelineScheduler:
        return PipelineScheduler(stages=stages, settings=settings, clock=clock, batches=batches)

    schedule = provide(PipelineSchedule, scope=Scope.UOW)

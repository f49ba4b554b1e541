"""Stage capability interfaces consumed by the scheduler."""

from abc import abstractmethod
from contextlib import AbstractAsyncContextManager
from dataclasses import dataclass
from typing import Protocol

from wsi.domain.catalog.port.url_repository import UrlRepository
from wsi.domain.crawl.service.crawler import CrawlSummary
from wsi.domain.inspection.service.inspection import InspectionSummary
from wsi.domain.pipeline.model.settings import PipelineSettings
from wsi.domain.shared.port import Port
from wsi.domain.submission.service.submission import SubmissionSummary


class CrawlerStage(Protocol):
    async def process_pending_urls(self, batch_size: int) -> CrawlSummary: ...

    async def get_pending_count(self) -> int: ...


class SubmissionStage(Protocol):
    async def submit_ready(
        self, batch_size: int, settings: PipelineSettings
    ) -> SubmissionSummary: ...


class InspectionStage(Protocol):
    async def process_submitted(self, batch_size: int) -> InspectionSummary: ...

    async def get_pending_inspection_count(self) -> int: ...


@dataclass
class PipelineStages:
    """Stages bound to one unit of work."""

    urls: UrlRepository
    crawler: CrawlerStage
    submission: SubmissionStage
    inspection: InspectionStage


class StageFactory(Port, Protocol):
    @abstractmethod
    def open(self) -> AbstractAsyncContextManager[PipelineStages]:
        """Open a unit of work. Changes are committed when the context exits cleanly."""
        ...

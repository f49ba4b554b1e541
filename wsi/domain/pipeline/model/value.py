"""Pipeline run descriptors."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from uuid import UUID, uuid4

from wsi.domain.crawl.service.crawler import CrawlSummary
from wsi.domain.inspection.service.inspection import InspectionSummary
from wsi.domain.submission.service.submission import SubmissionSummary


class RunOutcome(StrEnum):
    COMPLETED = "completed"
    ABORTED = "aborted"
    SKIPPED_ALREADY_RUNNING = "skipped_already_running"
    SKIPPED_DISABLED = "skipped_disabled"


@dataclass(frozen=True)
class BatchSizes:
    """Per-stage batch sizes, each independently configurable."""

    crawl: int = 100
    submit: int = 100
    inspect: int = 100
    requeue: int = 1000


@dataclass
class PipelineRun:
    """In-memory descriptor of one scheduler execution. Logged, never persisted."""

    started_at: datetime
    forced: bool = False
    id: UUID = field(default_factory=uuid4)
    outcome: RunOutcome | None = None
    ended_at: datetime | None = None
    requeued: int = 0
    crawl: CrawlSummary | None = None
    submission: SubmissionSummary | None = None
    inspection: InspectionSummary | None = None
    failed_stage: str | None = None
    error: str | None = None

    @property
    def verified(self) -> int:
        return self.crawl.verified if self.crawl else 0

    @property
    def submitted(self) -> int:
        return self.submission.submitted if self.submission else 0

    @property
    def failed(self) -> int:
        total = 0
        if self.crawl:
            total += self.crawl.failed
        if self.submission:
            total += self.submission.failed
        if self.inspection:
            total += self.inspection.failed
        return total

    @property
    def retried(self) -> int:
        return self.inspection.retried if self.inspection else 0

    def finish(self, outcome: RunOutcome, now: datetime) -> "PipelineRun":
        self.outcome = outcome
        self.ended_at = now
        return self

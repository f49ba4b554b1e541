"""InspectionService - reads submission outcomes and decides on retries."""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta

import logfire

from wsi.domain.catalog.model.url_item import UrlItem
from wsi.domain.catalog.model.value import FailureCategory, UrlItemStatus
from wsi.domain.catalog.port.service_account_repository import ServiceAccountRepository
from wsi.domain.catalog.port.url_repository import UrlRepository
from wsi.domain.inspection.model.classification import classify_outcome
from wsi.domain.inspection.model.retry_policy import RetryPolicy
from wsi.domain.inspection.model.value import Classification, RetryRecommendation
from wsi.domain.shared.error import ValidationError
from wsi.domain.shared.port.clock import Clock
from wsi.domain.shared.service import Service
from wsi.domain.submission.port.indexing_api import IndexingApiClient, NotificationType

logger = logging.getLogger(__name__)

# Tolerated difference between our clock and the API's notifyTime
_CLOCK_SKEW = timedelta(minutes=1)


@dataclass
class InspectionSummary:
    """Result of one inspection batch."""

    selected: int = 0
    completed: int = 0
    retried: int = 0
    failed: int = 0


class InspectionService(Service):
    """Moves SUBMITTED and INSPECTING URLs to COMPLETED, RETRYING or FAILED_PERMANENT.

    SUBMITTED URLs are only picked up once they have settled. A URL whose
    publish call failed is classified from the details recorded on it, without
    another API call. Re-entry of RETRYING URLs is left to the scheduler.
    """

    urls: UrlRepository
    accounts: ServiceAccountRepository
    api: IndexingApiClient
    clock: Clock
    policy: RetryPolicy
    settle_delay: timedelta = timedelta(minutes=5)

    async def process_submitted(self, batch_size: int) -> InspectionSummary:
        if batch_size <= 0:
            raise ValidationError("batch_size must be positive", field="batch_size")

        with logfire.span("InspectionService.process_submitted", batch_size=batch_size):
            items = await self._select(batch_size)
            summary = InspectionSummary(selected=len(items))

            for item in items:
                submitted_at = _submitted_at(item)
                if item.status == UrlItemStatus.SUBMITTED:
                    item.begin_inspection(self.clock.now())
                    await self.urls.save(item)

                classification = await self._classify(item, submitted_at)
                now = self.clock.now()

                if classification.succeeded:
                    item.complete(now, item.last_status_code)
                    summary.completed += 1
                else:
                    item.last_error = classification.reason
                    recommendation = self.analyze_failure(
                        item, classification.category, classification.ambiguous
                    )
                    if recommendation.should_retry:
                        item.schedule_retry(
                            now,
                            recommendation.delay,
                            recommendation.reason,
                            classification.reason,
                        )
                        summary.retried += 1
                    else:
                        detail = recommendation.detail or classification.reason
                        item.fail_permanently(now, detail, recommendation.reason)
                        summary.failed += 1
                        logger.info(f"URL {item.url} failed permanently: {detail}")
                await self.urls.save(item)

            logger.info(
                f"Inspection batch done: {summary.completed} completed, "
                f"{summary.retried} retrying, {summary.failed} failed of {summary.selected}"
            )
            return summary

    def analyze_failure(
        self,
        item: UrlItem,
        category: FailureCategory | None = None,
        ambiguous: bool = False,
    ) -> RetryRecommendation:
        """Recommendation for a failed URL, with the attempt ceiling applied.

        Falls back to the category recorded on the URL, then to TRANSIENT.
        """
        category = category or item.failure_category or FailureCategory.TRANSIENT
        return self.policy.recommend(category, item.attempt_count, self.clock.now(), ambiguous)

    async def get_pending_inspection_count(self) -> int:
        return await self.urls.count_by_status(
            [UrlItemStatus.SUBMITTED, UrlItemStatus.INSPECTING]
        )

    async def _select(self, batch_size: int) -> list[UrlItem]:
        settled_before = self.clock.now() - self.settle_delay
        inspecting = await self.urls.list_by_status([UrlItemStatus.INSPECTING], limit=batch_size)
        submitted = await self.urls.list_by_status(
            [UrlItemStatus.SUBMITTED], limit=batch_size, transitioned_before=settled_before
        )
        merged = sorted(inspecting + submitted, key=lambda i: (-i.priority, i.created_at))
        return merged[:batch_size]

    async def _classify(self, item: UrlItem, submitted_at: datetime | None) -> Classification:
        if item.submit_failed:
            if item.failure_category is not None:
                return Classification(
                    category=item.failure_category, reason=item.last_error or "submission failed"
                )
            return classify_outcome(False, item.last_status_code, item.last_error)

        account = (
            await self.accounts.get(item.service_account_id)
            if item.service_account_id is not None
            else None
        )
        if account is None:
            return Classification(
                category=FailureCategory.TRANSIENT,
                reason="no service account recorded for the submission",
                ambiguous=True,
            )

        notification = NotificationType.for_item_type(item.type)
        try:
            report = await self.api.get_outcome(account, item.url, notification)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.warning(f"Outcome query raised for {item.url}: {e}")
            return Classification(
                category=FailureCategory.TRANSIENT, reason=str(e) or type(e).__name__
            )

        item.last_status_code = report.status_code
        if (
            report.processed
            and report.notify_time is not None
            and submitted_at is not None
            and report.notify_time < submitted_at - _CLOCK_SKEW
        ):
            # The metadata on record belongs to an earlier notification
            return classify_outcome(
                None, report.status_code, "latest notification predates this submission"
            )
        return classify_outcome(report.processed, report.status_code, report.error)


def _submitted_at(item: UrlItem) -> datetime | None:
    """When the current submission was accepted, if it was."""
    if item.status == UrlItemStatus.SUBMITTED:
        return item.last_transition_at
    for record in reversed(item.history):
        if record.to_status == UrlItemStatus.SUBMITTED:
            return record.at
    return None

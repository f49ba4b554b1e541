"""SubmissionService - publishes verified URLs under per-account quota."""

import asyncio
import logging
from dataclasses import dataclass

import logfire

from wsi.domain.catalog.model.url_item import UrlItem
from wsi.domain.catalog.model.value import FailureCategory, ServiceAccountId, UrlItemStatus
from wsi.domain.catalog.port.service_account_repository import ServiceAccountRepository
from wsi.domain.catalog.port.url_repository import UrlRepository
from wsi.domain.pipeline.model.settings import PipelineSettings
from wsi.domain.quota.port.reservations import QuotaReservations
from wsi.domain.shared.error import ValidationError
from wsi.domain.shared.port.clock import Clock
from wsi.domain.shared.service import Service
from wsi.domain.submission.port.indexing_api import (
    IndexingApiClient,
    NotificationType,
    SubmissionReceipt,
)

logger = logging.getLogger(__name__)


@dataclass
class SubmissionSummary:
    """Result of one submission batch."""

    selected: int = 0
    submitted: int = 0
    failed: int = 0
    deferred: int = 0


class SubmissionService(Service):
    """Moves VERIFIED URLs to SUBMITTED, or to INSPECTING when the call fails.

    One unit of quota is reserved before every publish call and is not
    released if the call fails. A reservation is durable before the call is
    made, so a crash mid-batch never loses count of a spent unit. When no
    account can take the URL, or the global daily cap is used up, the URL
    goes back to PENDING with its attempt count untouched.
    """

    urls: UrlRepository
    accounts: ServiceAccountRepository
    quota: QuotaReservations
    api: IndexingApiClient
    clock: Clock

    async def submit_ready(self, batch_size: int, settings: PipelineSettings) -> SubmissionSummary:
        if batch_size <= 0:
            raise ValidationError("batch_size must be positive", field="batch_size")

        with logfire.span("SubmissionService.submit_ready", batch_size=batch_size):
            items = await self.urls.list_by_status(
                [UrlItemStatus.VERIFIED, UrlItemStatus.SUBMITTING], limit=batch_size
            )
            summary = SubmissionSummary(selected=len(items))
            cap = settings.requests_per_day
            cap_reached = False

            for item in items:
                if not cap_reached and await self.quota.remaining_global(cap) <= 0:
                    logger.info(
                        f"Global daily cap of {cap} reached, deferring the rest of the batch"
                    )
                    cap_reached = True

                account_id = None if cap_reached else await self.quota.reserve(cap)
                if account_id is None:
                    reason = "global daily cap reached" if cap_reached else "no quota available"
                    item.defer(self.clock.now(), reason)
                    await self.urls.save(item)
                    summary.deferred += 1
                    continue

                item.start_submission(self.clock.now())
                await self.urls.save(item)

                receipt = await self._publish(item, account_id)
                if receipt.accepted:
                    item.mark_submitted(self.clock.now(), account_id, receipt.status_code)
                    summary.submitted += 1
                else:
                    error = receipt.error or f"HTTP {receipt.status_code}"
                    item.mark_submission_failed(
                        self.clock.now(), error, receipt.status_code, receipt.category
                    )
                    summary.failed += 1
                    logger.info(f"Submission of {item.url} failed: {error}")
                await self.urls.save(item)

            logger.info(
                f"Submission batch done: {summary.submitted} submitted, {summary.failed} failed, "
                f"{summary.deferred} deferred of {summary.selected}"
            )
            return summary

    async def _publish(self, item: UrlItem, account_id: ServiceAccountId) -> SubmissionReceipt:
        account = await self.accounts.get(account_id)
        if account is None:
            return SubmissionReceipt(
                accepted=False,
                error=f"service account {account_id} disappeared",
                category=FailureCategory.TRANSIENT,
            )

        notification = NotificationType.for_item_type(item.type)
        try:
            return await self.api.publish(account, item.url, notification)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.warning(f"Publish raised for {item.url}: {e}")
            return SubmissionReceipt(accepted=False, error=str(e) or type(e).__name__)

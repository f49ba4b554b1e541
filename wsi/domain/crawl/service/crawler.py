"""CrawlerService - verifies that pending URLs are reachable and indexable."""

import asyncio
import logging
from dataclasses import dataclass

import logfire

from wsi.domain.catalog.model.url_item import UrlItem
from wsi.domain.catalog.model.value import UrlItemStatus, UrlItemType
from wsi.domain.catalog.port.url_repository import UrlRepository
from wsi.domain.crawl.port.reachability import ReachabilityChecker, ReachabilityResult
from wsi.domain.shared.error import ValidationError
from wsi.domain.shared.port.clock import Clock
from wsi.domain.shared.service import Service

logger = logging.getLogger(__name__)


@dataclass
class CrawlSummary:
    """Result of one crawler batch."""

    selected: int = 0
    verified: int = 0
    failed: int = 0


class CrawlerService(Service):
    """Moves URLs from PENDING through VERIFYING to VERIFIED or FAILED_VERIFICATION.

    Selection scopes by status, so a URL left in VERIFYING by an interrupted
    run is picked up again and verified as if it were fresh. Failures of a
    single URL are recorded on it; only repository errors escape the batch.
    """

    urls: UrlRepository
    checker: ReachabilityChecker
    clock: Clock
    max_attempts: int = 3

    async def process_pending_urls(self, batch_size: int) -> CrawlSummary:
        if batch_size <= 0:
            raise ValidationError("batch_size must be positive", field="batch_size")

        with logfire.span("CrawlerService.process_pending_urls", batch_size=batch_size):
            items = await self.urls.list_by_status(
                [UrlItemStatus.PENDING, UrlItemStatus.VERIFYING], limit=batch_size
            )
            summary = CrawlSummary(selected=len(items))

            for item in items:
                if item.status == UrlItemStatus.PENDING:
                    item.claim_for_verification(self.clock.now())
                    await self.urls.save(item)

                result, attempts = await self._verify(item)

                if result.reachable:
                    item.mark_verified(self.clock.now(), attempts)
                    summary.verified += 1
                else:
                    error = result.error or f"HTTP {result.status_code}"
                    item.mark_verification_failed(self.clock.now(), error, attempts)
                    summary.failed += 1
                    logger.info(
                        f"URL {item.url} failed verification after {attempts} attempt(s): {error}"
                    )
                await self.urls.save(item)

            logger.info(
                f"Crawl batch done: {summary.verified} verified, "
                f"{summary.failed} failed of {summary.selected}"
            )
            return summary

    async def get_pending_count(self) -> int:
        return await self.urls.count_by_status([UrlItemStatus.PENDING])

    async def _verify(self, item: UrlItem) -> tuple[ReachabilityResult, int]:
        """Check a URL with a small bounded number of immediate attempts."""
        if item.type == UrlItemType.DELETED:
            # Removal notices are expected to point at pages that are gone.
            return ReachabilityResult(reachable=True), 0

        result = ReachabilityResult.failed("not checked")
        attempts = 0
        for attempts in range(1, self.max_attempts + 1):
            try:
                result = await self.checker.check(item.url)
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.warning(f"Reachability check raised for {item.url}: {e}")
                result = ReachabilityResult.failed(str(e) or type(e).__name__, transient=True)

            if result.reachable or not result.transient:
                break
        return result, attempts

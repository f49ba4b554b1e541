"""UrlService - imports URLs and answers per-URL status queries."""

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from urllib.parse import urlsplit
from uuid import uuid4

from wsi.domain.catalog.model.url_item import UrlItem
from wsi.domain.catalog.model.value import UrlItemId, UrlItemPriority, UrlItemType
from wsi.domain.catalog.port.url_repository import UrlRepository
from wsi.domain.shared.error import NotFoundError, ValidationError
from wsi.domain.shared.port.clock import Clock
from wsi.domain.shared.service import Service

logger = logging.getLogger(__name__)


@dataclass
class ImportResult:
    """Result of a URL import."""

    imported: list[UrlItem] = field(default_factory=list)
    rejected: list[tuple[str, str]] = field(default_factory=list)  # (line, reason)


class UrlService(Service):
    urls: UrlRepository
    clock: Clock

    async def get_status(self, id: UrlItemId) -> UrlItem:
        """Current status, attempt count and transition history of a URL."""
        item = await self.urls.get(id)
        if item is None:
            raise NotFoundError(f"URL item not found: {id}")
        return item

    async def import_urls(
        self,
        lines: Iterable[str],
        type: UrlItemType = UrlItemType.UPDATED,
        priority: UrlItemPriority = UrlItemPriority.MEDIUM,
    ) -> ImportResult:
        """Create a PENDING item per URL. Blank lines and ``#`` comments are ignored."""
        result = ImportResult()
        for line in lines:
            url = line.strip()
            if not url or url.startswith("#"):
                continue
            try:
                _check_url(url)
                item = UrlItem.create(
                    UrlItemId(uuid4()), url, self.clock.now(), type=type, priority=priority
                )
            except ValidationError as e:
                result.rejected.append((url, e.message))
                continue
            await self.urls.add(item)
            result.imported.append(item)

        logger.info(f"Imported {len(result.imported)} URL(s), rejected {len(result.rejected)}")
        return result


def _check_url(url: str) -> None:
    parts = urlsplit(url)
    if parts.scheme not in ("http", "https") or not parts.netloc:
        raise ValidationError(f"Not an absolute http(s) URL: {url}", field="url")

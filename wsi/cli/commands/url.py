"""URL commands."""

from pathlib import Path
from uuid import UUID

import cyclopts

from wsi.cli.console import get_console
from wsi.cli.runtime import open_container, run
from wsi.config import Config
from wsi.domain.catalog.model.value import UrlItemId, UrlItemPriority, UrlItemType
from wsi.domain.catalog.service.url import UrlService
from wsi.domain.shared.error import ValidationError
from wsi.util.di.scope import Scope

app = cyclopts.App(name="url", help="Import URLs and inspect their progress")


@app.command
def show(id: str, /) -> None:
    """Show a URL's status, attempt count and transition history.

    Args:
        id: URL item id.
    """

    async def main(config: Config) -> None:
        try:
            item_id = UrlItemId(UUID(id))
        except ValueError:
            raise ValidationError(f"Not a valid id: {id}", field="id") from None

        async with open_container(config) as container:
            async with container(scope=Scope.UOW) as scope:
                service = await scope.get(UrlService)
                item = await service.get_status(item_id)
        get_console().url_detail(item)

    run(main)


@app.command(name="import")
def import_(
    file: Path,
    /,
    *,
    priority: UrlItemPriority = UrlItemPriority.MEDIUM,
    type: UrlItemType = UrlItemType.UPDATED,
) -> None:
    """Import URLs, one per line, as pending items.

    Args:
        file: Text file with one URL per line; blank lines and # comments are skipped.
        priority: Priority of the imported URLs.
        type: Notification type for the imported URLs.
    """

    async def main(config: Config) -> None:
        console = get_console()
        try:
            lines = file.read_text().splitlines()
        except OSError as e:
            raise ValidationError(f"Cannot read {file}: {e}", field="file") from e

        async with open_container(config) as container:
            async with container(scope=Scope.UOW) as scope:
                service = await scope.get(UrlService)
                result = await service.import_urls(lines, type=type, priority=priority)

        for line, reason in result.rejected:
            console.warning(f"Skipped {line}: {reason}")
        console.success(f"Imported {len(result.imported)} URL(s)")

    run(main)

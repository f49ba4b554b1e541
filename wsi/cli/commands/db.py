"""Database commands."""

import cyclopts

from wsi.cli.console import get_console
from wsi.cli.runtime import bootstrap
from wsi.infrastructure.persistence.database import resolve_url
from wsi.infrastructure.persistence.migrate import (
    current_revision,
    head_revision,
    run_migrations,
)

app = cyclopts.App(name="db", help="Database management")


@app.command
def migrate() -> None:
    """Apply pending database migrations."""
    config = bootstrap(migrate=False)
    with get_console().status("Applying migrations..."):
        run_migrations(config.database.url)
    get_console().success("Database is up to date")


@app.command
def status() -> None:
    """Show the current and latest schema revision."""
    config = bootstrap(migrate=False)
    current = current_revision(config.database.url)
    head = head_revision(config.database.url)
    console = get_console()
    console.table(
        [
            {"key": "Database", "value": resolve_url(config.database.url).render_as_string()},
            {"key": "Current", "value": current or "(empty)"},
            {"key": "Head", "value": head},
        ],
        [("key", "Revision"), ("value", "Value")],
    )
    if current != head:
        console.warning("Migrations pending; run `wsi db migrate`")

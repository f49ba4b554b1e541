"""Alembic migrations, run synchronously before the event loop starts."""

import logging
from pathlib import Path

from alembic import command
from alembic.config import Config as AlembicConfig
from alembic.runtime.migration import MigrationContext
from alembic.script import ScriptDirectory
from sqlalchemy import create_engine

from wsi.infrastructure.persistence.database import resolve_url

logger = logging.getLogger(__name__)

# Repository root, where alembic.ini and migrations/ live
PROJECT_ROOT = Path(__file__).parent.parent.parent.parent


def to_sync_url(database_url: str) -> str:
    """Swap the async driver for the dialect default driver (pysqlite, psycopg2)."""
    url = resolve_url(database_url)
    url = url.set(drivername=url.get_backend_name())
    return url.render_as_string(hide_password=False)


def get_alembic_config(database_url: str) -> AlembicConfig:
    config = AlembicConfig(str(PROJECT_ROOT / "alembic.ini"))
    config.set_main_option("script_location", str(PROJECT_ROOT / "migrations"))
    config.set_main_option("sqlalchemy.url", to_sync_url(database_url).replace("%", "%%"))
    return config


def current_revision(database_url: str) -> str | None:
    """Revision the database is at, or None for an empty database."""
    engine = create_engine(to_sync_url(database_url))
    try:
        with engine.connect() as conn:
            return MigrationContext.configure(conn).get_current_revision()
    finally:
        engine.dispose()


def head_revision(database_url: str) -> str | None:
    return ScriptDirectory.from_config(get_alembic_config(database_url)).get_current_head()


def run_migrations(database_url: str) -> None:
    """Upgrade the database to head; a no-op when already current."""
    current = current_revision(database_url)
    head = head_revision(database_url)
    if current == head:
        logger.debug(f"Database already at {head}")
        return

    logger.info(f"Migrating database from {current or 'empty'} to {head}")
    command.upgrade(get_alembic_config(database_url), "head")
    logger.info("Database migrations complete")

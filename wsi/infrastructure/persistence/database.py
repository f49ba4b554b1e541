"""Engine and session factory for the catalog database."""

import logging
from pathlib import Path
from typing import Any

from sqlalchemy import event
from sqlalchemy.engine import URL, make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from wsi.config import DatabaseConfig

logger = logging.getLogger(__name__)


def is_sqlite_file(url: URL) -> bool:
    return url.get_backend_name() == "sqlite" and url.database not in (None, "", ":memory:")


def resolve_url(raw: str) -> URL:
    """Parse a database URL, making SQLite file paths absolute.

    The parent directory of a SQLite file is created so a fresh install can
    point at ``~/.local/share/wsi/wsi.db`` without preparing anything.
    """
    url = make_url(raw)
    if not is_sqlite_file(url):
        return url
    path = Path(url.database).expanduser().resolve()
    path.parent.mkdir(parents=True, exist_ok=True)
    return url.set(database=str(path))


def create_db_engine(config: DatabaseConfig) -> AsyncEngine:
    url = resolve_url(config.url)

    if url.get_backend_name() == "sqlite":
        engine_kwargs: dict[str, Any] = {
            "echo": config.echo,
            # One shared connection: aiosqlite serialises access, and the quota
            # compare-and-increment relies on statements not interleaving.
            "poolclass": StaticPool,
            "connect_args": {"check_same_thread": False},
        }
    else:
        engine_kwargs = {
            "echo": config.echo,
            "pool_pre_ping": True,
            "pool_size": config.pool_size,
            "max_overflow": config.max_overflow,
        }

    engine = create_async_engine(url, **engine_kwargs)
    if url.get_backend_name() == "sqlite":
        event.listen(engine.sync_engine, "connect", _enable_sqlite_foreign_keys)
    logger.debug(f"Database engine created for {url.render_as_string(hide_password=True)}")
    return engine


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:  # noqa: ANN001
    # Transition history cascades with its URL
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys = ON")
    cursor.close()


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """One session per unit of work; objects stay readable after commit."""
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )

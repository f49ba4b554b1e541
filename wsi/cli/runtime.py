"""Process bootstrap shared by CLI commands."""

import asyncio
import logging
import sys
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager
from typing import TypeVar

import logfire
from dishka import AsyncContainer

from wsi.application.di import create_container
from wsi.cli.console import get_console
from wsi.config import Config, configure_logging
from wsi.domain.shared.error import WSIError
from wsi.infrastructure.persistence.migrate import run_migrations

logger = logging.getLogger(__name__)

T = TypeVar("T")


def bootstrap(migrate: bool = True) -> Config:
    """Load config, set up logging and tracing, and apply migrations if enabled."""
    # Pydantic Settings populates from env vars and WSI_CONFIG_FILE at runtime
    config = Config()
    configure_logging(config.logging)

    logfire.configure(send_to_logfire="if-token-present", service_name="wsi", console=False)
    logfire.instrument_httpx()

    if migrate and config.database.auto_migrate:
        run_migrations(config.database.url)
    return config


@asynccontextmanager
async def open_container(config: Config) -> AsyncIterator[AsyncContainer]:
    container = create_container(config)
    try:
        yield container
    finally:
        await container.close()


def run(main: Callable[[Config], Awaitable[T]], migrate: bool = True) -> T:
    """Run an async command, mapping WSI errors to a message and exit code 1."""
    try:
        config = bootstrap(migrate=migrate)
        return asyncio.run(main(config))
    except WSIError as e:
        logger.debug(f"Command failed: {e.code}", exc_info=True)
        get_console().error(e.message)
        sys.exit(1)

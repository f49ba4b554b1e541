"""Tenant settings commands."""

import cyclopts

from wsi.cli.console import get_console
from wsi.cli.runtime import open_container, run
from wsi.config import Config
from wsi.domain.pipeline.model.settings import PipelineSettings
from wsi.infrastructure.persistence.repository.settings import SQLAlchemySettingsProvider
from wsi.util.di.scope import Scope

app = cyclopts.App(name="settings", help="Show or override tenant settings")


def _print(settings: PipelineSettings) -> None:
    get_console().table(
        [
            {"key": "enabled", "value": settings.enabled},
            {"key": "requests_per_day", "value": settings.requests_per_day},
        ],
        [("key", "Setting"), ("value", "Value")],
    )


@app.command
def show() -> None:
    """Show the effective settings (stored overrides over config defaults)."""

    async def main(config: Config) -> None:
        async with open_container(config) as container:
            async with container(scope=Scope.UOW) as scope:
                settings = await (await scope.get(SQLAlchemySettingsProvider)).get()
        _print(settings)

    run(main)


@app.command(name="set")
def set_(*, enabled: bool | None = None, requests_per_day: int | None = None) -> None:
    """Override settings at runtime.

    Args:
        enabled: Enable or disable the pipeline.
        requests_per_day: Global cap on submissions per quota period across all accounts.
    """

    async def main(config: Config) -> None:
        async with open_container(config) as container:
            async with container(scope=Scope.UOW) as scope:
                repo = await scope.get(SQLAlchemySettingsProvider)
                settings = await repo.update(enabled=enabled, requests_per_day=requests_per_day)
        get_console().success("Settings updated")
        _print(settings)

    run(main)

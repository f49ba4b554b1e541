"""Service account commands."""

import json
from pathlib import Path
from uuid import UUID

import cyclopts

from wsi.cli.console import get_console
from wsi.cli.runtime import open_container, run
from wsi.config import Config
from wsi.domain.catalog.model.value import ServiceAccountId
from wsi.domain.catalog.service.account import AccountService
from wsi.domain.quota.service.ledger import QuotaLedger
from wsi.domain.shared.error import ValidationError
from wsi.util.di.scope import Scope

app = cyclopts.App(name="account", help="Manage indexing service accounts")


@app.command
def add(credentials: Path, /, *, quota: int = 200) -> None:
    """Register a service account from its JSON key file.

    Args:
        credentials: Path to the service-account JSON key. Stored by reference.
        quota: Daily request quota of the account.
    """

    async def main(config: Config) -> None:
        path = credentials.expanduser().resolve()
        try:
            key = json.loads(path.read_text())
        except (OSError, ValueError) as e:
            raise ValidationError(
                f"Cannot read credentials {path}: {e}", field="credentials"
            ) from e

        async with open_container(config) as container:
            async with container(scope=Scope.UOW) as scope:
                service = await scope.get(AccountService)
                account = await service.register(key.get("project_id", ""), str(path), quota)
        get_console().success(f"Registered account {account.id} ({account.project_id})")

    run(main)


@app.command(name="list")
def list_() -> None:
    """List active service accounts with today's usage."""

    async def main(config: Config) -> None:
        async with open_container(config) as container:
            async with container(scope=Scope.UOW) as scope:
                ledger = await scope.get(QuotaLedger)
                # Roll stale counters over so usage reflects the current period
                await ledger.select_candidate()
                accounts = await (await scope.get(AccountService)).list_active()

        get_console().table(
            [
                {
                    "id": a.id,
                    "project": a.project_id,
                    "usage": f"{a.quota_used_in_period} / {a.quota_limit_per_day}",
                }
                for a in accounts
            ],
            [("id", "ID"), ("project", "Project"), ("usage", "Used today")],
            title="Service accounts",
        )

    run(main)


@app.command
def delete(id: str, /) -> None:
    """Soft-delete a service account. Its past usage still counts toward today's cap.

    Args:
        id: Service account id.
    """

    async def main(config: Config) -> None:
        try:
            account_id = ServiceAccountId(UUID(id))
        except ValueError:
            raise ValidationError(f"Not a valid id: {id}", field="id") from None

        async with open_container(config) as container:
            async with container(scope=Scope.UOW) as scope:
                await (await scope.get(AccountService)).delete(account_id)
        get_console().success(f"Deleted account {id}")

    run(main)


@app.command
def update(id: str, /, *, quota: int) -> None:
    """Change the daily request quota of a service account.

    Args:
        id: Service account id.
        quota: New daily request quota. Usage already counted today is kept.
    """

    async def main(config: Config) -> None:
        try:
            account_id = ServiceAccountId(UUID(id))
        except ValueError:
            raise ValidationError(f"Not a valid id: {id}", field="id") from None

        async with open_container(config) as container:
            async with container(scope=Scope.UOW) as scope:
                account = await (await scope.get(AccountService)).update_quota(account_id, quota)
        get_console().success(
            f"Account {id} quota set to {account.quota_limit_per_day} "
            f"({account.remaining_quota} left today)"
        )

    run(main)


@app.command
def reset(id: str, /) -> None:
    """Reset an account's usage for the current quota period.

    Args:
        id: Service account id.
    """

    async def main(config: Config) -> None:
        try:
            account_id = ServiceAccountId(UUID(id))
        except ValueError:
            raise ValidationError(f"Not a valid id: {id}", field="id") from None

        async with open_container(config) as container:
            async with container(scope=Scope.UOW) as scope:
                await (await scope.get(QuotaLedger)).reset(account_id)
        get_console().success(f"Quota reset for account {id}")

    run(main)

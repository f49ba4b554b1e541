"""Unit tests for UrlService and AccountService."""

from uuid import uuid4

import pytest

from tests.fakes import InMemoryServiceAccountRepository, make_account, make_url
from wsi.domain.catalog.model.value import (
    ServiceAccountId,
    UrlItemId,
    UrlItemPriority,
    UrlItemStatus,
    UrlItemType,
)
from wsi.domain.catalog.service.account import AccountService
from wsi.domain.catalog.service.url import UrlService
from wsi.domain.shared.error import NotFoundError, ValidationError


class TestUrlService:
    @pytest.mark.asyncio
    async def test_import_skips_blank_lines_and_comments(self, urls, clock):
        """Only real URLs become items; comments and blank lines are ignored."""
        # Arrange
        service = UrlService(urls=urls, clock=clock)
        lines = [
            "https://example.com/a\n",
            "\n",
            "# a comment\n",
            "http://example.com/b",
        ]

        # Act
        result = await service.import_urls(lines, UrlItemType.NEW, UrlItemPriority.HIGH)

        # Assert
        assert [i.url for i in result.imported] == ["https://example.com/a", "http://example.com/b"]
        assert result.rejected == []
        stored = urls.all()
        assert len(stored) == 2
        assert all(i.status == UrlItemStatus.PENDING for i in stored)
        assert all(i.priority == UrlItemPriority.HIGH for i in stored)
        assert all(i.type == UrlItemType.NEW for i in stored)

    @pytest.mark.asyncio
    async def test_import_rejects_non_http_urls(self, urls, clock):
        service = UrlService(urls=urls, clock=clock)

        result = await service.import_urls(["ftp://example.com/file", "/relative/path"])

        assert result.imported == []
        assert [line for line, _ in result.rejected] == ["ftp://example.com/file", "/relative/path"]
        assert urls.all() == []

    @pytest.mark.asyncio
    async def test_get_status_returns_history(self, urls, clock):
        item = make_url()
        item.claim_for_verification(clock.now())
        await urls.add(item)
        service = UrlService(urls=urls, clock=clock)

        found = await service.get_status(item.id)

        assert found.status == UrlItemStatus.VERIFYING
        assert len(found.history) == 1

    @pytest.mark.asyncio
    async def test_get_status_unknown_raises(self, urls, clock):
        service = UrlService(urls=urls, clock=clock)

        with pytest.raises(NotFoundError):
            await service.get_status(UrlItemId(uuid4()))


class TestAccountService:
    @pytest.mark.asyncio
    async def test_register_creates_active_account(self, accounts, clock):
        service = AccountService(accounts=accounts, clock=clock)

        account = await service.register("proj-1", "/keys/a.json", 200)

        active = await service.list_active()
        assert [a.id for a in active] == [account.id]
        assert active[0].quota_limit_per_day == 200
        assert active[0].quota_used_in_period == 0

    @pytest.mark.asyncio
    async def test_register_rejects_negative_quota(self, accounts, clock):
        service = AccountService(accounts=accounts, clock=clock)

        with pytest.raises(ValidationError):
            await service.register("proj-1", "/keys/a.json", -1)

    @pytest.mark.asyncio
    async def test_delete_is_soft(self, accounts, clock):
        """Deleted accounts leave the active list but stay stored."""
        # Arrange
        service = AccountService(accounts=accounts, clock=clock)
        account = await service.register("proj-1", "/keys/a.json", 200)

        # Act
        await service.delete(account.id)

        # Assert
        assert await service.list_active() == []
        stored = await accounts.get(account.id)
        assert stored is not None
        assert stored.deleted_at == clock.now()

    @pytest.mark.asyncio
    async def test_delete_unknown_raises(self, accounts, clock):
        service = AccountService(accounts=accounts, clock=clock)

        with pytest.raises(NotFoundError):
            await service.delete(ServiceAccountId(uuid4()))

    @pytest.mark.asyncio
    async def test_lowering_quota_below_usage_leaves_nothing_remaining(self, clock):
        """Usage counted today stays; the account simply has no quota left."""
        # Arrange
        accounts = InMemoryServiceAccountRepository(
            [make_account(limit=100, used=80, period_start=clock.now())]
        )
        [account] = await accounts.list_active()
        service = AccountService(accounts=accounts, clock=clock)

        # Act
        updated = await service.update_quota(account.id, 50)

        # Assert
        assert updated.remaining_quota == 0
        [stored] = await service.list_active()
        assert stored.quota_limit_per_day == 50
        assert stored.quota_used_in_period == 80
        assert stored.remaining_quota == 0

    @pytest.mark.asyncio
    async def test_raising_quota_frees_capacity(self, clock):
        accounts = InMemoryServiceAccountRepository(
            [make_account(limit=10, used=10, period_start=clock.now())]
        )
        [account] = await accounts.list_active()
        service = AccountService(accounts=accounts, clock=clock)

        updated = await service.update_quota(account.id, 25)

        assert updated.remaining_quota == 15

    @pytest.mark.asyncio
    async def test_update_quota_rejects_negative_limit(self, accounts, clock):
        service = AccountService(accounts=accounts, clock=clock)
        account = await service.register("proj-1", "/keys/a.json", 200)

        with pytest.raises(ValidationError):
            await service.update_quota(account.id, -5)

        assert (await accounts.get(account.id)).quota_limit_per_day == 200

    @pytest.mark.asyncio
    async def test_update_quota_of_deleted_account_raises(self, accounts, clock):
        service = AccountService(accounts=accounts, clock=clock)
        account = await service.register("proj-1", "/keys/a.json", 200)
        await service.delete(account.id)

        with pytest.raises(NotFoundError):
            await service.update_quota(account.id, 10)

"""SQLAlchemy repositories against a throwaway SQLite database."""

import asyncio
from datetime import timedelta

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncEngine

from tests.fakes import NOON, make_account, make_url
from wsi.config import DatabaseConfig, PipelineConfig
from wsi.domain.catalog.model.value import FailureCategory, UrlItemPriority, UrlItemStatus
from wsi.domain.shared.error import ValidationError
from wsi.infrastructure.persistence.database import create_db_engine, create_session_factory
from wsi.infrastructure.persistence.repository.service_account import (
    SQLAlchemyServiceAccountRepository,
)
from wsi.infrastructure.persistence.repository.settings import SQLAlchemySettingsProvider
from wsi.infrastructure.persistence.repository.url import SQLAlchemyUrlRepository
from wsi.infrastructure.persistence.tables import metadata

S = UrlItemStatus
TODAY = NOON.replace(hour=0)
YESTERDAY = TODAY - timedelta(days=1)


@pytest_asyncio.fixture
async def engine(tmp_path):
    """Per-test engine on a fresh SQLite file."""
    engine = create_db_engine(DatabaseConfig(url=f"sqlite+aiosqlite:///{tmp_path}/wsi.db"))
    async with engine.begin() as conn:
        await conn.run_sync(metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def session(engine: AsyncEngine):
    factory = create_session_factory(engine)
    async with factory() as session:
        yield session
        await session.rollback()


class TestUrlRepository:
    @pytest.mark.asyncio
    async def test_round_trip_with_history(self, session):
        # Arrange
        repo = SQLAlchemyUrlRepository(session)
        item = make_url(priority=UrlItemPriority.HIGH)
        item.claim_for_verification(NOON)
        item.mark_verified(NOON + timedelta(seconds=5), attempts=2)

        # Act
        await repo.add(item)
        loaded = await repo.get(item.id)

        # Assert
        assert loaded is not None
        assert loaded.status == S.VERIFIED
        assert loaded.priority == UrlItemPriority.HIGH
        assert loaded.verification_attempts == 2
        assert loaded.created_at == NOON
        assert loaded.last_transition_at == NOON + timedelta(seconds=5)
        assert [(r.from_status, r.to_status) for r in loaded.history] == [
            (S.PENDING, S.VERIFYING),
            (S.VERIFYING, S.VERIFIED),
        ]

    @pytest.mark.asyncio
    async def test_save_appends_only_new_history(self, session):
        """Saving twice never duplicates transition records."""
        # Arrange
        repo = SQLAlchemyUrlRepository(session)
        item = make_url(status=S.INSPECTING)
        await repo.add(item)

        # Act
        item.schedule_retry(NOON, timedelta(minutes=2), FailureCategory.TRANSIENT, "HTTP 503")
        await repo.save(item)
        await repo.save(item)
        loaded = await repo.get(item.id)

        # Assert
        assert loaded.status == S.RETRYING
        assert loaded.attempt_count == 1
        assert loaded.retry_not_before == NOON + timedelta(minutes=2)
        assert len(loaded.history) == 1
        assert loaded.history[0].retry_delay == timedelta(minutes=2)
        assert loaded.history[0].category == FailureCategory.TRANSIENT

    @pytest.mark.asyncio
    async def test_list_by_status_orders_by_priority_then_age(self, session):
        repo = SQLAlchemyUrlRepository(session)
        old_low = make_url(
            "https://e.com/1", now=NOON - timedelta(hours=2), priority=UrlItemPriority.LOW
        )
        new_high = make_url("https://e.com/2", now=NOON, priority=UrlItemPriority.HIGH)
        old_high = make_url(
            "https://e.com/3", now=NOON - timedelta(hours=1), priority=UrlItemPriority.HIGH
        )
        done = make_url("https://e.com/4", status=S.COMPLETED)
        for item in (old_low, new_high, old_high, done):
            await repo.add(item)

        found = await repo.list_by_status([S.PENDING], limit=10)

        assert [i.id for i in found] == [old_high.id, new_high.id, old_low.id]
        assert len(await repo.list_by_status([S.PENDING], limit=2)) == 2

    @pytest.mark.asyncio
    async def test_list_by_status_transitioned_before(self, session):
        repo = SQLAlchemyUrlRepository(session)
        settled = make_url(
            "https://e.com/a", now=NOON - timedelta(minutes=10), status=S.SUBMITTED
        )
        fresh = make_url("https://e.com/b", now=NOON, status=S.SUBMITTED)
        await repo.add(settled)
        await repo.add(fresh)

        found = await repo.list_by_status(
            [S.SUBMITTED], limit=10, transitioned_before=NOON - timedelta(minutes=5)
        )

        assert [i.id for i in found] == [settled.id]

    @pytest.mark.asyncio
    async def test_due_retries_and_counts(self, session):
        repo = SQLAlchemyUrlRepository(session)
        due = make_url("https://e.com/a", status=S.RETRYING, retry_not_before=NOON)
        later = make_url(
            "https://e.com/b", status=S.RETRYING, retry_not_before=NOON + timedelta(hours=1)
        )
        await repo.add(due)
        await repo.add(later)

        found = await repo.list_due_retries(NOON, limit=10)

        assert [i.id for i in found] == [due.id]
        assert await repo.count_by_status([S.RETRYING]) == 2
        assert await repo.count_by_status([S.PENDING]) == 0


class TestServiceAccountRepository:
    @pytest.mark.asyncio
    async def test_increment_respects_limit(self, session):
        # Arrange
        repo = SQLAlchemyServiceAccountRepository(session)
        account = make_account(limit=2, used=1, period_start=TODAY)
        await repo.add(account)

        # Act
        first = await repo.try_increment_quota(account.id, 1, TODAY)
        second = await repo.try_increment_quota(account.id, 1, TODAY)

        # Assert
        assert (first, second) == (True, False)
        assert (await repo.get(account.id)).quota_used_in_period == 2

    @pytest.mark.asyncio
    async def test_increment_requires_matching_period(self, session):
        repo = SQLAlchemyServiceAccountRepository(session)
        account = make_account(limit=10, period_start=YESTERDAY)
        await repo.add(account)

        assert not await repo.try_increment_quota(account.id, 1, TODAY)

    @pytest.mark.asyncio
    async def test_increment_refuses_deleted_account(self, session):
        repo = SQLAlchemyServiceAccountRepository(session)
        account = make_account(limit=10, period_start=TODAY, deleted_at=NOON)
        await repo.add(account)

        assert not await repo.try_increment_quota(account.id, 1, TODAY)

    @pytest.mark.asyncio
    async def test_increment_enforces_global_cap(self, session):
        """The cap counts usage of every account in the period."""
        # Arrange
        repo = SQLAlchemyServiceAccountRepository(session)
        first = make_account(limit=10, used=6, period_start=TODAY)
        second = make_account(limit=10, used=3, period_start=TODAY)
        stale = make_account(limit=10, used=9, period_start=YESTERDAY)
        for account in (first, second, stale):
            await repo.add(account)

        # Act
        allowed = await repo.try_increment_quota(second.id, 1, TODAY, global_cap=10)
        refused = await repo.try_increment_quota(second.id, 1, TODAY, global_cap=10)

        # Assert
        assert allowed
        assert not refused
        assert await repo.total_used(TODAY) == 10

    @pytest.mark.asyncio
    async def test_reset_only_if_older(self, session):
        repo = SQLAlchemyServiceAccountRepository(session)
        account = make_account(limit=10, used=4, period_start=YESTERDAY)
        await repo.add(account)

        assert await repo.reset_quota(account.id, TODAY)
        assert not await repo.reset_quota(account.id, TODAY)
        assert await repo.reset_quota(account.id, TODAY, only_if_older=False)

        stored = await repo.get(account.id)
        assert stored.quota_used_in_period == 0
        assert stored.quota_period_start == TODAY

    @pytest.mark.asyncio
    async def test_save_never_touches_usage(self, session):
        # Arrange
        repo = SQLAlchemyServiceAccountRepository(session)
        account = make_account(limit=10, used=4, period_start=TODAY)
        await repo.add(account)
        await repo.try_increment_quota(account.id, 1, TODAY)

        # Act
        account.mark_deleted(NOON)
        await repo.save(account)

        # Assert
        stored = await repo.get(account.id)
        assert stored.quota_used_in_period == 5
        assert stored.deleted_at == NOON
        assert await repo.list_active() == []

    @pytest.mark.asyncio
    async def test_limit_lowered_below_usage_still_loads(self, session):
        # Arrange
        repo = SQLAlchemyServiceAccountRepository(session)
        account = make_account(limit=100, used=80, period_start=TODAY)
        await repo.add(account)

        # Act
        account.update_quota(50)
        await repo.save(account)

        # Assert
        [stored] = await repo.list_active()
        assert stored.quota_limit_per_day == 50
        assert stored.quota_used_in_period == 80
        assert stored.remaining_quota == 0
        assert not await repo.try_increment_quota(account.id, 1, TODAY)


class TestConcurrentReservations:
    """Two engines on one database file stand in for two worker processes."""

    @pytest_asyncio.fixture
    async def other_engine(self, engine: AsyncEngine):
        other = create_db_engine(DatabaseConfig(url=engine.url.render_as_string()))
        yield other
        await other.dispose()

    async def seed(self, engine: AsyncEngine, *accounts) -> None:
        async with create_session_factory(engine)() as session:
            repo = SQLAlchemyServiceAccountRepository(session)
            for account in accounts:
                await repo.add(account)
            await session.commit()

    async def reserve(self, engine: AsyncEngine, account, global_cap=None) -> bool:
        async with create_session_factory(engine)() as session:
            repo = SQLAlchemyServiceAccountRepository(session)
            consumed = await repo.try_increment_quota(
                account.id, 1, TODAY, global_cap=global_cap
            )
            await session.commit()
            return consumed

    @pytest.mark.asyncio
    async def test_last_unit_goes_to_exactly_one_caller(self, engine, other_engine):
        # Arrange
        account = make_account(limit=100, used=99, period_start=TODAY)
        await self.seed(engine, account)

        # Act
        results = await asyncio.gather(
            self.reserve(engine, account), self.reserve(other_engine, account)
        )

        # Assert
        assert sorted(results) == [False, True]
        async with create_session_factory(engine)() as session:
            stored = await SQLAlchemyServiceAccountRepository(session).get(account.id)
        assert stored.quota_used_in_period == 100

    @pytest.mark.asyncio
    async def test_global_cap_holds_across_callers(self, engine, other_engine):
        """Separate accounts, one unit left under the cap: only one caller gets it."""
        # Arrange
        first = make_account(limit=10, used=5, period_start=TODAY)
        second = make_account(limit=10, used=4, period_start=TODAY)
        await self.seed(engine, first, second)

        # Act
        results = await asyncio.gather(
            self.reserve(engine, first, global_cap=10),
            self.reserve(other_engine, second, global_cap=10),
        )

        # Assert
        assert sorted(results) == [False, True]
        async with create_session_factory(engine)() as session:
            total = await SQLAlchemyServiceAccountRepository(session).total_used(TODAY)
        assert total == 10


class TestSettingsProvider:
    @pytest.mark.asyncio
    async def test_defaults_without_row(self, session):
        provider = SQLAlchemySettingsProvider(
            session, PipelineConfig(enabled=False, requests_per_day=200)
        )

        settings = await provider.get()

        assert settings.enabled is False
        assert settings.requests_per_day == 200

    @pytest.mark.asyncio
    async def test_update_overrides_only_given_values(self, session):
        provider = SQLAlchemySettingsProvider(
            session, PipelineConfig(enabled=False, requests_per_day=200)
        )

        await provider.update(enabled=True)
        settings = await provider.update(requests_per_day=50)

        assert settings.enabled is True
        assert settings.requests_per_day == 50

    @pytest.mark.asyncio
    async def test_update_rejects_negative_cap(self, session):
        provider = SQLAlchemySettingsProvider(session, PipelineConfig())

        with pytest.raises(ValidationError):
            await provider.update(requests_per_day=-1)

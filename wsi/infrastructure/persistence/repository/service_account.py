from datetime import datetime

from sqlalchemy import func, insert, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from wsi.domain.catalog.model.service_account import ServiceAccount
from wsi.domain.catalog.model.value import ServiceAccountId
from wsi.domain.catalog.port.service_account_repository import ServiceAccountRepository
from wsi.infrastructure.persistence.errors import storage_errors
from wsi.infrastructure.persistence.mappers.service_account import (
    row_to_service_account,
    service_account_to_dict,
)
from wsi.infrastructure.persistence.mappers.url_item import as_utc
from wsi.infrastructure.persistence.tables import service_accounts_table

t = service_accounts_table


class SQLAlchemyServiceAccountRepository(ServiceAccountRepository):
    """SQLAlchemy Core implementation of ServiceAccountRepository.

    Quota changes are single conditional UPDATEs; the rowcount says whether
    the condition held when the row was written.
    """

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    @storage_errors
    async def get(self, id: ServiceAccountId) -> ServiceAccount | None:
        result = await self.session.execute(select(t).where(t.c.id == str(id)))
        row = result.mappings().first()
        return row_to_service_account(dict(row)) if row else None

    @storage_errors
    async def add(self, account: ServiceAccount) -> None:
        await self.session.execute(insert(t).values(**service_account_to_dict(account)))
        await self.session.flush()

    @storage_errors
    async def save(self, account: ServiceAccount) -> None:
        values = service_account_to_dict(account)
        for column in ("id", "quota_used_in_period", "quota_period_start", "created_at"):
            del values[column]
        await self.session.execute(update(t).where(t.c.id == str(account.id)).values(**values))
        await self.session.flush()

    @storage_errors
    async def list_active(self) -> list[ServiceAccount]:
        stmt = select(t).where(t.c.deleted_at.is_(None)).order_by(t.c.created_at.asc())
        result = await self.session.execute(stmt)
        return [row_to_service_account(dict(r)) for r in result.mappings().all()]

    @storage_errors
    async def try_increment_quota(
        self,
        id: ServiceAccountId,
        units: int,
        period_start: datetime,
        global_cap: int | None = None,
    ) -> bool:
        period_start = as_utc(period_start)
        stmt = (
            update(t)
            .where(
                t.c.id == str(id),
                t.c.deleted_at.is_(None),
                t.c.quota_period_start == period_start,
                t.c.quota_used_in_period + units <= t.c.quota_limit_per_day,
            )
            .values(quota_used_in_period=t.c.quota_used_in_period + units)
        )
        if global_cap is not None:
            other = t.alias("other")
            total = (
                select(func.coalesce(func.sum(other.c.quota_used_in_period), 0))
                .where(other.c.quota_period_start == period_start)
                .scalar_subquery()
            )
            stmt = stmt.where(total + units <= global_cap)

        result = await self.session.execute(stmt)
        await self.session.flush()
        return result.rowcount == 1

    @storage_errors
    async def reset_quota(
        self, id: ServiceAccountId, period_start: datetime, only_if_older: bool = True
    ) -> bool:
        period_start = as_utc(period_start)
        stmt = (
            update(t)
            .where(t.c.id == str(id))
            .values(quota_used_in_period=0, quota_period_start=period_start)
        )
        if only_if_older:
            stmt = stmt.where(
                or_(t.c.quota_period_start.is_(None), t.c.quota_period_start < period_start)
            )
        result = await self.session.execute(stmt)
        await self.session.flush()
        return result.rowcount == 1

    @storage_errors
    async def total_used(self, period_start: datetime) -> int:
        stmt = select(func.coalesce(func.sum(t.c.quota_used_in_period), 0)).where(
            t.c.quota_period_start == as_utc(period_start)
        )
        result = await self.session.execute(stmt)
        return int(result.scalar_one())

from collections.abc import Collection
from datetime import datetime

from sqlalchemy import func, insert, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from wsi.domain.catalog.model.url_item import UrlItem
from wsi.domain.catalog.model.value import TransitionRecord, UrlItemId, UrlItemStatus
from wsi.domain.catalog.port.url_repository import UrlRepository
from wsi.infrastructure.persistence.errors import storage_errors
from wsi.infrastructure.persistence.mappers.url_item import (
    as_utc,
    row_to_transition,
    row_to_url_item,
    transition_to_dict,
    url_item_to_dict,
)
from wsi.infrastructure.persistence.tables import url_items_table, url_transitions_table


class SQLAlchemyUrlRepository(UrlRepository):
    """SQLAlchemy Core implementation of UrlRepository.

    Items are always loaded with their full history; ``save`` appends the
    records beyond what is already stored.
    """

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    @storage_errors
    async def get(self, id: UrlItemId) -> UrlItem | None:
        stmt = select(url_items_table).where(url_items_table.c.id == str(id))
        result = await self.session.execute(stmt)
        row = result.mappings().first()
        if row is None:
            return None
        histories = await self._load_histories([row["id"]])
        return row_to_url_item(dict(row), histories.get(row["id"], []))

    @storage_errors
    async def add(self, item: UrlItem) -> None:
        await self.session.execute(insert(url_items_table).values(**url_item_to_dict(item)))
        await self._append_history(item, stored=0)
        await self.session.flush()

    @storage_errors
    async def save(self, item: UrlItem) -> None:
        values = url_item_to_dict(item)
        del values["id"]
        await self.session.execute(
            update(url_items_table).where(url_items_table.c.id == str(item.id)).values(**values)
        )

        stmt = (
            select(func.count())
            .select_from(url_transitions_table)
            .where(url_transitions_table.c.url_item_id == str(item.id))
        )
        stored = (await self.session.execute(stmt)).scalar_one()
        await self._append_history(item, stored=stored)
        await self.session.flush()

    @storage_errors
    async def list_by_status(
        self,
        statuses: Collection[UrlItemStatus],
        limit: int,
        transitioned_before: datetime | None = None,
    ) -> list[UrlItem]:
        stmt = (
            select(url_items_table)
            .where(url_items_table.c.status.in_([str(s) for s in statuses]))
            .order_by(url_items_table.c.priority.desc(), url_items_table.c.created_at.asc())
            .limit(limit)
        )
        if transitioned_before is not None:
            stmt = stmt.where(
                url_items_table.c.last_transition_at <= as_utc(transitioned_before)
            )
        return await self._fetch(stmt)

    @storage_errors
    async def list_due_retries(self, now: datetime, limit: int) -> list[UrlItem]:
        stmt = (
            select(url_items_table)
            .where(
                url_items_table.c.status == str(UrlItemStatus.RETRYING),
                url_items_table.c.retry_not_before <= as_utc(now),
            )
            .order_by(url_items_table.c.retry_not_before.asc())
            .limit(limit)
        )
        return await self._fetch(stmt)

    @storage_errors
    async def count_by_status(self, statuses: Collection[UrlItemStatus]) -> int:
        stmt = (
            select(func.count())
            .select_from(url_items_table)
            .where(url_items_table.c.status.in_([str(s) for s in statuses]))
        )
        result = await self.session.execute(stmt)
        return result.scalar_one()

    async def _fetch(self, stmt) -> list[UrlItem]:  # noqa: ANN001
        result = await self.session.execute(stmt)
        rows = [dict(r) for r in result.mappings().all()]
        histories = await self._load_histories([r["id"] for r in rows])
        return [row_to_url_item(r, histories.get(r["id"], [])) for r in rows]

    async def _load_histories(self, ids: list[str]) -> dict[str, list[TransitionRecord]]:
        if not ids:
            return {}
        stmt = (
            select(url_transitions_table)
            .where(url_transitions_table.c.url_item_id.in_(ids))
            .order_by(url_transitions_table.c.url_item_id, url_transitions_table.c.seq)
        )
        result = await self.session.execute(stmt)
        histories: dict[str, list[TransitionRecord]] = {}
        for row in result.mappings().all():
            histories.setdefault(row["url_item_id"], []).append(row_to_transition(dict(row)))
        return histories

    async def _append_history(self, item: UrlItem, stored: int) -> None:
        new_records = [
            transition_to_dict(item.id, seq, record)
            for seq, record in enumerate(item.history)
            if seq >= stored
        ]
        if new_records:
            await self.session.execute(insert(url_transitions_table), new_records)

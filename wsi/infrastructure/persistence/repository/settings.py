from datetime import UTC, datetime

from sqlalchemy import insert, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from wsi.config import PipelineConfig
from wsi.domain.pipeline.model.settings import PipelineSettings
from wsi.domain.pipeline.port.settings import SettingsProvider
from wsi.domain.shared.error import ValidationError
from wsi.infrastructure.persistence.errors import storage_errors
from wsi.infrastructure.persistence.tables import settings_table

_ROW_ID = 1


class SQLAlchemySettingsProvider(SettingsProvider):
    """Tenant settings: the persisted row merged over the config defaults.

    A NULL column falls back to the config value.
    """

    def __init__(self, session: AsyncSession, defaults: PipelineConfig) -> None:
        self.session = session
        self._defaults = defaults

    @storage_errors
    async def get(self) -> PipelineSettings:
        result = await self.session.execute(
            select(settings_table).where(settings_table.c.id == _ROW_ID)
        )
        row = result.mappings().first()
        enabled = row["enabled"] if row and row["enabled"] is not None else None
        cap = row["requests_per_day"] if row and row["requests_per_day"] is not None else None
        return PipelineSettings(
            enabled=self._defaults.enabled if enabled is None else enabled,
            requests_per_day=self._defaults.requests_per_day if cap is None else cap,
        )

    @storage_errors
    async def update(
        self, enabled: bool | None = None, requests_per_day: int | None = None
    ) -> PipelineSettings:
        """Override the given values; None leaves a value as it is."""
        if requests_per_day is not None and requests_per_day < 0:
            raise ValidationError("requests_per_day must not be negative", field="requests_per_day")

        values: dict[str, object] = {"updated_at": datetime.now(UTC)}
        if enabled is not None:
            values["enabled"] = enabled
        if requests_per_day is not None:
            values["requests_per_day"] = requests_per_day

        result = await self.session.execute(
            update(settings_table).where(settings_table.c.id == _ROW_ID).values(**values)
        )
        if result.rowcount == 0:
            await self.session.execute(insert(settings_table).values(id=_ROW_ID, **values))
        await self.session.flush()
        return await self.get()

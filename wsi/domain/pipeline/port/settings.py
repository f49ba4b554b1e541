from abc import abstractmethod
from typing import Protocol

from wsi.domain.pipeline.model.settings import PipelineSettings
from wsi.domain.shared.port import Port


class SettingsProvider(Port, Protocol):
    @abstractmethod
    async def get(self) -> PipelineSettings:
        """Current enable flag and global requests-per-day cap."""
        ...

from dishka import AsyncContainer, make_async_container

from wsi.config import Config
from wsi.domain.catalog.util.di import CatalogProvider
from wsi.domain.pipeline.util.di import PipelineProvider
from wsi.infrastructure.http.di import HttpProvider
from wsi.infrastructure.persistence import PersistenceProvider
from wsi.infrastructure.pipeline import RuntimeProvider
from wsi.util.di.scope import Scope


def create_container(config: Config | None = None) -> AsyncContainer:
    # Pydantic Settings populates from env vars and WSI_CONFIG_FILE at runtime
    config = config or Config()

    return make_async_container(
        PersistenceProvider(),
        HttpProvider(),
        RuntimeProvider(),
        PipelineProvider(),
        CatalogProvider(),
        context={Config: config},
        scopes=Scope,  # type: ignore[arg-type]  # Custom scope class
    )

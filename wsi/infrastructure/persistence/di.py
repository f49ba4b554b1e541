from collections.abc import AsyncGenerator, AsyncIterable

from dishka import provide
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from wsi.config import Config
from wsi.domain.catalog.port.service_account_repository import ServiceAccountRepository
from wsi.domain.catalog.port.url_repository import UrlRepository
from wsi.infrastructure.persistence.database import create_db_engine, create_session_factory
from wsi.infrastructure.persistence.repository.service_account import (
    SQLAlchemyServiceAccountRepository,
)
from wsi.infrastructure.persistence.repository.settings import SQLAlchemySettingsProvider
from wsi.infrastructure.persistence.repository.url import SQLAlchemyUrlRepository
from wsi.util.di.base import Provider
from wsi.util.di.scope import Scope


class PersistenceProvider(Provider):
    # APP-scoped factories
    @provide(scope=Scope.APP)
    async def get_engine(self, config: Config) -> AsyncIterable[AsyncEngine]:
        engine = create_db_engine(config.database)
        yield engine
        await engine.dispose()

    @provide(scope=Scope.APP)
    def get_session_factory(self, engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
        return create_session_factory(engine)

    # UOW-scoped session (one per unit of work). dishka sends the exception the
    # scope closed with, if any, back into the generator.
    @provide(scope=Scope.UOW)
    async def get_session(
        self, session_factory: async_sessionmaker[AsyncSession]
    ) -> AsyncGenerator[AsyncSession, BaseException | None]:
        async with session_factory() as session:
            exc = yield session
            if exc is None:
                await session.commit()
            else:
                await session.rollback()

    # UOW-scoped repositories
    url_repo = provide(SQLAlchemyUrlRepository, scope=Scope.UOW, provides=UrlRepository)
    account_repo = provide(
        SQLAlchemyServiceAccountRepository, scope=Scope.UOW, provides=ServiceAccountRepository
    )

    @provide(scope=Scope.UOW)
    def get_settings_repository(
        self, session: AsyncSession, config: Config
    ) -> SQLAlchemySettingsProvider:
        return SQLAlchemySettingsProvider(session, config.pipeline)

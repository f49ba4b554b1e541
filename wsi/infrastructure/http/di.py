"""DI provider for HTTP infrastructure."""

from typing import AsyncIterable, NewType

import httpx
from dishka import provide

from wsi.config import Config
from wsi.domain.crawl.port.reachability import ReachabilityChecker
from wsi.domain.submission.port.indexing_api import IndexingApiClient
from wsi.infrastructure.http.google_indexing import GoogleIndexingApiClient
from wsi.infrastructure.http.reachability import HttpReachabilityChecker
from wsi.util.di.base import Provider
from wsi.util.di.scope import Scope

# Separate clients: crawled sites and the indexing API have different limits
CrawlerHttpClient = NewType("CrawlerHttpClient", httpx.AsyncClient)
IndexingHttpClient = NewType("IndexingHttpClient", httpx.AsyncClient)


class HttpProvider(Provider):
    """DI provider for HTTP adapters."""

    @provide(scope=Scope.APP)
    async def get_crawler_http_client(self, config: Config) -> AsyncIterable[CrawlerHttpClient]:
        async with httpx.AsyncClient(
            timeout=httpx.Timeout(config.crawler.timeout_seconds),
            limits=httpx.Limits(max_connections=20),
        ) as client:
            yield CrawlerHttpClient(client)

    @provide(scope=Scope.APP)
    async def get_indexing_http_client(
        self, config: Config
    ) -> AsyncIterable[IndexingHttpClient]:
        async with httpx.AsyncClient(
            timeout=httpx.Timeout(config.indexing_api.timeout_seconds)
        ) as client:
            yield IndexingHttpClient(client)

    @provide(scope=Scope.APP, provides=ReachabilityChecker)
    def get_reachability_checker(
        self, client: CrawlerHttpClient, config: Config
    ) -> HttpReachabilityChecker:
        return HttpReachabilityChecker(client=client, config=config.crawler)

    # APP-scoped so access tokens stay cached across runs
    @provide(scope=Scope.APP, provides=IndexingApiClient)
    def get_indexing_api_client(
        self, client: IndexingHttpClient, config: Config
    ) -> GoogleIndexingApiClient:
        return GoogleIndexingApiClient(client=client, config=config.indexing_api)

from dishka import provide

from wsi.domain.catalog.service.account import AccountService
from wsi.domain.catalog.service.url import UrlService
from wsi.util.di.base import Provider
from wsi.util.di.scope import Scope


class CatalogProvider(Provider):
    url_service = provide(UrlService, scope=Scope.UOW)
    account_service = provide(AccountService, scope=Scope.UOW)

from wsi.domain.catalog.service.account import AccountService
from wsi.domain.catalog.service.url import ImportResult, UrlService

__all__ = ["AccountService", "ImportResult", "UrlService"]

from wsi.domain.catalog.util.di.provider import CatalogProvider

__all__ = ["CatalogProvider"]

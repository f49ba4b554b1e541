from wsi.domain.crawl.service.crawler import CrawlerService, CrawlSummary

__all__ = ["CrawlerService", "CrawlSummary"]

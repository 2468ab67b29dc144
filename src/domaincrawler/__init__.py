"""
Bounded same-domain web crawler.
Streams every fetched in-domain page while respecting time, page-count and memory limits.
"""
from domaincrawler.config import CrawlConfig, ProxyConfig
from domaincrawler.core import Crawler, CrawlState, CrawlStats, InvalidSeedURL, crawl
from domaincrawler.fetcher import Page

__version__ = "1.0.0"
__all__ = [
    "crawl",
    "Crawler",
    "CrawlConfig",
    "CrawlState",
    "CrawlStats",
    "InvalidSeedURL",
    "Page",
    "ProxyConfig",
]

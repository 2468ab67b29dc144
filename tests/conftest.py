"""Test helpers: an in-memory site served by a fake fetcher."""

from __future__ import annotations

from typing import Dict, List, Optional, Tuple

from domaincrawler.config import CrawlConfig
from domaincrawler.fetcher import Page


def html_page(*hrefs: str) -> str:
    anchors = "".join(f'<a href="{href}">link</a>' for href in hrefs)
    return f"<html><body>{anchors}</body></html>"


class FakeSite:
    """
    Maps requested URLs to (effective_url, status, body) responses.

    A value of None makes the fetch fail as a transport error would.
    """

    def __init__(self, pages: Dict[str, Optional[Tuple[str, int, str]]]) -> None:
        self.pages = pages
        self.requested: List[str] = []
        self.closed = False

    def fetcher_cls(self, config: CrawlConfig) -> "FakeFetcher":
        return FakeFetcher(self, config)


class FakeFetcher:
    def __init__(self, site: FakeSite, config: CrawlConfig) -> None:
        self.site = site
        self.config = config

    def fetch(self, url: str) -> Optional[Page]:
        self.site.requested.append(url)
        entry = self.site.pages.get(url, (url, 404, ""))
        if entry is None:
            return None
        effective, status, body = entry
        return Page(
            url=effective,
            requested_url=url,
            status_code=status,
            body=body,
            content_type="text/html; charset=utf-8",
        )

    def __enter__(self) -> "FakeFetcher":
        return self

    def __exit__(self, *exc_info) -> None:
        self.site.closed = True

"""
HTTP fetching for a crawl.
"""
from __future__ import annotations

import logging
import os
import tempfile
from dataclasses import dataclass, field
from datetime import datetime, timezone
from http.cookiejar import Cookie, LoadError, LWPCookieJar
from typing import Dict, Iterator, Optional

import requests

from domaincrawler.config import CrawlConfig

logger = logging.getLogger(__name__)


def utc_now_iso() -> str:
    """Return current UTC time in ISO format."""
    return datetime.now(timezone.utc).replace(microsecond=0).isoformat()


@dataclass(slots=True)
class Page:
    """A fetched page. ``url`` is the effective URL after redirects."""
    url: str
    requested_url: str
    status_code: int
    headers: Dict[str, str] = field(default_factory=dict)
    body: str = ""
    content_type: str = ""
    fetched_at: Optional[str] = None

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300

    @property
    def is_html(self) -> bool:
        # Servers that omit the header are given the benefit of the doubt
        if not self.content_type:
            return True
        return "html" in self.content_type


class CrawlCookieJar(LWPCookieJar):
    """
    LWP cookie file that can be read and saved while pool workers add cookies.

    ``set_cookie`` and ``extract_cookies`` hold the jar lock. Iteration (used by
    ``save`` and by requests when merging cookies into a request) walks the
    jar without it, so it iterates a snapshot taken under the lock here.
    """

    def __iter__(self) -> Iterator[Cookie]:
        with self._cookies_lock:
            return iter(list(super().__iter__()))

    def save(self, filename=None, ignore_discard=False, ignore_expires=False):
        with self._cookies_lock:
            super().save(filename, ignore_discard, ignore_expires)


class FetchExecutor:
    """
    Issues GET requests with the crawl's fixed headers, proxy and cookie store.

    One executor lives for one crawl. Cookies accumulate in a scratch file that
    is created with the executor and removed by ``close()``; a caller-supplied
    ``cookie_file`` is left in place.
    """

    def __init__(self, config: CrawlConfig, session: Optional[requests.Session] = None) -> None:
        self.config = config
        self.timeout = config.timeout
        self.session = session or requests.Session()
        self.session.headers.update(config.request_headers())
        proxies = config.proxies()
        if proxies:
            self.session.proxies.update(proxies)

        self._owns_cookie_file = config.cookie_file is None
        if self._owns_cookie_file:
            fd, path = tempfile.mkstemp(prefix="cookies")
            os.close(fd)
            self.cookie_path: Optional[str] = path
        else:
            self.cookie_path = config.cookie_file
        self.cookies = CrawlCookieJar(self.cookie_path)
        if not self._owns_cookie_file and os.path.exists(self.cookie_path):
            try:
                self.cookies.load(ignore_discard=True, ignore_expires=True)
            except (LoadError, OSError) as exc:
                logger.warning("Ignoring unreadable cookie file %s: %s", self.cookie_path, exc)
        self.session.cookies = self.cookies

    def fetch(self, url: str) -> Optional[Page]:
        """Fetch one URL. Returns None when the request itself fails."""
        try:
            resp = self.session.get(url, timeout=self.timeout, allow_redirects=True)
        except requests.RequestException as exc:
            logger.warning("Fetch failed for %s: %s", url, exc)
            return None

        self._save_cookies()
        return Page(
            url=resp.url or url,
            requested_url=url,
            status_code=resp.status_code,
            headers=dict(resp.headers),
            body=resp.text,
            content_type=(resp.headers.get("content-type") or "").lower(),
            fetched_at=utc_now_iso(),
        )

    def _save_cookies(self) -> None:
        if self.cookie_path is None:
            return
        try:
            self.cookies.save(ignore_discard=True, ignore_expires=True)
        except OSError as exc:
            logger.warning("Could not persist cookies to %s: %s", self.cookie_path, exc)

    def close(self) -> None:
        self.session.close()
        if self._owns_cookie_file and self.cookie_path is not None:
            try:
                os.unlink(self.cookie_path)
            except FileNotFoundError:
                pass
            self.cookie_path = None

    def __enter__(self) -> FetchExecutor:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

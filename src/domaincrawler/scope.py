"""
Domain and resource-type scoping for discovered links.
"""
from __future__ import annotations

from typing import Container, Dict, FrozenSet, Optional
from urllib.parse import urlparse

import tldextract

# Non-page resources, grouped by suffix length so a path is checked with one
# slice per group
NON_HTML_EXTENSIONS: Dict[int, FrozenSet[str]] = {
    3: frozenset((".gz",)),
    4: frozenset((
        ".jpg", ".png", ".m4a", ".mp3", ".mp4", ".pdf", ".zip",
        ".wmv", ".gif", ".doc", ".xls", ".pps", ".ppt", ".tar",
        ".iso", ".dmg", ".bin", ".ics", ".exe", ".wav", ".mid",
    )),
    5: frozenset((".xlsx", ".docx", ".pptx", ".tiff", ".zipx")),
    8: frozenset((".torrent",)),
}


def extension_ignored(url: str) -> bool:
    """Check if the URL path ends with a known non-HTML extension (any case)."""
    if not url:
        return False
    try:
        path = urlparse(url).path.lower()
    except ValueError:
        return False
    return any(
        len(path) >= length and path[-length:] in extensions
        for length, extensions in NON_HTML_EXTENSIONS.items()
    )


class DomainResolver:
    """
    Maps URLs to their registrable domain (``news.bbc.co.uk`` -> ``bbc.co.uk``).

    Uses the public suffix snapshot bundled with tldextract; nothing is fetched
    or cached on disk.
    """

    def __init__(self, extractor: Optional[tldextract.TLDExtract] = None) -> None:
        self._extract = extractor or tldextract.TLDExtract(cache_dir=None, suffix_list_urls=())

    def registrable_domain(self, url: str) -> Optional[str]:
        try:
            ext = self._extract(url)
        except ValueError:
            return None
        if ext.domain and ext.suffix:
            return f"{ext.domain}.{ext.suffix}".lower()
        # IP addresses and single-label hosts such as localhost
        return ext.domain.lower() or None


class ScopeFilter:
    """Decides whether a discovered absolute URL should join the frontier."""

    def __init__(
        self,
        target_domain: str,
        visited: Container[str],
        frontier: Container[str],
        resolver: DomainResolver,
    ) -> None:
        self.target_domain = target_domain
        self._visited = visited
        self._frontier = frontier
        self._resolver = resolver

    def same_domain(self, url: str) -> bool:
        return self._resolver.registrable_domain(url) == self.target_domain

    def in_scope(self, url: str) -> bool:
        """In-domain, not visited, not a non-HTML resource, and not already queued."""
        if not self.same_domain(url):
            return False
        if url in self._visited:
            return False
        if extension_ignored(url):
            return False
        return url not in self._frontier

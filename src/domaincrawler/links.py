"""
Link extraction and resolution.
"""
from __future__ import annotations

import logging
import re
from typing import Iterable, List, Optional
from urllib.parse import urldefrag, urljoin, urlparse, urlunparse

from bs4 import BeautifulSoup, SoupStrainer

logger = logging.getLogger(__name__)

# SoupStrainer to parse only <a> tags (faster link extraction)
LINK_STRAINER = SoupStrainer("a", href=True)

# hrefs that never lead to a crawlable page; the leading "(" catches markup
# artifacts like href="(/path)"
NOISE_PATTERN = re.compile(r"^\(|^javascript:|^mailto:|^#|^\s*$|^about:", re.IGNORECASE)

NAVIGABLE_SCHEMES = ("http", "https")


def extract_links(html: str) -> List[str]:
    """Extract href values from <a> tags, deduplicated and sorted."""
    if not html:
        return []
    soup = BeautifulSoup(html, "lxml", parse_only=LINK_STRAINER)
    hrefs = {a.get("href") for a in soup.find_all("a")}
    return sorted(href for href in hrefs if isinstance(href, str) and href)


def is_noise(href: str) -> bool:
    return bool(NOISE_PATTERN.match(href))


def canonicalize_url(url: str) -> Optional[str]:
    """
    Normalize an absolute URL for deduplication and comparison.

    - Drops fragments (#...) and credentials
    - Normalizes scheme/host case
    - Removes default ports (:80, :443)
    - Maps an empty path to "/"
    - Keeps querystrings (they matter for uniqueness)

    Returns None when the URL is not http(s) or has no host. Raises ValueError
    for URIs that cannot be parsed, including out-of-range ports.
    """
    joined, _ = urldefrag(url)
    parsed = urlparse(joined)

    scheme = parsed.scheme.lower()
    hostname = (parsed.hostname or "").lower()
    if scheme not in NAVIGABLE_SCHEMES or not hostname:
        return None

    if ":" in hostname:
        hostname = f"[{hostname}]"
    port = parsed.port
    if (scheme == "http" and port == 80) or (scheme == "https" and port == 443) or port is None:
        netloc = hostname
    else:
        netloc = f"{hostname}:{port}"

    return urlunparse((scheme, netloc, parsed.path or "/", parsed.params, parsed.query, ""))


def make_absolute(href: str, base: str) -> Optional[str]:
    """
    Resolve an href against the page URL and canonicalize the result.

    Returns None when the result is not an http(s) URL with a host. Raises
    ValueError for URIs that cannot be parsed.
    """
    return canonicalize_url(urljoin(base, href.strip()))


def normalize_links(hrefs: Iterable[str], base: str) -> List[str]:
    """Turn raw hrefs into unique absolute URLs, skipping noise and malformed links."""
    seen = set()
    links: List[str] = []
    for href in hrefs:
        if is_noise(href):
            continue
        try:
            absolute = make_absolute(href, base)
        except ValueError as exc:
            logger.debug("Dropping malformed link %r on %s: %s", href, base, exc)
            continue
        if absolute is None or absolute in seen:
            continue
        seen.add(absolute)
        links.append(absolute)
    return links

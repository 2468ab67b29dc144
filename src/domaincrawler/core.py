"""
Core crawling logic and data structures.
"""
from __future__ import annotations

import enum
import logging
from collections import Counter, defaultdict, deque
from dataclasses import dataclass, field
from typing import Any, Callable, Deque, Dict, Iterator, Optional

from domaincrawler.config import CrawlConfig
from domaincrawler.dispatch import make_dispatcher
from domaincrawler.fetcher import FetchExecutor, Page
from domaincrawler.governor import ResourceGovernor
from domaincrawler.links import canonicalize_url, extract_links, normalize_links
from domaincrawler.scope import DomainResolver, ScopeFilter
from domaincrawler.visited import VisitedTracker

logger = logging.getLogger(__name__)


class InvalidSeedURL(ValueError):
    """The seed URL cannot start a crawl."""


class CrawlState(enum.Enum):
    IDLE = "idle"
    RUNNING = "running"
    DRAINING = "draining"
    FINISHED = "finished"


class Frontier:
    """FIFO queue of pending URLs with constant-time membership checks."""

    def __init__(self, *urls: str) -> None:
        self._queue: Deque[str] = deque()
        self._pending: Counter = Counter()
        for url in urls:
            self.append(url)

    def append(self, url: str) -> None:
        self._queue.append(url)
        self._pending[url] += 1

    def popleft(self) -> str:
        url = self._queue.popleft()
        self._pending[url] -= 1
        if not self._pending[url]:
            del self._pending[url]
        return url

    def __contains__(self, url: object) -> bool:
        return url in self._pending

    def __len__(self) -> int:
        return len(self._queue)

    def __bool__(self) -> bool:
        return bool(self._queue)

    def __iter__(self) -> Iterator[str]:
        return iter(self._queue)


@dataclass(slots=True)
class CrawlStats:
    """Statistics collected during crawl for summary output."""
    pages_crawled: int = 0
    pages_yielded: int = 0
    offsite_dropped: int = 0
    links_enqueued: int = 0
    rounds: int = 0
    stop_reason: Optional[str] = None
    error_counts: Dict[str, int] = field(default_factory=lambda: defaultdict(int))

    def record_error(self, status_code: Optional[int]) -> None:
        """Record an error by status code category."""
        if status_code is None:
            self.error_counts["connection_error"] += 1
        elif status_code >= 400:
            self.error_counts[str(status_code)] += 1


@dataclass
class CrawlSession:
    """Mutable state of a single crawl; never shared between crawls."""
    seed: str
    target_domain: str
    config: CrawlConfig
    governor: ResourceGovernor
    frontier: Frontier
    visited: VisitedTracker
    scope: ScopeFilter
    stats: CrawlStats
    state: CrawlState = CrawlState.IDLE

    @classmethod
    def start(
        cls,
        seed: str,
        target_domain: str,
        config: CrawlConfig,
        resolver: DomainResolver,
        stats: Optional[CrawlStats] = None,
    ) -> CrawlSession:
        governor = ResourceGovernor(config.time_box, config.max_urls)
        frontier = Frontier(seed)
        visited = VisitedTracker(config.bloom_size, config.bloom_hashes, config.bloom_seed)
        scope = ScopeFilter(target_domain, visited, frontier, resolver)
        return cls(
            seed=seed,
            target_domain=target_domain,
            config=config,
            governor=governor,
            frontier=frontier,
            visited=visited,
            scope=scope,
            stats=stats if stats is not None else CrawlStats(),
        )


class Crawler:
    """
    Same-domain crawler bound to one seed URL.

    Each call to ``crawl`` starts a fresh session, so one Crawler can be reused
    for several crawls of the same site.

    Example:
        for page in Crawler("https://example.com").crawl(time_box=30):
            print(page.status_code, page.url)
    """

    def __init__(
        self,
        url: str,
        *,
        resolver: Optional[DomainResolver] = None,
        fetcher_cls: Callable[[CrawlConfig], FetchExecutor] = FetchExecutor,
    ) -> None:
        if not isinstance(url, str) or not url.strip():
            raise InvalidSeedURL(f"Invalid start URL: {url!r}")
        try:
            canonical = canonicalize_url(url.strip())
        except ValueError as exc:
            raise InvalidSeedURL(f"Invalid start URL: {url}") from exc
        if canonical is None:
            raise InvalidSeedURL(f"Invalid start URL: {url}")
        url = canonical

        self.resolver = resolver or DomainResolver()
        domain = self.resolver.registrable_domain(url)
        if not domain:
            raise InvalidSeedURL(f"Cannot determine the domain of start URL: {url}")

        self.url = url
        self.domain = domain
        self._fetcher_cls = fetcher_cls

    def crawl(
        self,
        config: Optional[CrawlConfig] = None,
        *,
        stats: Optional[CrawlStats] = None,
        **options: Any,
    ) -> Iterator[Page]:
        """
        Crawl the seed's domain, yielding each in-domain page as it is fetched.

        Args:
            config: Full crawl configuration. When omitted it is built from
                ``options`` (``time_box``, ``max_urls``, ``headers``, ``proxy``, ...).
            stats: Optional CrawlStats to fill in, for callers that want a summary.

        Stops when the frontier is empty or when a time, page-count or memory
        limit truncates a round. Option errors raise TypeError immediately,
        before any fetch.
        """
        if config is None:
            config = CrawlConfig.from_options(options)
        elif options:
            raise TypeError("Pass either a CrawlConfig or keyword options, not both")
        return self._crawl(config, stats)

    def _crawl(self, config: CrawlConfig, stats: Optional[CrawlStats]) -> Iterator[Page]:
        session = CrawlSession.start(self.url, self.domain, config, self.resolver, stats)
        logger.info(
            "Starting crawl of %s (domain %s, max %d pages, %ds)",
            self.url, self.domain, session.governor.max_urls, session.governor.time_box,
        )
        with self._fetcher_cls(config) as fetcher:
            yield from self._run(session, fetcher)

    def _run(self, session: CrawlSession, fetcher: FetchExecutor) -> Iterator[Page]:
        dispatcher = make_dispatcher(session.config.workers)
        session.state = CrawlState.RUNNING

        while session.frontier:
            session.stats.rounds += 1
            round_size = len(session.frontier)
            logger.debug("Round %d: %d queued", session.stats.rounds, round_size)

            for url, page in dispatcher.run(fetcher.fetch, self._claim(session, round_size)):
                yield from self._process(session, url, page)

            if session.state is CrawlState.DRAINING:
                break

        # The last claim of a round can use up the page budget as the frontier empties
        if session.stats.stop_reason is None and session.governor.limit_reached(session.visited.count):
            session.stats.stop_reason = "max_urls"

        session.state = CrawlState.FINISHED
        logger.info(
            "Crawl of %s finished: %d fetched, %d yielded, stop reason %s",
            self.url, session.stats.pages_crawled, session.stats.pages_yielded,
            session.stats.stop_reason or "frontier empty",
        )

    def _claim(self, session: CrawlSession, round_size: int) -> Iterator[str]:
        """Dequeue up to ``round_size`` URLs, checking limits before each one."""
        for _ in range(round_size):
            reason = session.governor.stop_reason(session.visited.count)
            if reason is not None:
                # Limits do not recover, so a truncated round ends the crawl
                logger.info("Stopping crawl of %s: %s limit reached", self.url, reason)
                session.stats.stop_reason = reason
                session.state = CrawlState.DRAINING
                return
            if not session.frontier:
                return

            url = session.frontier.popleft()
            session.visited.insert(url)
            session.stats.pages_crawled += 1
            yield url

    def _process(self, session: CrawlSession, url: str, page: Optional[Page]) -> Iterator[Page]:
        stats = session.stats
        if page is None:
            stats.record_error(None)
            return

        if not session.scope.same_domain(page.url):
            logger.debug("Dropping %s: redirected off-domain to %s", url, page.url)
            stats.offsite_dropped += 1
            return

        if not page.ok:
            stats.record_error(page.status_code)

        hrefs = extract_links(page.body) if page.is_html else []
        stats.pages_yielded += 1
        yield page

        for link in normalize_links(hrefs, page.url):
            if session.scope.in_scope(link):
                session.frontier.append(link)
                stats.links_enqueued += 1


def crawl(url: str, config: Optional[CrawlConfig] = None, **options: Any) -> Iterator[Page]:
    """Crawl all same-domain pages reachable from ``url``."""
    return Crawler(url).crawl(config, **options)

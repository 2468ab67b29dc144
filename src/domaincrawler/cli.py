"""
Command-line interface for the crawler.
"""
from __future__ import annotations

import argparse
import json
import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence
from urllib.parse import urlparse

from domaincrawler.config import DEFAULT_TIMEOUT, CrawlConfig, ProxyConfig
from domaincrawler.core import Crawler, CrawlStats, InvalidSeedURL
from domaincrawler.fetcher import Page


def print_summary(stats: CrawlStats) -> None:
    """Print crawl summary to stderr."""
    sys.stderr.write("=" * 50 + "\n")
    sys.stderr.write("CRAWL SUMMARY\n")
    sys.stderr.write("=" * 50 + "\n\n")

    sys.stderr.write(f"Pages fetched:          {stats.pages_crawled}\n")
    sys.stderr.write(f"Pages returned:         {stats.pages_yielded}\n")
    sys.stderr.write(f"Off-domain redirects:   {stats.offsite_dropped}\n")
    sys.stderr.write(f"Rounds:                 {stats.rounds}\n")
    sys.stderr.write(f"Stopped by:             {stats.stop_reason or 'frontier empty'}\n\n")

    if stats.error_counts:
        sys.stderr.write("Errors by type:\n")
        for error_type, count in sorted(stats.error_counts.items()):
            label = "Connection errors" if error_type == "connection_error" else f"HTTP {error_type}"
            sys.stderr.write(f"  {label}: {count}\n")
    else:
        sys.stderr.write("No errors encountered.\n")

    sys.stderr.write("\n")


def generate_output_path(start_url: str) -> Path:
    """Generate output path: crawls/{hostname}_{datetime}.json"""
    parsed = urlparse(start_url)
    hostname = parsed.hostname or "unknown"
    # Sanitize hostname for filename (replace dots with underscores)
    hostname_safe = hostname.replace(".", "_")
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")

    crawls_dir = Path("crawls")
    crawls_dir.mkdir(exist_ok=True)

    return crawls_dir / f"{hostname_safe}_{timestamp}.json"


def page_summary(page: Page) -> Dict[str, Any]:
    return {
        "url": page.url,
        "requested_url": page.requested_url,
        "status_code": page.status_code,
        "content_type": page.content_type or None,
        "fetched_at": page.fetched_at,
        "size": len(page.body),
    }


def _split_pair(value: Optional[str]) -> List[Optional[str]]:
    if not value:
        return [None, None]
    head, sep, tail = value.partition(":")
    return [head or None, tail if sep else None]


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Crawl all same-domain pages reachable from a URL and output JSON results."
    )
    parser.add_argument("start_url", help="Start URL (e.g. https://example.com)")
    parser.add_argument("--time-box", type=int, help="Crawl time budget in seconds (clamped to 15-600)")
    parser.add_argument("--max-urls", type=int, help="Maximum pages to fetch (clamped to 50-10000)")
    parser.add_argument("--timeout", type=float, default=DEFAULT_TIMEOUT, help="Request timeout in seconds (default: 10)")
    parser.add_argument("--user-agent", help="User-Agent header")
    parser.add_argument("--accept-language", help="Accept-Language header")
    parser.add_argument("--proxy", help="Proxy as HOST:PORT")
    parser.add_argument("--proxy-auth", help="Proxy credentials as USER:PASSWORD")
    parser.add_argument("--workers", type=int, default=1, help="Concurrent fetches (default: 1, sequential)")
    parser.add_argument("--out", help="Output file path, or '-' for stdout (default: auto-generated in crawls/)")
    parser.add_argument("--pretty", action="store_true", help="Pretty-print JSON")
    parser.add_argument("--verbose", action="store_true", help="Show progress and summary")
    return parser


def config_from_args(args: argparse.Namespace) -> CrawlConfig:
    headers: Dict[str, str] = {}
    if args.user_agent:
        headers["User-Agent"] = args.user_agent
    if args.accept_language:
        headers["Accept-Language"] = args.accept_language

    proxy = None
    ip, port = _split_pair(args.proxy)
    if ip:
        username, password = _split_pair(args.proxy_auth)
        proxy = ProxyConfig(ip=ip, port=port, username=username, password=password)

    return CrawlConfig(
        time_box=args.time_box,
        max_urls=args.max_urls,
        headers=headers,
        proxy=proxy,
        timeout=args.timeout,
        workers=args.workers,
    )


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Main entry point for the crawler CLI."""
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    try:
        crawler = Crawler(args.start_url)
    except InvalidSeedURL as exc:
        sys.stderr.write(f"{exc}\n")
        return 2

    stats = CrawlStats()
    results = [page_summary(page) for page in crawler.crawl(config_from_args(args), stats=stats)]

    # Print summary if verbose
    if args.verbose:
        print_summary(stats)

    json_text = json.dumps(results, ensure_ascii=False, indent=2 if args.pretty else None)

    if args.out == "-":
        print(json_text)
    else:
        # Auto-generate path if not specified
        output_path = Path(args.out) if args.out else generate_output_path(args.start_url)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(json_text, encoding="utf-8")
        if args.verbose:
            sys.stderr.write(f"Results written to: {output_path}\n")

    return 0


if __name__ == "__main__":
    raise SystemExit(main())

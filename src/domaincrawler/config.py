"""
Crawl configuration and defaults.
"""
from __future__ import annotations

from dataclasses import dataclass, field, fields
from typing import Any, Dict, Mapping, Optional, Tuple

# Time budget bounds (seconds)
BASE_CRAWL_TIME = 15
MAX_CRAWL_TIME = 600

# Page count bounds
BASE_URLS = 50
MAX_URLS = 10000

# Per-request transport timeout (seconds)
DEFAULT_TIMEOUT = 10.0

DEFAULT_LANGUAGE = "en-IE, en-UK;q=0.9, en-NL;q=0.8, en-MT;q=0.7, en-LU;q=0.6, en;q=0.5, *;q=0.4"
DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_13_4) AppleWebKit/605.1.15 "
    "(KHTML, like Gecko) Version/11.1 Safari/605.1.15"
)

# Host memory accounting, cgroup v1 first, then the v2 unified hierarchy
MEMORY_USE_FILE = "/sys/fs/cgroup/memory/memory.usage_in_bytes"
MEMORY_LIMIT_FILE = "/sys/fs/cgroup/memory/memory.limit_in_bytes"
MEMORY_FILES: Tuple[Tuple[str, str], ...] = (
    (MEMORY_USE_FILE, MEMORY_LIMIT_FILE),
    ("/sys/fs/cgroup/memory.current", "/sys/fs/cgroup/memory.max"),
)
MAXIMUM_LOAD_RATE = 79.9

# Visited-set Bloom filter
BLOOM_SIZE = 1_000_000
BLOOM_HASHES = 5
BLOOM_SEED = 1


@dataclass(frozen=True, slots=True)
class ProxyConfig:
    """Proxy endpoint with optional basic credentials."""
    ip: str
    port: Optional[str] = None
    username: Optional[str] = None
    password: Optional[str] = None

    @property
    def url(self) -> str:
        auth = ""
        if self.username:
            auth = f"{self.username}:{self.password or ''}@"
        host = f"{self.ip}:{self.port}" if self.port else self.ip
        return f"http://{auth}{host}"

    @classmethod
    def from_mapping(cls, raw: Optional[Mapping[str, Any]]) -> Optional[ProxyConfig]:
        """Build from an ``{ip, port, username, password}`` mapping, or None without an ip."""
        if not raw or not raw.get("ip"):
            return None
        port = raw.get("port")
        return cls(
            ip=str(raw["ip"]),
            port=str(port) if port not in (None, "") else None,
            username=raw.get("username") or None,
            password=raw.get("password"),
        )


@dataclass(frozen=True, slots=True)
class CrawlConfig:
    """
    Options for a single crawl.

    ``time_box`` and ``max_urls`` are kept as supplied; the governor clamps them
    when the crawl starts.
    """
    time_box: Any = None
    max_urls: Any = None
    headers: Mapping[str, str] = field(default_factory=dict)
    proxy: Optional[ProxyConfig] = None
    timeout: float = DEFAULT_TIMEOUT
    cookie_file: Optional[str] = None
    workers: int = 1
    bloom_size: int = BLOOM_SIZE
    bloom_hashes: int = BLOOM_HASHES
    bloom_seed: int = BLOOM_SEED

    @classmethod
    def from_options(cls, options: Optional[Mapping[str, Any]] = None) -> CrawlConfig:
        """
        Build a config from a plain options mapping.

        Recognized keys are the field names; ``proxy`` may be given as a mapping.
        Raises TypeError on unknown keys.
        """
        options = dict(options or {})
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(options) - known)
        if unknown:
            raise TypeError(f"Unknown crawl option(s): {', '.join(unknown)}")

        proxy = options.get("proxy")
        if proxy is not None and not isinstance(proxy, ProxyConfig):
            options["proxy"] = ProxyConfig.from_mapping(proxy)
        if options.get("headers") is None:
            options.pop("headers", None)
        else:
            options["headers"] = dict(options["headers"])
        if options.get("timeout") is None:
            options.pop("timeout", None)
        return cls(**options)

    def request_headers(self) -> Dict[str, str]:
        """Headers sent with every request, falling back to the default language and agent."""
        headers = dict(self.headers)
        if not headers.get("Accept-Language"):
            headers["Accept-Language"] = DEFAULT_LANGUAGE
        if not headers.get("User-Agent"):
            headers["User-Agent"] = DEFAULT_USER_AGENT
        return headers

    def proxies(self) -> Dict[str, str]:
        """Proxy mapping in the form requests expects."""
        if self.proxy is None:
            return {}
        return {"http": self.proxy.url, "https": self.proxy.url}

"""
Time, page-count and memory limits for a crawl.
"""
from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Any, Callable, Iterable, Optional, Tuple

from domaincrawler.config import (
    BASE_CRAWL_TIME,
    BASE_URLS,
    MAX_CRAWL_TIME,
    MAX_URLS,
    MAXIMUM_LOAD_RATE,
    MEMORY_FILES,
)

logger = logging.getLogger(__name__)


def _coerce_int(raw: Any) -> int:
    """Best-effort integer conversion; anything unparseable counts as 0."""
    if raw is None or isinstance(raw, bool):
        return 0
    try:
        return int(raw)
    except (TypeError, ValueError):
        pass
    try:
        return int(float(str(raw).strip()))
    except (TypeError, ValueError, OverflowError):
        return 0


def _clamp(raw: Any, base: int, maximum: int) -> int:
    value = _coerce_int(raw)
    if value <= 0:
        return base
    return min(value, maximum)


def bound_time(raw: Any) -> int:
    """Effective time budget in seconds, within [BASE_CRAWL_TIME, MAX_CRAWL_TIME]."""
    return _clamp(raw, BASE_CRAWL_TIME, MAX_CRAWL_TIME)


def bound_urls(raw: Any) -> int:
    """Effective page budget, within [BASE_URLS, MAX_URLS]."""
    return _clamp(raw, BASE_URLS, MAX_URLS)


def _read_number(path: Path) -> Optional[float]:
    try:
        return float(path.read_text().strip())
    except (OSError, ValueError):
        return None


class ResourceGovernor:
    """
    Holds the clamped limits for one crawl and answers "should we stop?".

    Checks are cooperative: the driver polls them before each dequeue and
    nothing here interrupts a fetch already in flight.
    """

    def __init__(
        self,
        time_box: Any = None,
        max_urls: Any = None,
        *,
        clock: Callable[[], float] = time.monotonic,
        memory_files: Iterable[Tuple[str, str]] = MEMORY_FILES,
        max_load: float = MAXIMUM_LOAD_RATE,
    ) -> None:
        self.time_box = bound_time(time_box)
        self.max_urls = bound_urls(max_urls)
        self._clock = clock
        self.started_at = clock()
        self.deadline = self.started_at + self.time_box
        self.max_load = max_load
        self._memory_files = [(Path(use), Path(limit)) for use, limit in memory_files]
        self._limit: Optional[float] = None

    def expired(self) -> bool:
        return self._clock() > self.deadline

    def remaining(self) -> float:
        return max(0.0, self.deadline - self._clock())

    def limit_reached(self, visited_count: int) -> bool:
        return visited_count >= self.max_urls

    def _accounting_files(self) -> Optional[Tuple[Path, Path]]:
        for use_file, limit_file in self._memory_files:
            if use_file.is_file():
                return use_file, limit_file
        return None

    def in_container(self) -> bool:
        """True when a host memory-accounting interface is present."""
        return self._accounting_files() is not None

    def memory_danger(self) -> bool:
        """
        True when memory usage is at or above ``max_load`` percent of the limit.

        Fails open: missing, unreadable or non-numeric accounting files (such as
        an unlimited cgroup v2 ``max``) never report danger.
        """
        files = self._accounting_files()
        if files is None:
            return False
        use_file, limit_file = files

        use = _read_number(use_file)
        if self._limit is None:
            self._limit = _read_number(limit_file)
        limit = self._limit

        if not use or not limit or use <= 0.0 or limit <= 0.0:
            return False

        load = (use / limit) * 100.0
        if load >= self.max_load:
            logger.warning("Memory load at %.1f%% (threshold %.1f%%)", load, self.max_load)
            return True
        return False

    def stop_reason(self, visited_count: int) -> Optional[str]:
        """Name of the first limit hit, or None if the crawl may continue."""
        if self.limit_reached(visited_count):
            return "max_urls"
        if self.expired():
            return "time_box"
        if self.memory_danger():
            return "memory"
        return None

"""
Fixed-memory record of URLs already processed.

Membership is tracked with a Bloom filter: no false negatives, a bounded
false-positive rate, and a footprint that does not grow with the crawl. A false
positive means a page is silently skipped.
"""
from __future__ import annotations

import hashlib
import math
from typing import Iterator, Optional

from domaincrawler.config import BLOOM_HASHES, BLOOM_SEED, BLOOM_SIZE


class BloomFilter:
    """Classic Bloom filter over a ``bytearray`` of ``size`` bits."""

    __slots__ = ("size", "hashes", "seed", "_bits", "_key", "_count")

    def __init__(self, size: int = BLOOM_SIZE, hashes: int = BLOOM_HASHES, seed: int = BLOOM_SEED) -> None:
        if size <= 0:
            raise ValueError(f"Bloom filter size must be positive, got {size}")
        if hashes <= 0:
            raise ValueError(f"Bloom filter hash count must be positive, got {hashes}")
        self.size = size
        self.hashes = hashes
        self.seed = seed
        self._bits = bytearray((size + 7) // 8)
        self._key = seed.to_bytes(8, "little", signed=True)
        self._count = 0

    @classmethod
    def from_error_rate(cls, capacity: int, error_rate: float, seed: int = BLOOM_SEED) -> BloomFilter:
        """Size a filter to hold ``capacity`` items at roughly ``error_rate`` false positives."""
        if capacity <= 0:
            raise ValueError(f"capacity must be positive, got {capacity}")
        if not 0.0 < error_rate < 1.0:
            raise ValueError(f"error_rate must be between 0 and 1, got {error_rate}")
        size = math.ceil(-capacity * math.log(error_rate) / (math.log(2) ** 2))
        hashes = max(1, round(size / capacity * math.log(2)))
        return cls(size=size, hashes=hashes, seed=seed)

    def _positions(self, item: str) -> Iterator[int]:
        digest = hashlib.blake2b(item.encode("utf-8"), digest_size=16, key=self._key).digest()
        h1 = int.from_bytes(digest[:8], "little")
        h2 = int.from_bytes(digest[8:], "little") | 1
        for i in range(self.hashes):
            yield (h1 + i * h2) % self.size

    def add(self, item: str) -> None:
        for pos in self._positions(item):
            self._bits[pos >> 3] |= 1 << (pos & 7)
        self._count += 1

    def __contains__(self, item: str) -> bool:
        return all(self._bits[pos >> 3] & (1 << (pos & 7)) for pos in self._positions(item))

    def __len__(self) -> int:
        return self._count

    def false_positive_rate(self, n: Optional[int] = None) -> float:
        """Expected false-positive probability after ``n`` inserts (default: current count)."""
        n = self._count if n is None else n
        if n <= 0:
            return 0.0
        return (1.0 - math.exp(-self.hashes * n / self.size)) ** self.hashes


class VisitedTracker:
    """Write-once set of processed URLs backed by a Bloom filter."""

    def __init__(self, size: int = BLOOM_SIZE, hashes: int = BLOOM_HASHES, seed: int = BLOOM_SEED) -> None:
        self._filter = BloomFilter(size=size, hashes=hashes, seed=seed)

    def insert(self, url: str) -> None:
        self._filter.add(url)

    def contains(self, url: str) -> bool:
        return url in self._filter

    __contains__ = contains

    @property
    def count(self) -> int:
        """Number of URLs inserted so far."""
        return len(self._filter)

    @property
    def false_positive_rate(self) -> float:
        return self._filter.false_positive_rate()

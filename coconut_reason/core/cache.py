"""SimilarityCache — bounded LRU memo of similarity scores.

Keys are canonicalised so that (a, b) and (b, a) share one slot: every
measure in core.similarity is symmetric, and caching both orders would only
halve the effective capacity.

Recency is tracked by an OrderedDict (move-to-end on access), so eviction of
the least recently used entry is O(1).  An optional TTL expires entries
lazily on read.
"""

from __future__ import annotations

import logging
from collections import OrderedDict
from typing import Callable

from coconut_reason.foundation.clock import monotonic

logger = logging.getLogger(__name__)

CacheKey = tuple[str, str, str]


def canonical_key(text_a: str, text_b: str, algorithm: str) -> CacheKey:
    """Order-independent key for a symmetric comparison."""
    if text_b < text_a:
        text_a, text_b = text_b, text_a
    return (text_a, text_b, algorithm)


class SimilarityCache:
    """LRU cache of (text_a, text_b, algorithm) → score.

    Args:
        max_size: Entries kept before the least recently used is evicted.
        ttl_seconds: Entry lifetime; 0 disables expiry.
        clock: Monotonic seconds source, injectable for tests.
    """

    def __init__(
        self,
        max_size: int = 1000,
        ttl_seconds: float = 0.0,
        clock: Callable[[], float] = monotonic,
    ) -> None:
        if max_size <= 0:
            raise ValueError("max_size must be positive")
        if ttl_seconds < 0:
            raise ValueError("ttl_seconds cannot be negative")
        self._max_size = max_size
        self._ttl = ttl_seconds
        self._clock = clock
        self._entries: OrderedDict[CacheKey, tuple[float, float]] = OrderedDict()
        self.hits = 0
        self.misses = 0

    # ── Public API ───────────────────────────────────────────────────────

    def get(self, text_a: str, text_b: str, algorithm: str) -> float | None:
        key = canonical_key(text_a, text_b, algorithm)
        entry = self._entries.get(key)
        if entry is None:
            self.misses += 1
            return None

        score, stored_at = entry
        if self._is_expired(stored_at):
            del self._entries[key]
            self.misses += 1
            return None

        self._entries.move_to_end(key)
        self.hits += 1
        return score

    def set(self, text_a: str, text_b: str, algorithm: str, score: float) -> None:
        key = canonical_key(text_a, text_b, algorithm)
        if key in self._entries:
            self._entries.move_to_end(key)
        elif len(self._entries) >= self._max_size:
            evicted, _ = self._entries.popitem(last=False)
            logger.debug("Evicted similarity entry for algorithm %s", evicted[2])
        self._entries[key] = (score, self._clock())

    def get_or_compute(
        self,
        text_a: str,
        text_b: str,
        algorithm: str,
        compute: Callable[[str, str], float],
    ) -> float:
        cached = self.get(text_a, text_b, algorithm)
        if cached is not None:
            return cached
        score = compute(text_a, text_b)
        self.set(text_a, text_b, algorithm, score)
        return score

    def delete(self, text_a: str, text_b: str, algorithm: str) -> bool:
        return self._entries.pop(canonical_key(text_a, text_b, algorithm), None) is not None

    def clear(self) -> None:
        self._entries.clear()
        self.hits = 0
        self.misses = 0

    @property
    def max_size(self) -> int:
        return self._max_size

    def stats(self) -> dict:
        return {
            "size": len(self._entries),
            "max_size": self._max_size,
            "hits": self.hits,
            "misses": self.misses,
        }

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        if not isinstance(key, tuple) or len(key) != 3:
            return False
        return canonical_key(*key) in self._entries

    # ── Internals ────────────────────────────────────────────────────────

    def _is_expired(self, stored_at: float) -> bool:
        if self._ttl == 0:
            return False
        return (self._clock() - stored_at) > self._ttl

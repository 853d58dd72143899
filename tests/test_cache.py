"""Tests for the SimilarityCache LRU."""

import pytest

from coconut_reason.core.cache import SimilarityCache, canonical_key


class _FakeClock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


class TestCanonicalKey:
    def test_order_independent(self) -> None:
        assert canonical_key("b", "a", "levenshtein") == canonical_key("a", "b", "levenshtein")

    def test_algorithm_is_part_of_key(self) -> None:
        assert canonical_key("a", "b", "jaccard") != canonical_key("a", "b", "levenshtein")


class TestSimilarityCache:
    def test_miss_returns_none(self) -> None:
        cache = SimilarityCache()
        assert cache.get("a", "b", "levenshtein") is None
        assert cache.misses == 1

    def test_set_then_get_either_order(self) -> None:
        cache = SimilarityCache()
        cache.set("a", "b", "levenshtein", 0.5)
        assert cache.get("b", "a", "levenshtein") == 0.5
        assert cache.hits == 1
        assert len(cache) == 1

    def test_least_recently_used_evicted(self) -> None:
        cache = SimilarityCache(max_size=2)
        cache.set("a", "x", "levenshtein", 0.1)
        cache.set("b", "x", "levenshtein", 0.2)
        cache.get("a", "x", "levenshtein")
        cache.set("c", "x", "levenshtein", 0.3)

        assert ("a", "x", "levenshtein") in cache
        assert ("b", "x", "levenshtein") not in cache
        assert ("c", "x", "levenshtein") in cache
        assert len(cache) == 2

    def test_size_never_exceeds_max(self) -> None:
        cache = SimilarityCache(max_size=3)
        for i in range(10):
            cache.set(f"text {i}", "other", "jaccard", i / 10)
        assert len(cache) == 3

    def test_get_or_compute_computes_once(self) -> None:
        cache = SimilarityCache()
        calls = []

        def compute(a: str, b: str) -> float:
            calls.append((a, b))
            return 0.75

        assert cache.get_or_compute("a", "b", "cosine", compute) == 0.75
        assert cache.get_or_compute("b", "a", "cosine", compute) == 0.75
        assert len(calls) == 1

    def test_ttl_expires_entries(self) -> None:
        clock = _FakeClock()
        cache = SimilarityCache(ttl_seconds=10, clock=clock)
        cache.set("a", "b", "levenshtein", 0.9)

        clock.now = 5.0
        assert cache.get("a", "b", "levenshtein") == 0.9

        clock.now = 11.0
        assert cache.get("a", "b", "levenshtein") is None
        assert len(cache) == 0

    def test_zero_ttl_never_expires(self) -> None:
        clock = _FakeClock()
        cache = SimilarityCache(clock=clock)
        cache.set("a", "b", "levenshtein", 0.9)
        clock.now = 1e9
        assert cache.get("a", "b", "levenshtein") == 0.9

    def test_delete_and_clear(self) -> None:
        cache = SimilarityCache()
        cache.set("a", "b", "levenshtein", 0.4)
        assert cache.delete("b", "a", "levenshtein") is True
        assert cache.delete("b", "a", "levenshtein") is False

        cache.set("a", "b", "levenshtein", 0.4)
        cache.get("a", "b", "levenshtein")
        cache.clear()
        assert cache.stats() == {"size": 0, "max_size": 1000, "hits": 0, "misses": 0}

    def test_invalid_size_rejected(self) -> None:
        with pytest.raises(ValueError):
            SimilarityCache(max_size=0)

"""Tests for the bounded LRU cache."""

import pytest

from contextpilot.utils.cache import BoundedCache, content_hash


class TestContentHash:
    def test_deterministic(self) -> None:
        assert content_hash("text", 200) == content_hash("text", 200)

    def test_parts_are_separated(self) -> None:
        assert content_hash("ab", "c") != content_hash("a", "bc")

    def test_sha256_hex(self) -> None:
        assert len(content_hash("x")) == 64


class TestBoundedCache:
    def test_get_put(self) -> None:
        cache: BoundedCache[int] = BoundedCache(2)
        cache.put("a", 1)
        assert cache.get("a") == 1
        assert cache.get("missing") is None
        assert cache.stats()["hits"] == 1
        assert cache.stats()["misses"] == 1

    def test_evicts_least_recently_used(self) -> None:
        cache: BoundedCache[int] = BoundedCache(2)
        cache.put("a", 1)
        cache.put("b", 2)
        cache.get("a")
        cache.put("c", 3)

        assert "a" in cache
        assert "b" not in cache
        assert "c" in cache
        assert len(cache) == 2
        assert cache.stats()["evictions"] == 1

    def test_clear(self) -> None:
        cache: BoundedCache[str] = BoundedCache(4)
        cache.put("a", "x")
        cache.clear()
        assert len(cache) == 0

    def test_capacity_must_be_positive(self) -> None:
        with pytest.raises(ValueError, match="capacity must be positive"):
            BoundedCache(0)

"""Bounded in-memory caches for provider results.

Embedding vectors and summaries are cached by content hash. Both caches are
capacity-bounded with least-recently-used eviction so a long-running
autopilot does not grow without limit.
"""

import hashlib
from collections import OrderedDict
from typing import Generic, TypeVar

V = TypeVar("V")


def content_hash(*parts: object) -> str:
    """SHA-256 hex digest of the given parts joined by NUL bytes."""
    digest = hashlib.sha256()
    for i, part in enumerate(parts):
        if i:
            digest.update(b"\x00")
        digest.update(str(part).encode("utf-8"))
    return digest.hexdigest()


class BoundedCache(Generic[V]):
    """LRU cache with a fixed capacity.

    Not thread-safe; contextpilot runs on a single event loop.
    """

    def __init__(self, capacity: int) -> None:
        if capacity < 1:
            raise ValueError(f"capacity must be positive, got {capacity}")
        self._capacity = capacity
        self._data: OrderedDict[str, V] = OrderedDict()
        self.hits = 0
        self.misses = 0
        self.evictions = 0

    @property
    def capacity(self) -> int:
        return self._capacity

    def get(self, key: str) -> V | None:
        """Return the cached value and mark it most recently used."""
        if key not in self._data:
            self.misses += 1
            return None
        self.hits += 1
        self._data.move_to_end(key)
        return self._data[key]

    def put(self, key: str, value: V) -> None:
        """Insert or refresh a value, evicting the least recently used entry."""
        if key in self._data:
            self._data.move_to_end(key)
        self._data[key] = value
        while len(self._data) > self._capacity:
            self._data.popitem(last=False)
            self.evictions += 1

    def clear(self) -> None:
        self._data.clear()

    def __contains__(self, key: object) -> bool:
        return key in self._data

    def __len__(self) -> int:
        return len(self._data)

    def stats(self) -> dict[str, int]:
        """Size and hit/miss/eviction counters."""
        return {
            "size": len(self._data),
            "capacity": self._capacity,
            "hits": self.hits,
            "misses": self.misses,
            "evictions": self.evictions,
        }

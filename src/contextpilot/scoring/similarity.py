"""Semantic similarity strategies used by the relevance scorer."""

import asyncio
from abc import ABC, abstractmethod

from contextpilot.embedding import EmbeddingService, Vector, cosine_similarity
from contextpilot.utils.cache import BoundedCache, content_hash
from contextpilot.utils.text import text_similarity


class SimilarityStrategy(ABC):
    """Scores how closely an item's text matches the query text, 0-100."""

    name: str

    @abstractmethod
    async def similarity(self, item_text: str, query_text: str) -> float:
        """Similarity score in [0, 100].

        Raises:
            ProviderError: If an external provider fails
        """
        ...


class KeywordSimilarity(SimilarityStrategy):
    """Jaccard overlap of words longer than three characters."""

    name = "keyword"

    async def similarity(self, item_text: str, query_text: str) -> float:
        return text_similarity(item_text, query_text) * 100


class EmbeddingSimilarity(SimilarityStrategy):
    """Cosine similarity of embedding vectors, rescaled from [-1, 1] to [0, 100].

    Vectors are cached by SHA-256 of the text in a bounded LRU cache.
    Concurrent misses for the same text share one embedding request.
    """

    name = "embedding"

    def __init__(self, embedder: EmbeddingService, cache_size: int = 1024) -> None:
        self.embedder = embedder
        self.cache: BoundedCache[Vector] = BoundedCache(cache_size)
        self._inflight: dict[str, asyncio.Task[Vector]] = {}

    async def _embed(self, text: str) -> Vector:
        key = content_hash(text)
        cached = self.cache.get(key)
        if cached is not None:
            return cached

        task = self._inflight.get(key)
        if task is None:
            task = asyncio.create_task(self.embedder.embed(text))
            self._inflight[key] = task
            task.add_done_callback(lambda _: self._inflight.pop(key, None))

        # Shielded so one cancelled caller does not cancel the shared request
        vector = await asyncio.shield(task)
        self.cache.put(key, vector)
        return vector

    async def similarity(self, item_text: str, query_text: str) -> float:
        item_vec = await self._embed(item_text)
        query_vec = await self._embed(query_text)
        sim = cosine_similarity(item_vec, query_vec)
        return max(0.0, (sim + 1) / 2 * 100)

"""Mock embedding implementation for testing."""

import hashlib

import numpy as np

from .base import EmbeddingService, Vector


class MockEmbedding(EmbeddingService):
    """Mock embedding service with deterministic hash-based vectors.

    Uses MD5 hash of input text to generate reproducible embeddings,
    making tests deterministic and fast without a network provider.
    """

    def __init__(self, dimension: int = 64) -> None:
        self._dimension = dimension
        self.calls = 0

    async def embed(self, text: str) -> Vector:
        """Generate deterministic embedding for a single text."""
        self.calls += 1
        return self._hash_to_vector(text)

    @property
    def dimension(self) -> int:
        return self._dimension

    def _hash_to_vector(self, text: str) -> Vector:
        hash_bytes = hashlib.md5(text.encode("utf-8")).digest()
        seed = int.from_bytes(hash_bytes[:4], byteorder="big")

        rng = np.random.RandomState(seed)
        vector = rng.randn(self._dimension).astype(np.float32)

        norm = np.linalg.norm(vector)
        if norm > 0:
            vector = vector / norm

        return vector

"""Base embedding service interface and types."""

from abc import ABC, abstractmethod
from typing import TypeAlias

import numpy as np

from contextpilot.errors import ProviderError

# Vector type alias - numpy array of float32
Vector: TypeAlias = np.ndarray  # shape: (dimension,), dtype: float32


class EmbeddingModelError(ProviderError):
    """Raised when embedding generation fails."""

    pass


class EmbeddingService(ABC):
    """Abstract base class for text-to-vector providers."""

    @abstractmethod
    async def embed(self, text: str) -> Vector:
        """Generate embedding for a single text.

        Args:
            text: Input text to embed

        Returns:
            Vector: Embedding vector as float32 numpy array

        Raises:
            EmbeddingModelError: If embedding generation fails
        """
        ...

    async def aclose(self) -> None:
        """Release provider resources (HTTP connections)."""
        return None


def cosine_similarity(a: Vector, b: Vector) -> float:
    """Cosine similarity in [-1, 1].

    Raises:
        EmbeddingModelError: If the vectors differ in dimension
    """
    if a.shape != b.shape:
        raise EmbeddingModelError(
            f"Vectors must have same dimension, got {a.shape} and {b.shape}"
        )
    norm = float(np.linalg.norm(a) * np.linalg.norm(b))
    if norm == 0.0:
        return 0.0
    return float(np.clip(np.dot(a, b) / norm, -1.0, 1.0))

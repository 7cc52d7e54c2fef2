"""Embedding providers for semantic relevance scoring.

The provider is chosen once from configuration: a configured credential
selects HttpEmbedding, otherwise no embedder is returned and the scorer
uses keyword similarity.
"""

import structlog

from contextpilot.config import ProviderSettings, ScoringSettings
from contextpilot.errors import ConfigurationError

from .base import EmbeddingModelError, EmbeddingService, Vector, cosine_similarity
from .http import HttpEmbedding
from .mock import MockEmbedding

logger = structlog.get_logger()


def create_embedder(
    providers: ProviderSettings,
    scoring: ScoringSettings | None = None,
) -> EmbeddingService | None:
    """Build the configured embedder, or None when no credential is set."""
    try:
        api_key = providers.require_api_key()
    except ConfigurationError as e:
        logger.info("embedder.disabled", reason=str(e))
        return None

    max_chars = scoring.max_embedding_chars if scoring else 8000
    logger.info("embedder.configured", url=providers.embedding_url, model=providers.embedding_model)
    return HttpEmbedding(
        api_key=api_key,
        url=providers.embedding_url,
        model=providers.embedding_model,
        timeout=providers.timeout_seconds,
        max_chars=max_chars,
    )


__all__ = [
    "EmbeddingModelError",
    "EmbeddingService",
    "HttpEmbedding",
    "MockEmbedding",
    "Vector",
    "cosine_similarity",
    "create_embedder",
]

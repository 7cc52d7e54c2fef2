"""Embedding provider backed by an OpenAI-compatible /embeddings endpoint."""

import httpx
import numpy as np

from .base import EmbeddingModelError, EmbeddingService, Vector


class HttpEmbedding(EmbeddingService):
    """Text-to-vector over plain HTTP request/response.

    One string in, one vector out. Any transport or payload failure is
    raised as EmbeddingModelError so the scorer can fall back per call.
    """

    def __init__(
        self,
        api_key: str,
        url: str,
        model: str,
        timeout: float = 30.0,
        max_chars: int = 8000,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._url = url
        self._model = model
        self._max_chars = max_chars
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout)
        self._headers = {
            "Authorization": f"Bearer {api_key}",
            "Content-Type": "application/json",
        }

    async def embed(self, text: str) -> Vector:
        try:
            response = await self._client.post(
                self._url,
                headers=self._headers,
                json={"input": text[: self._max_chars], "model": self._model},
            )
            response.raise_for_status()
            data = response.json()
            embedding = data["data"][0]["embedding"]
        except httpx.HTTPStatusError as e:
            raise EmbeddingModelError(
                f"Embedding endpoint returned {e.response.status_code}"
            ) from e
        except httpx.HTTPError as e:
            raise EmbeddingModelError(f"Embedding request failed: {e}") from e
        except (KeyError, IndexError, TypeError, ValueError) as e:
            raise EmbeddingModelError(f"Malformed embedding response: {e}") from e

        return np.asarray(embedding, dtype=np.float32)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

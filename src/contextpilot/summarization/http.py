"""Summarizer backed by an OpenAI-compatible /chat/completions endpoint."""

import httpx

from .base import SummarizationError, Summarizer

SYSTEM_PROMPT = (
    "You are a technical documentation expert. Create concise, informative "
    "summaries that preserve key technical information and decisions."
)

# Only the head of very long inputs is sent
MAX_INPUT_CHARS = 2000


class HttpSummarizer(Summarizer):
    """Prompt-completion summarization over plain HTTP request/response."""

    def __init__(
        self,
        api_key: str,
        url: str,
        model: str,
        max_tokens: int = 150,
        timeout: float = 30.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._url = url
        self._model = model
        self._max_tokens = max_tokens
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout)
        self._headers = {
            "Authorization": f"Bearer {api_key}",
            "Content-Type": "application/json",
        }

    def _prompt(self, text: str, max_length: int) -> str:
        body = text[:MAX_INPUT_CHARS]
        if len(text) > MAX_INPUT_CHARS:
            body += " ..."
        return (
            f"Please summarize the following context in {max_length // 4} words or "
            "less, focusing on key decisions, important information, and actionable "
            "items. Keep technical details that might be relevant for development "
            f"work.\n\nContext:\n{body}\n\nSummary:"
        )

    async def summarize(self, text: str, max_length: int) -> str:
        try:
            response = await self._client.post(
                self._url,
                headers=self._headers,
                json={
                    "model": self._model,
                    "messages": [
                        {"role": "system", "content": SYSTEM_PROMPT},
                        {"role": "user", "content": self._prompt(text, max_length)},
                    ],
                    "max_tokens": self._max_tokens,
                    "temperature": 0.3,
                },
            )
            response.raise_for_status()
            summary = response.json()["choices"][0]["message"]["content"].strip()
        except httpx.HTTPStatusError as e:
            raise SummarizationError(
                f"Completion endpoint returned {e.response.status_code}"
            ) from e
        except httpx.HTTPError as e:
            raise SummarizationError(f"Completion request failed: {e}") from e
        except (KeyError, IndexError, TypeError, ValueError, AttributeError) as e:
            raise SummarizationError(f"Malformed completion response: {e}") from e

        if not summary:
            raise SummarizationError("Completion endpoint returned an empty summary")
        return summary

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

"""Base summarizer interface."""

from abc import ABC, abstractmethod

from contextpilot.errors import ProviderError


class SummarizationError(ProviderError):
    """Raised when a summarization provider call fails."""

    pass


class Summarizer(ABC):
    """Turns long text into a shorter summary of roughly max_length characters."""

    @abstractmethod
    async def summarize(self, text: str, max_length: int) -> str:
        """Summarize text.

        Args:
            text: Text to summarize
            max_length: Target summary length in characters

        Returns:
            Summary text

        Raises:
            SummarizationError: If the provider fails
        """
        ...

    async def aclose(self) -> None:
        return None

"""Summarization providers for the compression pipeline."""

import structlog

from contextpilot.config import ProviderSettings
from contextpilot.errors import ConfigurationError

from .base import SummarizationError, Summarizer
from .extractive import ExtractiveSummarizer, summarize_extractive
from .http import HttpSummarizer

logger = structlog.get_logger()


def create_summarizer(providers: ProviderSettings) -> Summarizer | None:
    """Build the configured summarizer, or None when no credential is set."""
    try:
        api_key = providers.require_api_key()
    except ConfigurationError as e:
        logger.info("summarizer.disabled", reason=str(e))
        return None
    return HttpSummarizer(
        api_key=api_key,
        url=providers.completion_url,
        model=providers.completion_model,
        max_tokens=providers.completion_max_tokens,
        timeout=providers.timeout_seconds,
    )


__all__ = [
    "ExtractiveSummarizer",
    "HttpSummarizer",
    "SummarizationError",
    "Summarizer",
    "create_summarizer",
    "summarize_extractive",
]

"""Local extractive summarization used when no completion provider is configured."""

import re

from .base import Summarizer

# Sentences mentioning any of these are kept between first and last
DECISION_KEYWORDS = (
    "decision",
    "because",
    "important",
    "chose",
    "using",
    "implemented",
    "fixed",
    "added",
    "removed",
)

_SENTENCE_SPLIT = re.compile(r"[.!?]+")


def summarize_extractive(text: str, max_length: int = 200) -> str:
    """First sentence, up to two decision sentences, last sentence; truncated.

    Examples:
        >>> summarize_extractive("Short.", 200)
        'Short.'
    """
    if len(text) <= max_length:
        return text

    sentences = [s.strip() for s in _SENTENCE_SPLIT.split(text) if s.strip()]
    if not sentences:
        return text[:max_length] + "..."

    key_sentences = [
        s for s in sentences[1:-1] if any(kw in s.lower() for kw in DECISION_KEYWORDS)
    ][:2]

    picked = [sentences[0], *key_sentences]
    if len(sentences) > 1:
        picked.append(sentences[-1])

    summary = ". ".join(picked)[:max_length]
    return summary + "..." if len(summary) < len(text) else summary


class ExtractiveSummarizer(Summarizer):
    """Summarizer that never calls out of process."""

    async def summarize(self, text: str, max_length: int) -> str:
        return summarize_extractive(text, max_length)

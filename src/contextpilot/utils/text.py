"""Text similarity and keyword helpers shared by scorer, compressor and monitor."""

import re
from collections.abc import Iterable

# Words shorter than this never count toward overlap
MIN_WORD_LENGTH = 4

STOP_WORDS = frozenset({
    "the", "a", "an", "and", "or", "but", "in", "on", "at", "to", "for",
    "of", "with", "this", "that", "these", "those", "from", "into", "have",
    "been", "were", "will", "would", "should", "could", "there", "their",
    "about", "what", "when", "where", "which", "while", "then", "than",
})

_WHITESPACE = re.compile(r"\s+")


def word_set(text: str) -> set[str]:
    """Lowercase whitespace-separated words longer than 3 characters."""
    return {w for w in _WHITESPACE.split(text.lower()) if len(w) >= MIN_WORD_LENGTH}


def jaccard(a: Iterable[str], b: Iterable[str]) -> float:
    """Jaccard similarity of two collections (0.0 when both are empty)."""
    set_a = set(a)
    set_b = set(b)
    union = set_a | set_b
    if not union:
        return 0.0
    return len(set_a & set_b) / len(union)


def text_similarity(text1: str, text2: str) -> float:
    """Word-overlap similarity of two texts in [0, 1]."""
    return jaccard(word_set(text1), word_set(text2))


def extract_keywords(text: str, limit: int | None = None) -> list[str]:
    """Stop-word-filtered keywords in first-seen order.

    Args:
        text: Source text
        limit: Optional maximum number of keywords

    Returns:
        Unique lowercase words longer than 3 characters
    """
    seen: dict[str, None] = {}
    for word in _WHITESPACE.split(text.lower()):
        word = word.strip(".,;:!?()[]{}\"'`")
        if len(word) < MIN_WORD_LENGTH or word in STOP_WORDS:
            continue
        seen.setdefault(word, None)
    keywords = list(seen)
    return keywords[:limit] if limit is not None else keywords

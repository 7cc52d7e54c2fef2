"""contextpilot utility modules.

Provides centralized utilities for:
- tokens: token estimation
- numeric: score clamping
- datetime: UTC normalization and item age
- text: word sets, Jaccard similarity, keyword extraction
- cache: bounded LRU cache for provider results
"""

from contextpilot.utils.cache import BoundedCache, content_hash
from contextpilot.utils.datetime import age_in_days, ensure_utc, utc_now
from contextpilot.utils.numeric import clamp
from contextpilot.utils.text import extract_keywords, jaccard, word_set
from contextpilot.utils.tokens import estimate_tokens

__all__ = [
    "BoundedCache",
    "age_in_days",
    "clamp",
    "content_hash",
    "ensure_utc",
    "estimate_tokens",
    "extract_keywords",
    "jaccard",
    "utc_now",
    "word_set",
]

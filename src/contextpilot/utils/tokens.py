"""Token estimation utilities.

Heuristic token counting for budget decisions. These are approximations,
not exact counts - use for soft limits only.
"""

import math


def estimate_tokens(text: str) -> int:
    """Estimate the number of tokens in text.

    Uses ceil(len(text) / 4), never less than 1, so every non-empty item
    costs something against the budget.

    Args:
        text: The text to estimate tokens for

    Returns:
        Estimated token count (always >= 1)

    Raises:
        TypeError: If text is not a string

    Examples:
        >>> estimate_tokens("Hello, world!")
        4
        >>> estimate_tokens("")
        1
    """
    if not isinstance(text, str):
        raise TypeError(f"text must be str, got {type(text).__name__}")
    return max(1, math.ceil(len(text) / 4))

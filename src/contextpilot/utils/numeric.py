"""Numeric helpers for score handling."""

from typing import TypeVar

__all__ = ["clamp", "clamp_score"]

T = TypeVar("T", int, float)


def clamp(value: T, min_val: T, max_val: T) -> T:
    """Clamp value to range [min_val, max_val], preserving type.

    Args:
        value: Value to clamp
        min_val: Minimum allowed value (inclusive)
        max_val: Maximum allowed value (inclusive)

    Returns:
        Value clamped to range, preserving original type

    Raises:
        ValueError: If min_val > max_val

    Examples:
        >>> clamp(5, 0, 10)
        5
        >>> clamp(-5, 0, 10)
        0
        >>> clamp(15.5, 0.0, 10.0)
        10.0
    """
    if min_val > max_val:
        raise ValueError(f"min_val ({min_val}) must be <= max_val ({max_val})")
    return max(min_val, min(value, max_val))


def clamp_score(value: float) -> float:
    """Clamp a score to [0, 100]; NaN maps to 0."""
    if value != value:  # NaN
        return 0.0
    return clamp(float(value), 0.0, 100.0)

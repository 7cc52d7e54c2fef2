"""Tests for token estimation."""

import pytest

from contextpilot.utils.tokens import estimate_tokens


class TestEstimateTokens:
    def test_four_chars_per_token(self) -> None:
        assert estimate_tokens("abcd") == 1
        assert estimate_tokens("abcde") == 2
        assert estimate_tokens("a" * 400) == 100

    def test_minimum_one(self) -> None:
        """Empty and tiny strings still cost one token."""
        assert estimate_tokens("") == 1
        assert estimate_tokens("a") == 1

    def test_rejects_non_string(self) -> None:
        with pytest.raises(TypeError, match="must be str"):
            estimate_tokens(42)  # type: ignore[arg-type]

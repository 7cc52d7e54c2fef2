"""Autopilot configuration."""

from dataclasses import dataclass

from contextpilot.config import AutopilotSettings, settings


@dataclass
class AutopilotConfig:
    """Runtime options for ContextAutopilot.

    Defaults mirror ``settings.autopilot``; use ``from_settings`` to pick up
    environment overrides.
    """

    max_context_tokens: int = 8000
    relevance_threshold: float = 40.0
    auto_extract_from_git: bool = True
    auto_extract_from_conversations: bool = True
    auto_compression: bool = True
    health_check_interval_minutes: float = 60.0
    git_poll_interval_seconds: float = 5.0

    def __post_init__(self) -> None:
        if self.max_context_tokens < 1:
            raise ValueError(
                f"max_context_tokens must be positive, got {self.max_context_tokens}"
            )
        if not 0.0 <= self.relevance_threshold <= 100.0:
            raise ValueError(
                f"relevance_threshold must be between 0 and 100, "
                f"got {self.relevance_threshold}"
            )
        if self.health_check_interval_minutes <= 0 or self.git_poll_interval_seconds <= 0:
            raise ValueError("polling intervals must be positive")

    @classmethod
    def from_settings(cls, section: AutopilotSettings | None = None) -> "AutopilotConfig":
        section = section or settings.autopilot
        return cls(
            max_context_tokens=section.max_context_tokens,
            relevance_threshold=section.relevance_threshold,
            auto_extract_from_git=section.auto_extract_from_git,
            auto_extract_from_conversations=section.auto_extract_from_conversations,
            auto_compression=section.auto_compression,
            health_check_interval_minutes=section.health_check_interval_minutes,
            git_poll_interval_seconds=section.git_poll_interval_seconds,
        )

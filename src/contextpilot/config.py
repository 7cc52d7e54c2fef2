"""contextpilot Configuration Module.

Centralized configuration for every contextpilot component. All settings
support environment variable overrides.

Each section is its own BaseSettings class with a nested prefix, e.g.
CONTEXTPILOT_SCORING__EMBEDDING_CACHE_SIZE=2048.

Usage:
    from contextpilot.config import settings

    settings.autopilot.max_context_tokens
    settings.compression.verbose_token_threshold
    settings.providers.embeddings_enabled
"""

import os
from typing import Any

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from contextpilot.errors import ConfigurationError

__all__ = [
    "Settings",
    "ScoringSettings",
    "CompressionSettings",
    "ExtractionSettings",
    "HealthSettings",
    "AutopilotSettings",
    "ProviderSettings",
    "LoggingSettings",
    "settings",
]


class ScoringSettings(BaseSettings):
    """Configuration for relevance scoring."""

    model_config = SettingsConfigDict(env_prefix="CONTEXTPILOT_SCORING__")

    embedding_cache_size: int = Field(
        default=1024,
        description="Maximum number of cached embedding vectors (LRU eviction)",
    )
    max_embedding_chars: int = Field(
        default=8000,
        description="Text sent to the embedding endpoint is cut to this length",
    )


class CompressionSettings(BaseSettings):
    """Configuration for the compression pipeline."""

    model_config = SettingsConfigDict(env_prefix="CONTEXTPILOT_COMPRESSION__")

    verbose_token_threshold: int = Field(
        default=500,
        description="Items estimated above this many tokens are summarized",
    )
    summary_max_chars: int = Field(
        default=200,
        description="Target length of a single-item summary",
    )
    merge_max_chars: int = Field(
        default=800,
        description="Merged content longer than this is re-summarized",
    )
    summary_cache_size: int = Field(
        default=512,
        description="Maximum number of cached summaries (LRU eviction)",
    )


class ExtractionSettings(BaseSettings):
    """Configuration for the auto extractor and file watching."""

    model_config = SettingsConfigDict(env_prefix="CONTEXTPILOT_EXTRACTION__")

    debounce_seconds: float = Field(
        default=0.3,
        description="Quiet period before a changed path is re-extracted",
    )
    max_file_bytes: int = Field(
        default=1_000_000,
        description="Files larger than this are skipped before extraction",
    )
    poll_interval_seconds: float = Field(
        default=1.0,
        description="Scan interval of the polling file watcher",
    )


class HealthSettings(BaseSettings):
    """Configuration for corpus health assessment."""

    model_config = SettingsConfigDict(env_prefix="CONTEXTPILOT_HEALTH__")

    stale_after_days: int = Field(
        default=30,
        description="Items older than this are considered stale",
    )
    fresh_within_days: int = Field(
        default=7,
        description="Items newer than this are counted as fresh",
    )
    warning_threshold: float = Field(
        default=70.0,
        description="Health scores below this trigger a health-warning event",
    )


class AutopilotSettings(BaseSettings):
    """Configuration for the orchestrator."""

    model_config = SettingsConfigDict(env_prefix="CONTEXTPILOT_AUTOPILOT__")

    max_context_tokens: int = Field(
        default=8000,
        description="Token budget for get_optimal_context",
    )
    relevance_threshold: float = Field(
        default=40.0,
        description="Items scoring below this are dropped before compression",
    )
    auto_extract_from_git: bool = Field(
        default=True,
        description="Poll the repository for new commits",
    )
    auto_extract_from_conversations: bool = Field(
        default=True,
        description="Extract decisions from conversations passed to the autopilot",
    )
    auto_compression: bool = Field(
        default=True,
        description="Compress the selected context to the token budget",
    )
    health_check_interval_minutes: float = Field(
        default=60.0,
        description="Minutes between periodic health checks",
    )
    git_poll_interval_seconds: float = Field(
        default=5.0,
        description="Seconds between revision polls",
    )
    autostart: bool = Field(
        default=True,
        description="Start the autopilot when the engine is created",
    )


class ProviderSettings(BaseSettings):
    """Configuration for optional external AI providers.

    Missing credentials select the local fallback algorithms.
    """

    model_config = SettingsConfigDict(env_prefix="CONTEXTPILOT_PROVIDERS__")

    api_key: str | None = Field(
        default_factory=lambda: os.environ.get("OPENAI_API_KEY"),
        description="Credential for both provider endpoints",
    )
    embedding_url: str = Field(
        default="https://api.openai.com/v1/embeddings",
        description="Text-to-vector endpoint",
    )
    embedding_model: str = Field(default="text-embedding-3-small")
    completion_url: str = Field(
        default="https://api.openai.com/v1/chat/completions",
        description="Prompt-completion endpoint",
    )
    completion_model: str = Field(default="gpt-4o-mini")
    completion_max_tokens: int = Field(default=150)
    timeout_seconds: float = Field(default=30.0)

    @property
    def embeddings_enabled(self) -> bool:
        """Whether a text-to-vector provider is configured."""
        return bool(self.api_key)

    @property
    def summarization_enabled(self) -> bool:
        """Whether a prompt-completion provider is configured."""
        return bool(self.api_key)

    def require_api_key(self) -> str:
        """The provider credential.

        Raises:
            ConfigurationError: If no credential is configured
        """
        if not self.api_key:
            raise ConfigurationError(
                "No provider API key; set CONTEXTPILOT_PROVIDERS__API_KEY or OPENAI_API_KEY"
            )
        return self.api_key


class LoggingSettings(BaseSettings):
    """Configuration for structlog output."""

    model_config = SettingsConfigDict(env_prefix="CONTEXTPILOT_LOG_")

    level: str = Field(default="INFO")
    format: str = Field(default="console", description='"json" or "console"')


class Settings(BaseSettings):
    """Root settings class composing all configuration sections.

    Example:
        from contextpilot.config import settings

        settings.scoring.embedding_cache_size
        settings.autopilot.relevance_threshold
    """

    model_config = SettingsConfigDict(env_prefix="CONTEXTPILOT_")

    scoring: ScoringSettings = Field(default_factory=ScoringSettings)
    compression: CompressionSettings = Field(default_factory=CompressionSettings)
    extraction: ExtractionSettings = Field(default_factory=ExtractionSettings)
    health: HealthSettings = Field(default_factory=HealthSettings)
    autopilot: AutopilotSettings = Field(default_factory=AutopilotSettings)
    providers: ProviderSettings = Field(default_factory=ProviderSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    def model_post_init(self, context: Any) -> None:
        """Validate settings after initialization."""
        if self.scoring.embedding_cache_size < 1:
            raise ValueError(
                f"embedding_cache_size must be positive, "
                f"got {self.scoring.embedding_cache_size}"
            )
        if self.compression.summary_cache_size < 1:
            raise ValueError(
                f"summary_cache_size must be positive, "
                f"got {self.compression.summary_cache_size}"
            )
        if not 0.0 <= self.autopilot.relevance_threshold <= 100.0:
            raise ValueError(
                f"relevance_threshold must be between 0 and 100, "
                f"got {self.autopilot.relevance_threshold}"
            )
        if self.autopilot.max_context_tokens < 1:
            raise ValueError(
                f"max_context_tokens must be positive, "
                f"got {self.autopilot.max_context_tokens}"
            )


# Module-level singleton instance
settings = Settings()

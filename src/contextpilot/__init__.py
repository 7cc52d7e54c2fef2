"""contextpilot - autonomous context engineering for LLM-assisted development.

Decides, for every query, which fragments of accumulated project knowledge
(decisions, conversation snippets, code annotations) are worth surfacing to
a language model under a token budget.

Usage:
    from contextpilot import create_context_engine

    engine = await create_context_engine("/path/to/project")
    items = await engine.autopilot.get_optimal_context(["auth.py"], ["..."])
"""

__version__ = "0.1.0"

from contextpilot.autopilot import AutopilotConfig, AutopilotState, ContextAutopilot
from contextpilot.compression import ContextCompressor
from contextpilot.engine import ContextEngine, create_context_engine
from contextpilot.events import Event, EventBus, EventName
from contextpilot.extraction import AutoExtractor
from contextpilot.health import HealthMonitor
from contextpilot.models import (
    CompressionResult,
    CompressionStrategy,
    ContextHealth,
    ContextItem,
    ContextType,
    ExtractedContext,
    HealthIssue,
    RelevanceScore,
    ScoredItem,
    ScoringContext,
)
from contextpilot.scoring import RelevanceScorer

__all__ = [
    "__version__",
    "AutoExtractor",
    "AutopilotConfig",
    "AutopilotState",
    "CompressionResult",
    "CompressionStrategy",
    "ContextAutopilot",
    "ContextCompressor",
    "ContextEngine",
    "ContextHealth",
    "ContextItem",
    "ContextType",
    "Event",
    "EventBus",
    "EventName",
    "ExtractedContext",
    "HealthIssue",
    "HealthMonitor",
    "RelevanceScore",
    "RelevanceScorer",
    "ScoredItem",
    "ScoringContext",
    "create_context_engine",
]

"""Assembly of a fully wired context engine for one workspace."""

from dataclasses import dataclass
from pathlib import Path

import structlog

from contextpilot.autopilot import AutopilotConfig, ContextAutopilot
from contextpilot.compression import ContextCompressor
from contextpilot.config import Settings, settings
from contextpilot.embedding import EmbeddingService, create_embedder
from contextpilot.events import EventBus
from contextpilot.extraction import AutoExtractor
from contextpilot.health import HealthMonitor
from contextpilot.scoring import RelevanceScorer
from contextpilot.storage import ContextStore, InMemoryContextStore, wire_persistence
from contextpilot.summarization import Summarizer, create_summarizer

logger = structlog.get_logger()


@dataclass
class ContextEngine:
    """Components sharing one event bus and one store."""

    workspace: Path
    bus: EventBus
    store: ContextStore
    autopilot: ContextAutopilot
    scorer: RelevanceScorer
    compressor: ContextCompressor
    extractor: AutoExtractor
    health_monitor: HealthMonitor

    async def aclose(self) -> None:
        """Stop the autopilot, close watchers and provider connections."""
        await self.autopilot.aclose()


async def create_context_engine(
    workspace: str | Path,
    *,
    store: ContextStore | None = None,
    config: Settings | None = None,
    autopilot_config: AutopilotConfig | None = None,
    autostart: bool | None = None,
    watch: bool = True,
    embedder: EmbeddingService | None = None,
    summarizer: Summarizer | None = None,
) -> ContextEngine:
    """Build and wire every component for a workspace.

    Extracted context is persisted to the store. The project is scanned and
    watched, then the autopilot is started.

    Args:
        workspace: Project root
        store: Knowledge store, in-memory when omitted
        config: Settings, the module singleton when omitted
        autopilot_config: Overrides ``config.autopilot``
        autostart: Start the autopilot; ``config.autopilot.autostart`` when None
        watch: Scan and watch the project's conventional directories
        embedder: Overrides the configured embedding provider
        summarizer: Overrides the configured summarization provider

    Returns:
        ContextEngine
    """
    cfg = config or settings
    root = Path(workspace).resolve()
    bus = EventBus()
    store = store or InMemoryContextStore()

    embedder = embedder or create_embedder(cfg.providers, cfg.scoring)
    summarizer = summarizer or create_summarizer(cfg.providers)

    scorer = RelevanceScorer(embedder=embedder, bus=bus, config=cfg.scoring)
    compressor = ContextCompressor(summarizer=summarizer, bus=bus, config=cfg.compression)
    extractor = AutoExtractor(bus=bus, config=cfg.extraction)
    health_monitor = HealthMonitor(root, config=cfg.health)
    autopilot = ContextAutopilot(
        root,
        autopilot_config or AutopilotConfig.from_settings(cfg.autopilot),
        store,
        bus=bus,
        scorer=scorer,
        compressor=compressor,
        extractor=extractor,
        health_monitor=health_monitor,
    )

    await wire_persistence(bus, store, str(root))

    if watch:
        await extractor.auto_watch_project(root)
        await bus.drain()

    should_start = cfg.autopilot.autostart if autostart is None else autostart
    if should_start:
        await autopilot.start()

    logger.info(
        "engine.created",
        workspace=str(root),
        embeddings=scorer.embeddings_enabled,
        summarization=compressor.summarization_enabled,
        autostart=should_start,
    )
    return ContextEngine(
        workspace=root,
        bus=bus,
        store=store,
        autopilot=autopilot,
        scorer=scorer,
        compressor=compressor,
        extractor=extractor,
        health_monitor=health_monitor,
    )

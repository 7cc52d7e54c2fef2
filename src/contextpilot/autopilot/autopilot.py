"""Autopilot: keeps the context corpus current and serves optimal context."""

import asyncio
from collections.abc import Sequence
from dataclasses import asdict
from enum import Enum
from pathlib import Path

import structlog

from contextpilot.compression import ContextCompressor
from contextpilot.errors import ContextPilotError, ExtractionError
from contextpilot.events import EventBus, EventName
from contextpilot.extraction import AutoExtractor
from contextpilot.git import GitPythonReader, GitReaderError, VersionControl
from contextpilot.health import HealthMonitor
from contextpilot.models import (
    CompressionStrategy,
    ContextHealth,
    ContextItem,
    ExtractedContext,
    ScoredItem,
    ScoringContext,
)
from contextpilot.scoring import RelevanceScorer
from contextpilot.storage import ContextStore, InMemoryContextStore, load_context_items
from contextpilot.utils.cache import BoundedCache, content_hash
from contextpilot.utils.text import extract_keywords

from .config import AutopilotConfig

logger = structlog.get_logger()

# Conversation contexts already published, so repeated queries do not re-persist them
SEEN_CONVERSATION_CAPACITY = 1024


class AutopilotState(Enum):
    STOPPED = "stopped"
    RUNNING = "running"


class ContextAutopilot:
    """Automatic context management for one workspace.

    While running, polls the repository for new commits and re-extracts
    context from changed files, and runs periodic health checks. Callers
    ask for context with ``get_optimal_context``.

    Example:
        autopilot = ContextAutopilot("/path/to/project", store=store)
        await autopilot.start()
        items = await autopilot.get_optimal_context(["src/auth.ts"], ["need refresh tokens"])
        autopilot.stop()
    """

    def __init__(
        self,
        workspace: str | Path,
        config: AutopilotConfig | None = None,
        store: ContextStore | None = None,
        *,
        bus: EventBus | None = None,
        scorer: RelevanceScorer | None = None,
        compressor: ContextCompressor | None = None,
        extractor: AutoExtractor | None = None,
        health_monitor: HealthMonitor | None = None,
        vcs: VersionControl | None = None,
    ) -> None:
        self.workspace = Path(workspace).resolve()
        self.config = config or AutopilotConfig.from_settings()
        self.store = store or InMemoryContextStore()
        self.bus = bus or EventBus()
        self.scorer = scorer or RelevanceScorer(bus=self.bus)
        self.compressor = compressor or ContextCompressor(bus=self.bus)
        self.extractor = extractor or AutoExtractor(bus=self.bus)
        self.health_monitor = health_monitor or HealthMonitor(self.workspace)
        self._vcs = vcs

        self.state = AutopilotState.STOPPED
        self._git_task: asyncio.Task[None] | None = None
        self._health_task: asyncio.Task[None] | None = None
        self._last_commit: str | None = None
        # Bumped by stop(); work started under an older generation is discarded
        self._generation = 0
        self._seen_conversation: BoundedCache[bool] = BoundedCache(SEEN_CONVERSATION_CAPACITY)
        self._logger = logger.bind(component="autopilot", workspace=str(self.workspace))

    @property
    def is_running(self) -> bool:
        return self.state is AutopilotState.RUNNING

    # Lifecycle

    async def start(self) -> None:
        """Start commit polling and periodic health checks."""
        if self.is_running:
            return

        self.state = AutopilotState.RUNNING
        self.bus.emit(EventName.AUTOPILOT_STARTED, config=asdict(self.config))
        self._logger.info("autopilot.started", **asdict(self.config))

        if self.config.auto_extract_from_git:
            await self._setup_git_watcher()

        self._health_task = asyncio.create_task(self._health_loop())

    def stop(self) -> None:
        """Cancel background work and close file watchers. Safe to call twice."""
        self._generation += 1
        for task in (self._git_task, self._health_task):
            if task is not None:
                task.cancel()
        self._git_task = None
        self._health_task = None
        self.extractor.stop_all_watchers()

        if self.is_running:
            self.state = AutopilotState.STOPPED
            self.bus.emit(EventName.AUTOPILOT_STOPPED)
            self._logger.info("autopilot.stopped")

    async def aclose(self) -> None:
        """Stop and release provider connections."""
        self.stop()
        await self.scorer.aclose()
        await self.compressor.aclose()

    # Commit polling

    def _open_vcs(self) -> VersionControl | None:
        if self._vcs is None:
            self._vcs = GitPythonReader.open(str(self.workspace))
        return self._vcs

    async def _setup_git_watcher(self) -> None:
        vcs = self._open_vcs()
        if vcs is None or not vcs.is_repo():
            self.bus.emit(EventName.GIT_WATCHER_SKIPPED, reason="Not a git repository")
            return

        try:
            self._last_commit = await vcs.get_head_sha()
        except GitReaderError as e:
            self._logger.warning("autopilot.git_head_failed", error=str(e))
            self.bus.emit(EventName.GIT_WATCHER_ERROR, error=e)
            return

        self._git_task = asyncio.create_task(self._git_poll_loop())
        self.bus.emit(
            EventName.GIT_WATCHER_STARTED,
            interval=self.config.git_poll_interval_seconds,
        )

    async def _git_poll_loop(self) -> None:
        while True:
            await asyncio.sleep(self.config.git_poll_interval_seconds)
            try:
                await self.check_for_git_changes()
            except Exception as e:
                self._logger.warning("autopilot.git_poll_failed", error=str(e))
                self.bus.emit(EventName.GIT_WATCHER_ERROR, error=e)

    async def check_for_git_changes(self) -> None:
        """Extract context from files changed by new commits and in the working tree.

        Raises:
            GitReaderError: If the repository cannot be read
        """
        vcs = self._open_vcs()
        if vcs is None:
            return
        generation = self._generation
        root = Path(vcs.get_repo_root())

        current = await vcs.get_head_sha()
        if self._last_commit is None:
            self._last_commit = current
        elif current != self._last_commit:
            self.bus.emit(
                EventName.GIT_CHANGE_DETECTED,
                old_commit=self._last_commit,
                new_commit=current,
            )
            try:
                changed = await vcs.diff_files(self._last_commit, current)
            except GitReaderError as e:
                self._logger.warning("autopilot.git_diff_failed", error=str(e))
                self.bus.emit(EventName.GIT_WATCHER_ERROR, error=e)
                changed = []

            for rel in changed:
                contexts = await self._extract_changed_file(root / rel)
                if generation != self._generation:
                    return
                self.extractor.publish(contexts, source="git_commit", path=str(root / rel))
            self._last_commit = current

        status = await vcs.get_status()
        if status.clean:
            return
        for rel in status.changed:
            path = root / rel
            contexts = await self._extract_changed_file(path)
            if generation != self._generation:
                return
            if contexts:
                self.bus.emit(
                    EventName.WORKING_DIR_CONTEXT_EXTRACTED,
                    path=str(path),
                    contexts=contexts,
                )

    async def _extract_changed_file(self, path: Path) -> list[ExtractedContext]:
        if not path.is_file():
            return []
        try:
            if path.stat().st_size > self.extractor.config.max_file_bytes:
                return []
            return await self.extractor.extract_from_file(path)
        except (ExtractionError, OSError) as e:
            self._logger.warning("autopilot.extraction_failed", path=str(path), error=str(e))
            self.bus.emit(EventName.EXTRACTION_ERROR, path=str(path), error=e)
            return []

    # Health

    async def _health_loop(self) -> None:
        interval = self.config.health_check_interval_minutes * 60
        while True:
            await asyncio.sleep(interval)
            try:
                await self.run_health_check()
            except Exception as e:
                self._logger.warning("autopilot.health_check_failed", error=str(e))
                self.bus.emit(EventName.HEALTH_CHECK_ERROR, error=e)

    async def run_health_check(self) -> ContextHealth:
        """Assess the stored corpus and publish the report."""
        items = await self.load_all_context()
        health = await self.health_monitor.assess_health(items)

        self.bus.emit(EventName.HEALTH_CHECK, health=health)
        if health.score < self.health_monitor.config.warning_threshold:
            self._logger.warning("autopilot.health_degraded", score=health.score)
            self.bus.emit(EventName.HEALTH_WARNING, health=health)
        return health

    # Context selection

    async def load_all_context(self) -> list[ContextItem]:
        """The stored corpus; empty when the store cannot be read."""
        try:
            return await load_context_items(self.store, str(self.workspace))
        except (ContextPilotError, OSError, ValueError) as e:
            self._logger.warning("autopilot.load_context_failed", error=str(e))
            self.bus.emit(EventName.LOAD_CONTEXT_ERROR, error=e)
            return []

    async def get_optimal_context(
        self,
        current_files: Sequence[str],
        conversation: Sequence[str],
        task_description: str | None = None,
        current_function: str | None = None,
    ) -> list[ScoredItem]:
        """Select the most relevant stored context for the current task.

        Args:
            current_files: Files the user is working on
            conversation: Recent conversation snippets
            task_description: Optional free-text task
            current_function: Optional function being edited

        Returns:
            Ranked items at or above the relevance threshold, compressed to
            the token budget when auto compression is enabled
        """
        items = await self.load_all_context()
        context = ScoringContext(
            current_files=list(current_files),
            current_function=current_function,
            recent_conversation=list(conversation),
            active_keywords=extract_keywords(" ".join(conversation)),
            task_description=task_description,
            workspace=str(self.workspace),
        )

        ranked = await self.scorer.score_and_rank(items, context)
        relevant = [s for s in ranked if s.score >= self.config.relevance_threshold]

        if self.config.auto_extract_from_conversations and conversation:
            await self._extract_conversation(conversation)

        if not self.config.auto_compression:
            return relevant

        result = await self.compressor.compress(
            relevant,
            self.config.max_context_tokens,
            CompressionStrategy.balanced(),
        )
        self.bus.emit(EventName.CONTEXT_COMPRESSED, result=result)
        return result.compressed

    async def _extract_conversation(self, conversation: Sequence[str]) -> None:
        contexts = await self.extractor.extract_from_conversation(conversation)
        fresh: list[ExtractedContext] = []
        for context in contexts:
            key = content_hash(context.type.value, context.content)
            if key in self._seen_conversation:
                continue
            self._seen_conversation.put(key, True)
            fresh.append(context)
        self.extractor.publish(fresh, source="conversation")

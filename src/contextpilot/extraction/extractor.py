"""Automatic context extraction from commits, conversations and files."""

import asyncio
import os
from collections.abc import Awaitable, Callable, Iterable, Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any, TypeAlias

import structlog

from contextpilot.config import ExtractionSettings, settings
from contextpilot.errors import ExtractionError, WatcherError
from contextpilot.events import EventBus, EventName
from contextpilot.models import ExtractedContext, ExtractedType
from contextpilot.utils.text import extract_keywords

from . import patterns
from .watcher import (
    ChangeCallback,
    Debouncer,
    ErrorCallback,
    FileWatcher,
    PollingFileWatcher,
)

logger = structlog.get_logger()

# Conventional source directories watched by auto_watch_project
PROJECT_DIRS = ("src", "lib", "app", "components", "pages", "api", "utils", "hooks")

# Project configuration files watched by auto_watch_project
PROJECT_CONFIG_FILES = (
    "package.json", "tsconfig.json", "pyproject.toml", "setup.cfg",
    "next.config.js", "vite.config.ts", "webpack.config.js", "babel.config.js",
    ".env", ".env.local",
)

KEYWORD_LIMIT = 10

# Fixed confidence per extraction path
COMMIT_DECISION_CONFIDENCE = 85
DIFF_PATTERN_CONFIDENCE = 70
CONVERSATION_DECISION_CONFIDENCE = 75
CODE_REFERENCE_CONFIDENCE = 60
FILE_DOCUMENTATION_CONFIDENCE = 90
FILE_PATTERN_CONFIDENCE = 80

WatcherFactory: TypeAlias = Callable[[Path, ChangeCallback, ErrorCallback], FileWatcher]


@dataclass
class ConversationMessage:
    """One turn of a conversation."""

    role: str
    content: str


MessageLike: TypeAlias = ConversationMessage | Mapping[str, Any] | str


@dataclass
class WatcherInfo:
    paths: list[str]
    count: int


def _message_content(message: MessageLike) -> str:
    if isinstance(message, ConversationMessage):
        return message.content
    if isinstance(message, str):
        return message
    return str(message.get("content", ""))


class AutoExtractor:
    """Extracts candidate context and keeps it current by watching files.

    Extraction methods return contexts without publishing them. The watch
    and scan paths publish CONTEXT_EXTRACTED for each file and
    CONTEXT_ITEM_EXTRACTED for each context on the event bus.

    Example:
        extractor = AutoExtractor(bus)
        contexts = await extractor.extract_from_file("src/auth.py")
        await extractor.auto_watch_project(".")
    """

    def __init__(
        self,
        bus: EventBus | None = None,
        config: ExtractionSettings | None = None,
        watcher_factory: WatcherFactory | None = None,
    ) -> None:
        self.bus = bus or EventBus()
        self.config = config or settings.extraction
        self._watcher_factory = watcher_factory or self._polling_watcher
        self._watchers: dict[str, FileWatcher] = {}
        self._debouncer = Debouncer(self.config.debounce_seconds)
        self._tasks: set[asyncio.Task[None]] = set()
        # Bumped by stop_all_watchers; in-flight results from older generations are dropped
        self._generation = 0
        self._logger = logger.bind(component="auto_extractor")

    def _polling_watcher(
        self, path: Path, on_change: ChangeCallback, on_error: ErrorCallback
    ) -> FileWatcher:
        return PollingFileWatcher(
            path,
            on_change,
            interval=self.config.poll_interval_seconds,
            on_error=on_error,
        )

    # Extraction

    async def extract_from_commit(
        self, message: str, changed_files: list[str], diff: str
    ) -> list[ExtractedContext]:
        """Decision and code-pattern contexts for one commit."""
        contexts: list[ExtractedContext] = []

        if patterns.is_architectural_decision(message):
            contexts.append(
                ExtractedContext(
                    type=ExtractedType.DECISION,
                    source="git_commit",
                    content=patterns.format_commit_decision(message),
                    confidence=COMMIT_DECISION_CONFIDENCE,
                    files=list(changed_files),
                    functions=patterns.extract_functions_from_diff(diff),
                    keywords=extract_keywords(message, limit=KEYWORD_LIMIT),
                )
            )

        found = patterns.detect_diff_patterns(diff)
        if found:
            contexts.append(
                ExtractedContext(
                    type=ExtractedType.CODE_CHANGE,
                    source="git_diff",
                    content=f"Code patterns: {', '.join(found)}",
                    confidence=DIFF_PATTERN_CONFIDENCE,
                    files=list(changed_files),
                    keywords=found,
                )
            )

        return contexts

    async def extract_from_conversation(
        self, messages: Iterable[MessageLike]
    ) -> list[ExtractedContext]:
        """Decisions and code references mentioned in conversation messages."""
        contexts: list[ExtractedContext] = []

        for message in messages:
            text = _message_content(message)
            if not text:
                continue

            for decision in patterns.extract_decisions(text):
                contexts.append(
                    ExtractedContext(
                        type=ExtractedType.DECISION,
                        source="conversation",
                        content=decision,
                        confidence=CONVERSATION_DECISION_CONFIDENCE,
                        keywords=extract_keywords(decision, limit=KEYWORD_LIMIT),
                    )
                )

            refs = patterns.extract_code_references(text)
            if refs:
                contexts.append(
                    ExtractedContext(
                        type=ExtractedType.CODE_CHANGE,
                        source="conversation",
                        content=f"Discussed: {', '.join(refs)}",
                        confidence=CODE_REFERENCE_CONFIDENCE,
                        files=[r for r in refs if "." in r],
                        keywords=refs,
                    )
                )

        return contexts

    async def extract_from_file(self, path: str | Path) -> list[ExtractedContext]:
        """Documentation and architectural-pattern contexts for one file.

        Raises:
            ExtractionError: If the file cannot be read as UTF-8 text
        """
        file_path = Path(path)
        try:
            content = await asyncio.to_thread(file_path.read_text, encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise ExtractionError(str(file_path), str(e)) from e

        contexts: list[ExtractedContext] = []
        source = str(file_path)

        docs = [
            c for c in patterns.extract_comments(content, file_path)
            if patterns.is_documentation(c)
        ]
        if docs:
            contexts.append(
                ExtractedContext(
                    type=ExtractedType.DOCUMENTATION,
                    source=source,
                    content="\n\n".join(docs),
                    confidence=FILE_DOCUMENTATION_CONFIDENCE,
                    files=[source],
                    functions=patterns.extract_function_names(content),
                )
            )

        found = patterns.detect_file_patterns(content, file_path)
        if found:
            contexts.append(
                ExtractedContext(
                    type=ExtractedType.CODE_CHANGE,
                    source=source,
                    content=f"Patterns used: {', '.join(found)}",
                    confidence=FILE_PATTERN_CONFIDENCE,
                    files=[source],
                    keywords=found,
                )
            )

        return contexts

    def publish(self, contexts: list[ExtractedContext], **payload: Any) -> None:
        """Emit one CONTEXT_EXTRACTED event plus one event per context."""
        if not contexts:
            return
        self.bus.emit(EventName.CONTEXT_EXTRACTED, contexts=contexts, **payload)
        for context in contexts:
            self.bus.emit(EventName.CONTEXT_ITEM_EXTRACTED, context=context)

    # Scanning

    def _within_size_limit(self, path: Path) -> bool:
        try:
            size = path.stat().st_size
        except OSError:
            return False
        if size > self.config.max_file_bytes:
            self._logger.debug("extraction.file_too_large", path=str(path), size=size)
            return False
        return True

    def _collect_files(self, roots: list[Path]) -> list[Path]:
        files: list[Path] = []
        for root in roots:
            if root.is_file():
                if patterns.is_relevant_path(root.name):
                    files.append(root)
                continue
            for dirpath, dirnames, filenames in os.walk(root):
                dirnames[:] = sorted(d for d in dirnames if d not in patterns.IGNORED_DIRS)
                for name in sorted(filenames):
                    if patterns.is_relevant_path(name):
                        files.append(Path(dirpath) / name)
        return files

    async def scan_paths(
        self, paths: Iterable[str | Path], source: str = "initial-scan"
    ) -> int:
        """Extract from every relevant file under paths and publish the results.

        Per-file failures are emitted as EXTRACTION_ERROR and do not stop
        the scan.

        Returns:
            Number of contexts published
        """
        roots = [Path(p) for p in paths]
        files = await asyncio.to_thread(self._collect_files, roots)

        published = 0
        for file_path in files:
            if not self._within_size_limit(file_path):
                continue
            try:
                contexts = await self.extract_from_file(file_path)
            except ExtractionError as e:
                self._logger.warning("extraction.failed", path=str(file_path), error=str(e))
                self.bus.emit(EventName.EXTRACTION_ERROR, path=str(file_path), error=e)
                continue
            self.publish(contexts, source=source, path=str(file_path))
            published += len(contexts)

        self._logger.info("extraction.scan_complete", files=len(files), contexts=published)
        return published

    # Watching

    async def watch_directory(self, path: str | Path) -> None:
        """Watch a directory tree for changes.

        Raises:
            WatcherError: If path is not an existing directory
        """
        resolved = Path(path).resolve()
        key = str(resolved)
        if key in self._watchers:
            self.bus.emit(
                EventName.WARNING,
                message=f"Directory {key} is already being watched",
            )
            return
        if not resolved.is_dir():
            error = WatcherError(key, "not a directory")
            self.bus.emit(EventName.WATCHER_ERROR, path=key, error=error)
            raise error

        await self._start_watcher(resolved)

    async def watch_file(self, path: str | Path) -> None:
        """Watch a single file for changes.

        Raises:
            WatcherError: If the file does not exist
        """
        resolved = Path(path).resolve()
        key = str(resolved)
        if key in self._watchers:
            return
        if not resolved.is_file():
            error = WatcherError(key, "file does not exist")
            self.bus.emit(EventName.WATCHER_ERROR, path=key, error=error)
            raise error

        await self._start_watcher(resolved)

    async def _start_watcher(self, resolved: Path) -> None:
        key = str(resolved)

        def _on_error(error: Exception) -> None:
            self.bus.emit(EventName.WATCHER_ERROR, path=key, error=error)

        watcher = self._watcher_factory(resolved, self.handle_file_change, _on_error)
        try:
            await watcher.start()
        except OSError as e:
            error = WatcherError(key, str(e))
            self.bus.emit(EventName.WATCHER_ERROR, path=key, error=error)
            raise error from e

        self._watchers[key] = watcher
        self._logger.info("watcher.started", path=key, kind=watcher.kind)
        self.bus.emit(EventName.WATCHING, path=key, type=watcher.kind)

    async def watch_paths(self, paths: Iterable[str | Path]) -> dict[str, int]:
        """Watch several files or directories; failures do not stop the rest.

        Returns:
            Counts of total, successful and failed paths
        """
        targets = list(paths)

        async def _watch(target: str | Path) -> None:
            if Path(target).is_dir():
                await self.watch_directory(target)
            else:
                await self.watch_file(target)

        results = await asyncio.gather(
            *(_watch(t) for t in targets), return_exceptions=True
        )
        failed = sum(1 for r in results if isinstance(r, Exception))
        if failed:
            self.bus.emit(
                EventName.WARNING,
                message=f"Failed to watch {failed} out of {len(targets)} paths",
            )
        return {"total": len(targets), "success": len(targets) - failed, "failed": failed}

    def stop_watching(self, path: str | Path) -> bool:
        """Stop watching a path. Returns True when it was being watched."""
        key = str(Path(path).resolve())
        watcher = self._watchers.pop(key, None)
        if watcher is None:
            return False
        watcher.close()
        self.bus.emit(EventName.STOPPED_WATCHING, path=key)
        return True

    def stop_all_watchers(self) -> None:
        """Close every watcher and cancel pending debounced changes.

        Change processing already in flight runs to completion but its
        results are not published.
        """
        for key, watcher in self._watchers.items():
            watcher.close()
            self.bus.emit(EventName.STOPPED_WATCHING, path=key)
        self._watchers.clear()

        self._debouncer.cancel_all()
        self._generation += 1

    def watcher_info(self) -> WatcherInfo:
        return WatcherInfo(paths=list(self._watchers), count=len(self._watchers))

    @staticmethod
    def project_paths(root: str | Path) -> list[Path]:
        """Conventional source directories and config files present under root."""
        project_root = Path(root).resolve()
        important: list[Path] = []
        for name in PROJECT_DIRS:
            candidate = project_root / name
            if candidate.is_dir():
                important.append(candidate)
        for name in PROJECT_CONFIG_FILES:
            candidate = project_root / name
            if candidate.is_file():
                important.append(candidate)
        return important

    async def auto_watch_project(self, root: str | Path) -> list[Path]:
        """Scan and watch the conventional parts of a project.

        Returns:
            The directories and config files found, empty when the project
            has no recognizable structure
        """
        project_root = Path(root).resolve()
        important = self.project_paths(project_root)

        if not important:
            self.bus.emit(
                EventName.WARNING,
                message=f"No standard project structure found in {project_root}",
            )
            return []

        try:
            await self.scan_paths(important)
        except OSError as e:
            self._logger.warning("extraction.initial_scan_failed", error=str(e))
            self.bus.emit(
                EventName.WARNING,
                message="Initial extraction failed",
                error=e,
            )

        await self.watch_paths(important)
        self.bus.emit(
            EventName.AUTO_WATCH_COMPLETE,
            project_root=str(project_root),
            watched_paths=[str(p) for p in important],
        )
        return important

    # Change handling

    def handle_file_change(self, event_type: str, path: str | Path) -> None:
        """Debounce a change notification for the path's canonical form."""
        canonical = Path(path).resolve()
        if canonical.suffix.lower() not in patterns.RELEVANT_EXTENSIONS:
            return
        self._debouncer.schedule(
            str(canonical),
            lambda: self._spawn(
                self._process_file_change(event_type, canonical, self._generation)
            ),
        )

    def _spawn(self, coro: Awaitable[None]) -> None:
        task = asyncio.ensure_future(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _process_file_change(self, event_type: str, path: Path, generation: int) -> None:
        if generation != self._generation:
            return
        self.bus.emit(EventName.FILE_CHANGE_DETECTED, event_type=event_type, path=str(path))

        # Deleted since the change was seen
        if not path.exists():
            return
        if not self._within_size_limit(path):
            return

        try:
            contexts = await self.extract_from_file(path)
        except ExtractionError as e:
            if not path.exists():
                return
            self._logger.warning("extraction.failed", path=str(path), error=str(e))
            self.bus.emit(EventName.EXTRACTION_ERROR, path=str(path), error=e)
            return

        if generation != self._generation:
            self._logger.debug("extraction.result_dropped", path=str(path))
            return
        self.publish(contexts, source="file_watcher", path=str(path), event_type=event_type)

    async def wait_idle(self) -> None:
        """Await change processing that has already left the debounce window."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

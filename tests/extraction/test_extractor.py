"""Tests for AutoExtractor."""

import asyncio
from pathlib import Path

import pytest

from contextpilot.config import ExtractionSettings
from contextpilot.errors import ExtractionError, WatcherError
from contextpilot.events import EventName
from contextpilot.extraction import AutoExtractor, ConversationMessage, FileWatcher
from contextpilot.models import ExtractedType

DOCUMENTED_MODULE = '''"""Token helpers.

Args:
    token: the raw bearer token to verify before use
"""
from dataclasses import dataclass


@dataclass
class Token:
    value: str


def verify(token):
    return token
'''


class FakeWatcher(FileWatcher):
    """Watcher that never polls; tests drive changes by hand."""

    def __init__(self, path, on_change, on_error) -> None:
        super().__init__(path, on_change)
        self.running = False
        self.closed = 0

    async def start(self) -> None:
        self.running = True

    def close(self) -> None:
        self.running = False
        self.closed += 1

    @property
    def is_running(self) -> bool:
        return self.running


@pytest.fixture
def extractor(bus) -> AutoExtractor:
    return AutoExtractor(
        bus,
        config=ExtractionSettings(debounce_seconds=0.01),
        watcher_factory=FakeWatcher,
    )


@pytest.fixture
def project(tmp_path: Path) -> Path:
    src = tmp_path / "src"
    src.mkdir()
    (src / "tokens.py").write_text(DOCUMENTED_MODULE)
    (src / "logo.png").write_bytes(b"\x89PNG")
    modules = tmp_path / "src" / "node_modules"
    modules.mkdir()
    (modules / "dep.js").write_text("async function x() {}")
    (tmp_path / "package.json").write_text("{}")
    return tmp_path


class TestExtractFromCommit:
    @pytest.mark.asyncio
    async def test_architectural_commit(self, extractor) -> None:
        contexts = await extractor.extract_from_commit(
            "Refactor auth module to use JWT",
            ["auth.ts"],
            "+async function login() { await verify(); }",
        )

        decision, change = contexts
        assert decision.type == ExtractedType.DECISION
        assert decision.confidence == 85
        assert decision.content == "Refactor auth module to use JWT"
        assert decision.files == ["auth.ts"]
        assert decision.functions == ["login"]
        assert change.type == ExtractedType.CODE_CHANGE
        assert change.confidence == 70
        assert change.content == "Code patterns: async/await"

    @pytest.mark.asyncio
    async def test_plain_commit_yields_nothing(self, extractor) -> None:
        assert await extractor.extract_from_commit("Fix typo", ["README.md"], "") == []


class TestExtractFromConversation:
    @pytest.mark.asyncio
    async def test_decisions_and_references(self, extractor) -> None:
        contexts = await extractor.extract_from_conversation([
            ConversationMessage("user", "We decided to use PostgreSQL."),
            {"role": "assistant", "content": "See auth.ts"},
            "",
        ])

        decision, refs = contexts
        assert decision.type == ExtractedType.DECISION
        assert decision.confidence == 75
        assert decision.content == "We decided to use PostgreSQL."
        assert refs.type == ExtractedType.CODE_CHANGE
        assert refs.confidence == 60
        assert refs.content == "Discussed: auth.ts"
        assert refs.files == ["auth.ts"]


class TestExtractFromFile:
    @pytest.mark.asyncio
    async def test_documentation_and_patterns(self, extractor, tmp_path: Path) -> None:
        path = tmp_path / "tokens.py"
        path.write_text(DOCUMENTED_MODULE)

        docs, found = await extractor.extract_from_file(path)

        assert docs.type == ExtractedType.DOCUMENTATION
        assert docs.confidence == 90
        assert "Args:" in docs.content
        assert docs.functions == ["Token", "verify"]
        assert docs.files == [str(path)]
        assert found.content == "Patterns used: Dataclasses"
        assert found.confidence == 80

    @pytest.mark.asyncio
    async def test_missing_file(self, extractor, tmp_path: Path) -> None:
        with pytest.raises(ExtractionError):
            await extractor.extract_from_file(tmp_path / "nope.py")

    @pytest.mark.asyncio
    async def test_binary_file(self, extractor, tmp_path: Path) -> None:
        path = tmp_path / "blob.py"
        path.write_bytes(b"\xff\xfe\x00\x81")
        with pytest.raises(ExtractionError):
            await extractor.extract_from_file(path)


class TestScanPaths:
    @pytest.mark.asyncio
    async def test_scans_relevant_files(self, extractor, bus, project: Path) -> None:
        published = await extractor.scan_paths([project / "src"])

        assert published == 2
        [event] = bus.history(EventName.CONTEXT_EXTRACTED)
        assert event.payload["source"] == "initial-scan"
        assert event.payload["path"].endswith("tokens.py")
        assert len(bus.history(EventName.CONTEXT_ITEM_EXTRACTED)) == 2

    @pytest.mark.asyncio
    async def test_unreadable_file_reported(self, extractor, bus, tmp_path: Path) -> None:
        (tmp_path / "bad.py").write_bytes(b"\xff\xfe\x00\x81")
        (tmp_path / "good.py").write_text(DOCUMENTED_MODULE)

        assert await extractor.scan_paths([tmp_path]) == 2
        [error] = bus.history(EventName.EXTRACTION_ERROR)
        assert error.payload["path"].endswith("bad.py")

    @pytest.mark.asyncio
    async def test_size_limit(self, bus, project: Path) -> None:
        extractor = AutoExtractor(bus, config=ExtractionSettings(max_file_bytes=10))
        assert await extractor.scan_paths([project / "src"]) == 0


class TestWatching:
    @pytest.mark.asyncio
    async def test_watch_directory(self, extractor, bus, tmp_path: Path) -> None:
        await extractor.watch_directory(tmp_path)

        [event] = bus.history(EventName.WATCHING)
        assert event.payload == {"path": str(tmp_path.resolve()), "type": "directory"}
        assert extractor.watcher_info().count == 1

    @pytest.mark.asyncio
    async def test_already_watched_warns(self, extractor, bus, tmp_path: Path) -> None:
        await extractor.watch_directory(tmp_path)
        await extractor.watch_directory(tmp_path)

        assert len(bus.history(EventName.WATCHING)) == 1
        [warning] = bus.history(EventName.WARNING)
        assert "already being watched" in warning.payload["message"]

    @pytest.mark.asyncio
    async def test_not_a_directory(self, extractor, bus, tmp_path: Path) -> None:
        with pytest.raises(WatcherError):
            await extractor.watch_directory(tmp_path / "missing")
        assert len(bus.history(EventName.WATCHER_ERROR)) == 1

    @pytest.mark.asyncio
    async def test_watch_paths_counts_failures(self, extractor, bus, project: Path) -> None:
        result = await extractor.watch_paths([project / "src", project / "missing.py"])

        assert result == {"total": 2, "success": 1, "failed": 1}
        assert "Failed to watch 1 out of 2 paths" in bus.history(EventName.WARNING)[0].payload["message"]

    @pytest.mark.asyncio
    async def test_stop_watching(self, extractor, bus, tmp_path: Path) -> None:
        await extractor.watch_directory(tmp_path)

        assert extractor.stop_watching(tmp_path) is True
        assert extractor.stop_watching(tmp_path) is False
        assert len(bus.history(EventName.STOPPED_WATCHING)) == 1
        assert extractor.watcher_info().paths == []


class TestAutoWatchProject:
    @pytest.mark.asyncio
    async def test_watches_conventional_paths(self, extractor, bus, project: Path) -> None:
        watched = await extractor.auto_watch_project(project)

        root = project.resolve()
        assert watched == [root / "src", root / "package.json"]
        assert extractor.watcher_info().count == 2
        [done] = bus.history(EventName.AUTO_WATCH_COMPLETE)
        assert done.payload["project_root"] == str(root)
        assert len(bus.history(EventName.CONTEXT_ITEM_EXTRACTED)) == 2

    @pytest.mark.asyncio
    async def test_unrecognized_project(self, extractor, bus, tmp_path: Path) -> None:
        assert await extractor.auto_watch_project(tmp_path) == []
        [warning] = bus.history(EventName.WARNING)
        assert "No standard project structure" in warning.payload["message"]
        assert bus.history(EventName.AUTO_WATCH_COMPLETE) == []


class TestFileChanges:
    @pytest.mark.asyncio
    async def test_burst_is_debounced(self, extractor, bus, tmp_path: Path) -> None:
        path = tmp_path / "tokens.py"
        path.write_text(DOCUMENTED_MODULE)

        for _ in range(3):
            extractor.handle_file_change("modified", path)
        await asyncio.sleep(0.05)
        await extractor.wait_idle()

        [detected] = bus.history(EventName.FILE_CHANGE_DETECTED)
        assert detected.payload["path"] == str(path.resolve())
        [extracted] = bus.history(EventName.CONTEXT_EXTRACTED)
        assert extracted.payload["source"] == "file_watcher"
        assert extracted.payload["event_type"] == "modified"

    @pytest.mark.asyncio
    async def test_irrelevant_extension_ignored(self, extractor, bus, tmp_path: Path) -> None:
        extractor.handle_file_change("modified", tmp_path / "logo.png")
        await asyncio.sleep(0.05)
        assert bus.history(EventName.FILE_CHANGE_DETECTED) == []

    @pytest.mark.asyncio
    async def test_deleted_file_is_noop(self, extractor, bus, tmp_path: Path) -> None:
        extractor.handle_file_change("deleted", tmp_path / "gone.py")
        await asyncio.sleep(0.05)
        await extractor.wait_idle()

        assert len(bus.history(EventName.FILE_CHANGE_DETECTED)) == 1
        assert bus.history(EventName.EXTRACTION_ERROR) == []
        assert bus.history(EventName.CONTEXT_EXTRACTED) == []

    @pytest.mark.asyncio
    async def test_stop_all_cancels_pending(self, extractor, bus, tmp_path: Path) -> None:
        path = tmp_path / "tokens.py"
        path.write_text(DOCUMENTED_MODULE)
        await extractor.watch_directory(tmp_path)

        extractor.handle_file_change("modified", path)
        extractor.stop_all_watchers()
        await asyncio.sleep(0.05)

        assert bus.history(EventName.FILE_CHANGE_DETECTED) == []
        assert len(bus.history(EventName.STOPPED_WATCHING)) == 1

    @pytest.mark.asyncio
    async def test_stop_drops_in_flight_results(self, extractor, bus, tmp_path: Path) -> None:
        path = tmp_path / "tokens.py"
        path.write_text(DOCUMENTED_MODULE)
        release = asyncio.Event()
        finished: list[Path] = []
        real_extract = extractor.extract_from_file

        async def gated_extract(target):
            await release.wait()
            contexts = await real_extract(target)
            finished.append(Path(target))
            return contexts

        extractor.extract_from_file = gated_extract
        extractor.handle_file_change("modified", path)
        await asyncio.sleep(0.05)
        assert len(bus.history(EventName.FILE_CHANGE_DETECTED)) == 1

        extractor.stop_all_watchers()
        release.set()
        await extractor.wait_idle()

        assert finished == [path.resolve()]
        assert bus.history(EventName.CONTEXT_EXTRACTED) == []

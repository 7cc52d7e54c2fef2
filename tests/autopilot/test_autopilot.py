"""Tests for ContextAutopilot."""

import asyncio
from datetime import timedelta
from pathlib import Path

import git
import pytest

from contextpilot.autopilot import AutopilotConfig, AutopilotState, ContextAutopilot
from contextpilot.compression import ContextCompressor
from contextpilot.events import EventName
from contextpilot.git import GitPythonReader, GitStatus, VersionControl
from contextpilot.health import HealthMonitor
from contextpilot.models import CompressionStrategy
from contextpilot.storage import (
    ConversationRecord,
    DecisionRecord,
    InMemoryContextStore,
    Project,
)
from contextpilot.utils.datetime import utc_now

DOCUMENTED_MODULE = '''"""Session helpers.

Args:
    token: the refresh token presented by the client application
"""
from dataclasses import dataclass


@dataclass
class Session:
    token: str
'''


class NoRepository(VersionControl):
    def is_repo(self) -> bool:
        return False

    def get_repo_root(self) -> str:
        return ""

    async def get_status(self) -> GitStatus:
        return GitStatus(clean=True)

    async def get_head_sha(self) -> str:
        raise AssertionError("not a repository")

    async def diff_files(self, old_sha: str, new_sha: str) -> list[str]:
        return []


class BrokenStore(InMemoryContextStore):
    async def get_current_project(self) -> Project | None:
        raise ValueError("store unavailable")


class FailingHealthMonitor(HealthMonitor):
    async def assess_health(self, items, relevance_scores=None, reference_time=None):
        raise RuntimeError("assessment crashed")


async def seeded_store(workspace: Path) -> InMemoryContextStore:
    """Decision, stale conversation and documentation for the auth scenario."""
    store = InMemoryContextStore()
    project = await store.create_project("demo", str(workspace))
    now = utc_now()
    store.insert_decision(DecisionRecord(
        id="decision", project_id=project.id, description="Use JWT for auth",
        timestamp=now - timedelta(days=2),
        metadata={"files": ["auth.ts"], "keywords": ["refresh", "tokens"]},
    ))
    store.insert_conversation(ConversationRecord(
        id="lunch", project_id=project.id, content="Lunch options near the office",
        timestamp=now - timedelta(days=60),
    ))
    store.insert_conversation(ConversationRecord(
        id="docs", project_id=project.id, content="How auth.ts issues refresh tokens",
        timestamp=now - timedelta(days=1),
        metadata={"context_type": "documentation", "files": ["auth.ts"]},
    ))
    return store


def commit_file(repo_path: Path, repo: git.Repo, name: str, content: str) -> str:
    (repo_path / name).parent.mkdir(parents=True, exist_ok=True)
    (repo_path / name).write_text(content)
    repo.index.add([name])
    return repo.index.commit(f"Add {name}").hexsha


class TestConfig:
    def test_defaults(self) -> None:
        config = AutopilotConfig()
        assert config.max_context_tokens == 8000
        assert config.relevance_threshold == 40.0
        assert config.git_poll_interval_seconds == 5.0

    def test_invalid_threshold(self) -> None:
        with pytest.raises(ValueError, match="relevance_threshold"):
            AutopilotConfig(relevance_threshold=120)


class TestOptimalContext:
    @pytest.mark.asyncio
    async def test_relevant_items_ranked_above_stale_conversation(self, bus, tmp_path: Path) -> None:
        store = await seeded_store(tmp_path)
        autopilot = ContextAutopilot(tmp_path, AutopilotConfig(), store, bus=bus, vcs=NoRepository())

        selected = await autopilot.get_optimal_context(["auth.ts"], ["need refresh tokens"])

        assert [s.id for s in selected] == ["decision", "docs"]
        assert all(s.score >= 40 for s in selected)
        [event] = bus.history(EventName.CONTEXT_COMPRESSED)
        assert event.payload["result"].summary == "No compression needed"

    @pytest.mark.asyncio
    async def test_decision_survives_aggressive_compression(self, bus, tmp_path: Path) -> None:
        store = await seeded_store(tmp_path)
        config = AutopilotConfig(relevance_threshold=0, auto_compression=False)
        autopilot = ContextAutopilot(tmp_path, config, store, bus=bus, vcs=NoRepository())

        ranked = await autopilot.get_optimal_context(["auth.ts"], ["need refresh tokens"])
        assert ranked[-1].id == "lunch"

        result = await ContextCompressor().compress(
            ranked, max_tokens=1, strategy=CompressionStrategy.aggressive()
        )
        assert "decision" in [s.id for s in result.compressed]
        assert "lunch" not in [s.id for s in result.compressed]

    @pytest.mark.asyncio
    async def test_conversation_extracted_once(self, bus, tmp_path: Path) -> None:
        autopilot = ContextAutopilot(tmp_path, AutopilotConfig(), bus=bus, vcs=NoRepository())

        await autopilot.get_optimal_context([], ["We decided to use Redis."])
        await autopilot.get_optimal_context([], ["We decided to use Redis."])

        [item] = bus.history(EventName.CONTEXT_ITEM_EXTRACTED)
        assert item.payload["context"].type.value == "decision"

    @pytest.mark.asyncio
    async def test_store_failure_yields_empty(self, bus, tmp_path: Path) -> None:
        autopilot = ContextAutopilot(tmp_path, AutopilotConfig(), BrokenStore(), bus=bus, vcs=NoRepository())

        assert await autopilot.get_optimal_context(["auth.ts"], []) == []
        assert len(bus.history(EventName.LOAD_CONTEXT_ERROR)) == 1


class TestLifecycle:
    @pytest.mark.asyncio
    async def test_start_without_repository(self, bus, tmp_path: Path) -> None:
        autopilot = ContextAutopilot(tmp_path, AutopilotConfig(), bus=bus, vcs=NoRepository())

        await autopilot.start()
        await autopilot.start()

        assert autopilot.state is AutopilotState.RUNNING
        [started] = bus.history(EventName.AUTOPILOT_STARTED)
        assert started.payload["config"]["max_context_tokens"] == 8000
        [skipped] = bus.history(EventName.GIT_WATCHER_SKIPPED)
        assert skipped.payload["reason"] == "Not a git repository"

        autopilot.stop()
        autopilot.stop()
        await asyncio.sleep(0)

        assert autopilot.state is AutopilotState.STOPPED
        assert len(bus.history(EventName.AUTOPILOT_STOPPED)) == 1

    @pytest.mark.asyncio
    async def test_git_watcher_started(self, bus, temp_repo) -> None:
        repo_path, repo = temp_repo
        commit_file(repo_path, repo, "README.md", "# demo")
        autopilot = ContextAutopilot(repo_path, AutopilotConfig(), bus=bus)

        await autopilot.start()
        try:
            [started] = bus.history(EventName.GIT_WATCHER_STARTED)
            assert started.payload["interval"] == 5.0
        finally:
            await autopilot.aclose()
            await asyncio.sleep(0)

    @pytest.mark.asyncio
    async def test_empty_repository_reports_error(self, bus, temp_repo) -> None:
        repo_path, _repo = temp_repo
        autopilot = ContextAutopilot(repo_path, AutopilotConfig(), bus=bus)

        await autopilot.start()
        autopilot.stop()
        await asyncio.sleep(0)

        assert len(bus.history(EventName.GIT_WATCHER_ERROR)) == 1
        assert bus.history(EventName.GIT_WATCHER_STARTED) == []

    @pytest.mark.asyncio
    async def test_auto_extract_from_git_disabled(self, bus, tmp_path: Path) -> None:
        config = AutopilotConfig(auto_extract_from_git=False)
        autopilot = ContextAutopilot(tmp_path, config, bus=bus, vcs=NoRepository())

        await autopilot.start()
        autopilot.stop()
        await asyncio.sleep(0)

        assert bus.history(EventName.GIT_WATCHER_SKIPPED) == []


class TestGitChanges:
    @pytest.mark.asyncio
    async def test_new_commit_and_working_tree(self, bus, temp_repo) -> None:
        repo_path, repo = temp_repo
        first = commit_file(repo_path, repo, "README.md", "# demo")
        vcs = GitPythonReader(str(repo_path))
        autopilot = ContextAutopilot(repo_path, AutopilotConfig(), bus=bus, vcs=vcs)

        await autopilot.check_for_git_changes()
        assert bus.history(EventName.GIT_CHANGE_DETECTED) == []

        second = commit_file(repo_path, repo, "src/session.py", DOCUMENTED_MODULE)
        await autopilot.check_for_git_changes()

        [change] = bus.history(EventName.GIT_CHANGE_DETECTED)
        assert change.payload == {"old_commit": first, "new_commit": second}
        [extracted] = bus.history(EventName.CONTEXT_EXTRACTED)
        assert extracted.payload["source"] == "git_commit"
        assert extracted.payload["path"].endswith("session.py")

        (repo_path / "src" / "session.py").write_text(DOCUMENTED_MODULE + "\n# edited locally\n")
        await autopilot.check_for_git_changes()

        [working] = bus.history(EventName.WORKING_DIR_CONTEXT_EXTRACTED)
        assert working.payload["path"].endswith("session.py")
        assert len(bus.history(EventName.CONTEXT_EXTRACTED)) == 1

    @pytest.mark.asyncio
    async def test_deleted_file_skipped(self, bus, temp_repo) -> None:
        repo_path, repo = temp_repo
        commit_file(repo_path, repo, "a.py", "x = 1")
        vcs = GitPythonReader(str(repo_path))
        autopilot = ContextAutopilot(repo_path, AutopilotConfig(), bus=bus, vcs=vcs)
        await autopilot.check_for_git_changes()

        repo.index.remove(["a.py"], working_tree=True)
        repo.index.commit("Remove a.py")
        await autopilot.check_for_git_changes()

        assert len(bus.history(EventName.GIT_CHANGE_DETECTED)) == 1
        assert bus.history(EventName.CONTEXT_EXTRACTED) == []
        assert bus.history(EventName.EXTRACTION_ERROR) == []


class TestHealthCheck:
    @pytest.mark.asyncio
    async def test_warning_below_threshold(self, bus, tmp_path: Path) -> None:
        store = InMemoryContextStore()
        project = await store.create_project("demo", str(tmp_path))
        old = utc_now() - timedelta(days=40)
        for record_id, text in (("on", "enable caching"), ("off", "disable caching")):
            store.insert_decision(DecisionRecord(
                id=record_id, project_id=project.id, description=text,
                timestamp=old, metadata={"files": ["config.ts"]},
            ))
        autopilot = ContextAutopilot(tmp_path, AutopilotConfig(), store, bus=bus, vcs=NoRepository())

        health = await autopilot.run_health_check()

        # conflict (-15), staleness warning (-5), all items stale (-20)
        assert health.score == 60.0
        assert len(bus.history(EventName.HEALTH_CHECK)) == 1
        [warning] = bus.history(EventName.HEALTH_WARNING)
        assert warning.payload["health"] is health

    @pytest.mark.asyncio
    async def test_healthy_corpus_no_warning(self, bus, tmp_path: Path) -> None:
        autopilot = ContextAutopilot(tmp_path, AutopilotConfig(), bus=bus, vcs=NoRepository())

        health = await autopilot.run_health_check()

        assert health.score == 100.0
        assert len(bus.history(EventName.HEALTH_CHECK)) == 1
        assert bus.history(EventName.HEALTH_WARNING) == []

    @pytest.mark.asyncio
    async def test_periodic_failure_is_published(self, bus, tmp_path: Path) -> None:
        config = AutopilotConfig(auto_extract_from_git=False, health_check_interval_minutes=0.0005)
        autopilot = ContextAutopilot(
            tmp_path, config, bus=bus, vcs=NoRepository(),
            health_monitor=FailingHealthMonitor(tmp_path),
        )

        await autopilot.start()
        await asyncio.sleep(0.1)
        autopilot.stop()

        errors = bus.history(EventName.HEALTH_CHECK_ERROR)
        assert errors
        assert isinstance(errors[0].payload["error"], RuntimeError)
        assert bus.history(EventName.HEALTH_CHECK) == []

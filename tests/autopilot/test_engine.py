"""Tests for engine assembly."""

from pathlib import Path

import pytest

from contextpilot import create_context_engine
from contextpilot.events import EventName
from contextpilot.models import ContextType
from contextpilot.storage import InMemoryContextStore

DOCUMENTED_MODULE = '''"""Token helpers.

Args:
    token: the raw bearer token to verify before use
"""
from dataclasses import dataclass


@dataclass
class Token:
    value: str
'''


@pytest.fixture
def project(tmp_path: Path) -> Path:
    src = tmp_path / "src"
    src.mkdir()
    (src / "tokens.py").write_text(DOCUMENTED_MODULE)
    return tmp_path


class TestCreateContextEngine:
    @pytest.mark.asyncio
    async def test_scanned_context_is_persisted(self, project: Path) -> None:
        store = InMemoryContextStore()
        engine = await create_context_engine(project, store=store, autostart=False)
        try:
            items = await engine.autopilot.load_all_context()

            assert sorted(i.type.value for i in items) == ["code", "documentation"]
            assert engine.extractor.watcher_info().count == 1
            assert not engine.autopilot.is_running
            assert not engine.scorer.embeddings_enabled
            [done] = engine.bus.history(EventName.AUTO_WATCH_COMPLETE)
            assert done.payload["project_root"] == str(project.resolve())
        finally:
            await engine.aclose()

        assert engine.extractor.watcher_info().count == 0

    @pytest.mark.asyncio
    async def test_autostart(self, project: Path) -> None:
        engine = await create_context_engine(project, autostart=True, watch=False)
        try:
            assert engine.autopilot.is_running
            assert engine.bus.history(EventName.AUTOPILOT_STARTED)
        finally:
            await engine.aclose()

        assert not engine.autopilot.is_running

    @pytest.mark.asyncio
    async def test_components_share_one_bus(self, project: Path) -> None:
        engine = await create_context_engine(project, autostart=False, watch=False)
        try:
            assert engine.extractor.bus is engine.bus
            assert engine.scorer.bus is engine.bus
            assert engine.compressor.bus is engine.bus
            assert engine.autopilot.bus is engine.bus
            assert engine.autopilot.store is engine.store
        finally:
            await engine.aclose()

    @pytest.mark.asyncio
    async def test_optimal_context_from_scanned_project(self, project: Path) -> None:
        engine = await create_context_engine(project, autostart=False)
        try:
            selected = await engine.autopilot.get_optimal_context(
                ["src/tokens.py"], ["verify the raw bearer token helpers"]
            )

            docs = [s for s in selected if s.type is ContextType.DOCUMENTATION]
            assert docs
            assert docs[0].relevance.factors.structural > 0
        finally:
            await engine.aclose()

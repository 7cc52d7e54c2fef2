"""Helpers shared by CLI commands."""

from pathlib import Path

from contextpilot.engine import ContextEngine, create_context_engine


async def scanned_engine(workspace: Path) -> ContextEngine:
    """Engine with the project scanned into an in-memory store.

    Nothing is watched and the autopilot is not started.
    """
    engine = await create_context_engine(workspace, autostart=False, watch=False)
    paths = engine.extractor.project_paths(workspace) or [workspace]
    await engine.extractor.scan_paths(paths)
    await engine.bus.drain()
    return engine

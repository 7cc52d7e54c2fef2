"""Pytest configuration and fixtures."""

from collections.abc import Callable, Iterator
from pathlib import Path

import git
import pytest

from contextpilot.config import settings
from contextpilot.events import EventBus
from contextpilot.models import ContextItem
from tests.helpers import build_item

# Enable pytest-asyncio for all tests
pytest_plugins = ("pytest_asyncio",)


@pytest.fixture
def make_item() -> Callable[..., ContextItem]:
    """Factory for ContextItems with a relative age in days."""
    return build_item


@pytest.fixture
def bus() -> EventBus:
    return EventBus()


@pytest.fixture
def temp_repo(tmp_path: Path) -> Iterator[tuple[Path, git.Repo]]:
    """Create a temporary git repository for testing."""
    repo = git.Repo.init(tmp_path)

    # Configure git for commits
    with repo.config_writer() as config:
        config.set_value("user", "name", "Test User")
        config.set_value("user", "email", "test@example.com")

    yield tmp_path, repo
    repo.close()


@pytest.fixture(autouse=True)
def _no_provider_credentials(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep tests on the local fallback algorithms."""
    monkeypatch.setattr(settings.providers, "api_key", None)

"""Storage collaborator interface and record types.

contextpilot owns no durable state; projects, decisions and conversation
entries live behind this interface.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from contextpilot.utils.datetime import utc_now


@dataclass
class Project:
    """A workspace known to the store."""

    id: str
    name: str
    path: str


@dataclass
class DecisionRecord:
    """A recorded decision."""

    id: str
    project_id: str
    description: str
    reasoning: str | None = None
    # ISO strings and Unix timestamps from text-backed stores are accepted
    timestamp: datetime | str | float = field(default_factory=utc_now)
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass
class ConversationRecord:
    """A recorded conversation entry.

    ``metadata["context_type"]`` marks entries that were persisted from
    extraction (``documentation`` or ``code``) rather than typed by a user.
    """

    id: str
    project_id: str
    content: str
    role: str = "assistant"
    tool: str = "other"
    # ISO strings and Unix timestamps from text-backed stores are accepted
    timestamp: datetime | str | float = field(default_factory=utc_now)
    metadata: dict[str, Any] = field(default_factory=dict)


class ContextStore(ABC):
    """Abstract base class for project knowledge storage."""

    @abstractmethod
    async def get_current_project(self) -> Project | None:
        """The project the host marked as current, if any."""
        pass

    @abstractmethod
    async def find_project_by_path(self, path: str) -> Project | None:
        """Resolve the project whose root is path."""
        pass

    @abstractmethod
    async def create_project(self, name: str, path: str) -> Project:
        """Register a new project."""
        pass

    @abstractmethod
    async def get_decisions(self, project_id: str) -> list[DecisionRecord]:
        """All decisions for a project."""
        pass

    @abstractmethod
    async def get_recent_conversations(
        self, project_id: str, limit: int = 200
    ) -> list[ConversationRecord]:
        """Most recent conversation entries for a project, newest first."""
        pass

    @abstractmethod
    async def add_decision(
        self,
        project_id: str,
        description: str,
        reasoning: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> DecisionRecord:
        """Record a decision."""
        pass

    @abstractmethod
    async def add_conversation(
        self,
        project_id: str,
        content: str,
        role: str = "assistant",
        tool: str = "other",
        metadata: dict[str, Any] | None = None,
    ) -> ConversationRecord:
        """Record a conversation entry."""
        pass

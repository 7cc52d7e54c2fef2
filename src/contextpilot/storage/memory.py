"""In-memory context store for testing and development."""

import uuid
from pathlib import Path
from typing import Any

from contextpilot.utils.datetime import deserialize_datetime

from .base import ContextStore, ConversationRecord, DecisionRecord, Project


class InMemoryContextStore(ContextStore):
    """Dict-backed ContextStore."""

    def __init__(self) -> None:
        self._projects: dict[str, Project] = {}
        self._decisions: dict[str, list[DecisionRecord]] = {}
        self._conversations: dict[str, list[ConversationRecord]] = {}
        self.current_project_id: str | None = None

    async def get_current_project(self) -> Project | None:
        if self.current_project_id is None:
            return None
        return self._projects.get(self.current_project_id)

    async def find_project_by_path(self, path: str) -> Project | None:
        resolved = str(Path(path).resolve())
        for project in self._projects.values():
            if project.path == resolved:
                return project
        return None

    async def create_project(self, name: str, path: str) -> Project:
        project = Project(id=str(uuid.uuid4()), name=name, path=str(Path(path).resolve()))
        self._projects[project.id] = project
        self._decisions[project.id] = []
        self._conversations[project.id] = []
        return project

    def _require(self, project_id: str) -> None:
        if project_id not in self._projects:
            raise ValueError(f"Project {project_id} does not exist")

    async def get_decisions(self, project_id: str) -> list[DecisionRecord]:
        self._require(project_id)
        return list(self._decisions[project_id])

    async def get_recent_conversations(
        self, project_id: str, limit: int = 200
    ) -> list[ConversationRecord]:
        self._require(project_id)
        entries = sorted(
            self._conversations[project_id], key=lambda c: deserialize_datetime(c.timestamp), reverse=True
        )
        return entries[:limit]

    async def add_decision(
        self,
        project_id: str,
        description: str,
        reasoning: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> DecisionRecord:
        self._require(project_id)
        record = DecisionRecord(
            id=str(uuid.uuid4()),
            project_id=project_id,
            description=description,
            reasoning=reasoning,
            metadata=dict(metadata or {}),
        )
        self._decisions[project_id].append(record)
        return record

    async def add_conversation(
        self,
        project_id: str,
        content: str,
        role: str = "assistant",
        tool: str = "other",
        metadata: dict[str, Any] | None = None,
    ) -> ConversationRecord:
        self._require(project_id)
        record = ConversationRecord(
            id=str(uuid.uuid4()),
            project_id=project_id,
            content=content,
            role=role,
            tool=tool,
            metadata=dict(metadata or {}),
        )
        self._conversations[project_id].append(record)
        return record

    def insert_decision(self, record: DecisionRecord) -> None:
        """Insert a fully-formed record (tests and imports)."""
        self._require(record.project_id)
        self._decisions[record.project_id].append(record)

    def insert_conversation(self, record: ConversationRecord) -> None:
        """Insert a fully-formed record (tests and imports)."""
        self._require(record.project_id)
        self._conversations[record.project_id].append(record)

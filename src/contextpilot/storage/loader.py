"""Map storage records into ContextItems."""

from typing import Any

from contextpilot.models import ContextItem, ContextType, ItemMetadata
from contextpilot.utils.datetime import deserialize_datetime

from .base import ContextStore, ConversationRecord, DecisionRecord, Project

RECENT_CONVERSATION_LIMIT = 200


async def resolve_project(store: ContextStore, workspace: str) -> Project | None:
    """Current project, else the project registered for the workspace path."""
    project = await store.get_current_project()
    if project is None:
        project = await store.find_project_by_path(workspace)
    return project


def _metadata(project: Project, raw: dict[str, Any]) -> ItemMetadata:
    return ItemMetadata(
        project=project.name,
        files=tuple(raw.get("files") or ()),
        functions=tuple(raw.get("functions") or ()),
        keywords=tuple(raw.get("keywords") or ()),
        author=raw.get("author"),
    )


def decision_to_item(project: Project, record: DecisionRecord) -> ContextItem:
    content = record.description
    if record.reasoning and record.reasoning != record.description:
        content = f"{content}\n{record.reasoning}"
    return ContextItem(
        id=record.id,
        type=ContextType.DECISION,
        content=content,
        timestamp=deserialize_datetime(record.timestamp),
        metadata=_metadata(project, record.metadata),
    )


def conversation_to_item(project: Project, record: ConversationRecord) -> ContextItem:
    raw_type = record.metadata.get("context_type", ContextType.CONVERSATION.value)
    try:
        item_type = ContextType(raw_type)
    except ValueError:
        item_type = ContextType.CONVERSATION
    return ContextItem(
        id=record.id,
        type=item_type,
        content=record.content,
        timestamp=deserialize_datetime(record.timestamp),
        metadata=_metadata(project, record.metadata),
    )


async def load_context_items(store: ContextStore, workspace: str) -> list[ContextItem]:
    """Load every known item for the workspace's project.

    Records with empty content are skipped.

    Returns:
        Decisions followed by recent conversation entries; empty when no
        project is registered for the workspace
    """
    project = await resolve_project(store, workspace)
    if project is None:
        return []

    decisions = await store.get_decisions(project.id)
    conversations = await store.get_recent_conversations(
        project.id, RECENT_CONVERSATION_LIMIT
    )

    items: list[ContextItem] = []
    for d in decisions:
        if d.description:
            items.append(decision_to_item(project, d))
    for c in conversations:
        if c.content:
            items.append(conversation_to_item(project, c))
    return items

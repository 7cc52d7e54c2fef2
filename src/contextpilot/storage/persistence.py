"""Persist extracted contexts back into the store.

Mapping:
- decision -> add_decision
- documentation / code_change -> add_conversation, tagged with the
  ContextType the loader should restore
- anything else -> add_conversation
"""

from pathlib import Path

import structlog

from contextpilot.events import Event, EventBus, EventName
from contextpilot.models import ContextType, ExtractedContext, ExtractedType

from .base import ContextStore, Project

logger = structlog.get_logger()

# Decision descriptions are cut to this length; full text goes to reasoning
MAX_DESCRIPTION_CHARS = 4000

_CONTEXT_TYPE_FOR = {
    ExtractedType.DOCUMENTATION: ContextType.DOCUMENTATION,
    ExtractedType.CODE_CHANGE: ContextType.CODE,
    ExtractedType.CONVERSATION: ContextType.CONVERSATION,
}


async def ensure_project(store: ContextStore, workspace: str) -> Project:
    """Find the project for workspace, creating it when missing."""
    project = await store.find_project_by_path(workspace)
    if project is None:
        name = Path(workspace).resolve().name or "workspace"
        project = await store.create_project(name, workspace)
        logger.info("project.created", name=name, path=workspace)
    return project


async def persist_extracted(
    store: ContextStore, project: Project, context: ExtractedContext
) -> None:
    """Write one extracted context to the store."""
    metadata = {
        "files": list(context.files),
        "functions": list(context.functions),
        "keywords": list(context.keywords),
        "source": context.source,
        "confidence": context.confidence,
    }
    if context.type == ExtractedType.DECISION:
        await store.add_decision(
            project.id,
            description=context.content[:MAX_DESCRIPTION_CHARS],
            reasoning=context.content,
            metadata=metadata,
        )
        return

    metadata["context_type"] = _CONTEXT_TYPE_FOR[context.type].value
    await store.add_conversation(
        project.id,
        content=context.content,
        role="assistant",
        tool="extractor",
        metadata=metadata,
    )


async def wire_persistence(bus: EventBus, store: ContextStore, workspace: str) -> int:
    """Subscribe a persisting handler to extracted-item events.

    Persistence failures are published as PERSISTENCE_ERROR, never raised.

    Returns:
        Subscription token
    """
    project = await ensure_project(store, workspace)

    async def _on_item(event: Event) -> None:
        context: ExtractedContext = event.payload["context"]
        try:
            await persist_extracted(store, project, context)
        except Exception as e:
            logger.warning("persistence.failed", error=str(e), source=context.source)
            bus.emit(EventName.PERSISTENCE_ERROR, error=e, context=context)

    return bus.subscribe(EventName.CONTEXT_ITEM_EXTRACTED, _on_item)

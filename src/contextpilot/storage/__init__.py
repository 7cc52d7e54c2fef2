"""Storage collaborator: interface, in-memory implementation and item mapping."""

from .base import ContextStore, ConversationRecord, DecisionRecord, Project
from .loader import load_context_items, resolve_project
from .memory import InMemoryContextStore
from .persistence import ensure_project, persist_extracted, wire_persistence

__all__ = [
    "ContextStore",
    "ConversationRecord",
    "DecisionRecord",
    "InMemoryContextStore",
    "Project",
    "ensure_project",
    "load_context_items",
    "persist_extracted",
    "resolve_project",
    "wire_persistence",
]

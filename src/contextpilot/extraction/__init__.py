"""Automatic context extraction and file watching."""

from .extractor import (
    PROJECT_CONFIG_FILES,
    PROJECT_DIRS,
    AutoExtractor,
    ConversationMessage,
    WatcherInfo,
)
from .watcher import Debouncer, FileWatcher, PollingFileWatcher

__all__ = [
    "AutoExtractor",
    "ConversationMessage",
    "Debouncer",
    "FileWatcher",
    "PROJECT_CONFIG_FILES",
    "PROJECT_DIRS",
    "PollingFileWatcher",
    "WatcherInfo",
]

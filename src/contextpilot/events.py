"""In-process event bus.

Components never raise across their boundaries; they publish what happened
here instead. Event names are a stable contract for callers.
"""

import asyncio
import inspect
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

import structlog

from contextpilot.utils.datetime import utc_now

logger = structlog.get_logger()


class EventName(Enum):
    """Observable events published by contextpilot components."""

    # Extraction
    CONTEXT_EXTRACTED = "context-extracted"
    CONTEXT_ITEM_EXTRACTED = "context-item-extracted"
    EXTRACTION_ERROR = "extraction-error"
    FILE_CHANGE_DETECTED = "file-change-detected"
    WATCHING = "watching"
    STOPPED_WATCHING = "stopped-watching"
    WATCHER_ERROR = "watcher-error"
    AUTO_WATCH_COMPLETE = "auto-watch-complete"
    WARNING = "warning"

    # Scoring / compression
    PROVIDER_ERROR = "provider-error"
    CONTEXT_COMPRESSED = "context-compressed"

    # Health
    HEALTH_CHECK = "health-check"
    HEALTH_WARNING = "health-warning"
    HEALTH_CHECK_ERROR = "health-check-error"

    # Autopilot
    AUTOPILOT_STARTED = "autopilot-started"
    AUTOPILOT_STOPPED = "autopilot-stopped"
    GIT_WATCHER_STARTED = "git-watcher-started"
    GIT_WATCHER_SKIPPED = "git-watcher-skipped"
    GIT_WATCHER_ERROR = "git-watcher-error"
    GIT_CHANGE_DETECTED = "git-change-detected"
    WORKING_DIR_CONTEXT_EXTRACTED = "working-dir-context-extracted"
    LOAD_CONTEXT_ERROR = "load-context-error"

    # Storage
    PERSISTENCE_ERROR = "persistence-error"


@dataclass(frozen=True)
class Event:
    """A published event."""

    name: EventName
    payload: dict[str, Any]
    timestamp: datetime = field(default_factory=utc_now)


@dataclass(frozen=True)
class DispatchError:
    """A subscriber failure captured without interrupting the publisher."""

    event: EventName
    subscriber: str
    error_type: str
    message: str


Subscriber = Callable[[Event], Any]


class EventBus:
    """Typed subscription registry with a bounded replay buffer.

    Subscribers may be plain callables or coroutine functions. Coroutine
    subscribers are scheduled on the running loop when published from sync
    code; ``drain()`` awaits them. Subscriber exceptions are logged and
    recorded, never propagated to the publisher.
    """

    def __init__(self, buffer_size: int = 256) -> None:
        if buffer_size < 1:
            raise ValueError(f"buffer_size must be positive, got {buffer_size}")
        self._subscriptions: dict[int, tuple[EventName | None, Subscriber]] = {}
        self._next_token = 1
        self._history: deque[Event] = deque(maxlen=buffer_size)
        self._errors: deque[DispatchError] = deque(maxlen=buffer_size)
        self._pending: set[asyncio.Task[Any]] = set()

    def subscribe(self, name: EventName | None, callback: Subscriber) -> int:
        """Subscribe to one event name, or to every event when name is None.

        Returns:
            Token for ``unsubscribe``
        """
        if not callable(callback):
            raise ValueError("callback must be callable")
        token = self._next_token
        self._next_token += 1
        self._subscriptions[token] = (name, callback)
        return token

    def unsubscribe(self, token: int) -> bool:
        """Remove a subscription. Returns True when the token existed."""
        return self._subscriptions.pop(token, None) is not None

    def emit(self, name: EventName, **payload: Any) -> Event:
        """Publish an event to all matching subscribers."""
        event = Event(name=name, payload=payload)
        self._history.append(event)

        for token, (wanted, callback) in list(self._subscriptions.items()):
            if wanted is not None and wanted != name:
                continue
            try:
                result = callback(event)
                if inspect.isawaitable(result):
                    self._schedule(event, callback, result)
            except Exception as e:
                self._record_failure(event, callback, e)

        return event

    def _schedule(self, event: Event, callback: Subscriber, awaitable: Any) -> None:
        async def _run() -> None:
            try:
                await awaitable
            except Exception as e:
                self._record_failure(event, callback, e)

        try:
            task = asyncio.get_running_loop().create_task(_run())
        except RuntimeError:
            # No running loop: run the coroutine to completion here
            asyncio.run(_run())
            return
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    def _record_failure(self, event: Event, callback: Subscriber, error: Exception) -> None:
        subscriber = getattr(callback, "__qualname__", repr(callback))
        logger.warning(
            "event_subscriber_failed",
            event_name=event.name.value,
            subscriber=subscriber,
            error=str(error),
        )
        self._errors.append(
            DispatchError(
                event=event.name,
                subscriber=subscriber,
                error_type=type(error).__name__,
                message=str(error),
            )
        )

    async def drain(self) -> None:
        """Await async subscriber tasks scheduled by ``emit``."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    def history(self, name: EventName | None = None) -> list[Event]:
        """Buffered events in publish order, optionally filtered by name."""
        return [e for e in self._history if name is None or e.name == name]

    @property
    def dispatch_errors(self) -> list[DispatchError]:
        return list(self._errors)

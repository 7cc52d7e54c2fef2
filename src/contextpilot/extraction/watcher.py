"""File watching primitives: per-path debounce and a polling watcher."""

import asyncio
import os
from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import TypeAlias
from pathlib import Path

import structlog

from .patterns import IGNORED_DIRS

logger = structlog.get_logger()

ChangeCallback: TypeAlias = Callable[[str, Path], None]
ErrorCallback: TypeAlias = Callable[[Exception], None]
Snapshot: TypeAlias = dict[Path, tuple[int, int]]


class Debouncer:
    """Collapses bursts of calls per key into one call after a quiet period.

    Scheduling a key that is already pending cancels the pending timer and
    starts a new one.
    """

    def __init__(self, delay: float) -> None:
        if delay < 0:
            raise ValueError(f"delay must be non-negative, got {delay}")
        self.delay = delay
        self._timers: dict[str, asyncio.TimerHandle] = {}

    def schedule(self, key: str, callback: Callable[[], None]) -> None:
        """Run callback after the delay unless the key is rescheduled first.

        Must be called from within a running event loop.
        """
        existing = self._timers.pop(key, None)
        if existing is not None:
            existing.cancel()

        def _fire() -> None:
            self._timers.pop(key, None)
            callback()

        loop = asyncio.get_running_loop()
        self._timers[key] = loop.call_later(self.delay, _fire)

    def cancel(self, key: str) -> bool:
        timer = self._timers.pop(key, None)
        if timer is None:
            return False
        timer.cancel()
        return True

    def cancel_all(self) -> None:
        for timer in self._timers.values():
            timer.cancel()
        self._timers.clear()

    @property
    def pending(self) -> int:
        return len(self._timers)

    def __contains__(self, key: object) -> bool:
        return key in self._timers


class FileWatcher(ABC):
    """Watches one file or directory tree and reports changed paths."""

    def __init__(self, path: Path, on_change: ChangeCallback) -> None:
        self.path = path
        self.on_change = on_change
        self.kind = "directory" if path.is_dir() else "file"

    @abstractmethod
    async def start(self) -> None:
        """Begin watching."""
        pass

    @abstractmethod
    def close(self) -> None:
        """Stop watching. Safe to call more than once."""
        pass

    @property
    @abstractmethod
    def is_running(self) -> bool:
        pass


def snapshot_path(root: Path) -> Snapshot:
    """Map every file under root (or root itself) to (mtime_ns, size).

    Ignored directories are pruned from the walk.
    """
    if root.is_file():
        st = root.stat()
        return {root: (st.st_mtime_ns, st.st_size)}

    result: Snapshot = {}
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames[:] = [d for d in dirnames if d not in IGNORED_DIRS]
        for name in filenames:
            path = Path(dirpath) / name
            try:
                st = path.stat()
            except OSError:
                continue
            result[path] = (st.st_mtime_ns, st.st_size)
    return result


def diff_snapshots(old: Snapshot, new: Snapshot) -> list[tuple[str, Path]]:
    """Changes between two snapshots as (event_type, path) pairs."""
    changes: list[tuple[str, Path]] = []
    for path, stamp in new.items():
        previous = old.get(path)
        if previous is None:
            changes.append(("created", path))
        elif previous != stamp:
            changes.append(("modified", path))
    for path in old:
        if path not in new:
            changes.append(("deleted", path))
    return changes


class PollingFileWatcher(FileWatcher):
    """Detects changes by periodically comparing mtime/size snapshots.

    Snapshots are taken in a worker thread.
    """

    def __init__(
        self,
        path: Path,
        on_change: ChangeCallback,
        interval: float = 1.0,
        on_error: ErrorCallback | None = None,
    ) -> None:
        super().__init__(path, on_change)
        self.interval = interval
        self.on_error = on_error
        self._snapshot: Snapshot = {}
        self._task: asyncio.Task[None] | None = None

    async def start(self) -> None:
        if self._task is not None:
            return
        self._snapshot = await asyncio.to_thread(snapshot_path, self.path)
        self._task = asyncio.create_task(self._poll_loop())

    async def _poll_loop(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            try:
                current = await asyncio.to_thread(self._safe_snapshot)
            except OSError as e:
                logger.warning("watcher.poll_failed", path=str(self.path), error=str(e))
                if self.on_error is not None:
                    self.on_error(e)
                continue

            changes = diff_snapshots(self._snapshot, current)
            self._snapshot = current
            for event_type, path in changes:
                self.on_change(event_type, path)

    def _safe_snapshot(self) -> Snapshot:
        # A watched single file that disappeared is reported as deleted
        if not self.path.exists() and len(self._snapshot) <= 1:
            return {}
        return snapshot_path(self.path)

    def close(self) -> None:
        if self._task is not None:
            self._task.cancel()
            self._task = None

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

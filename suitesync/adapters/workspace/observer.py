"""Workspace filesystem observer adapter.

Watches the test directories with watchdog and coalesces raw events into
one WorkspaceChange per quiet period. Watchdog delivers events on its
own thread; they are handed to the event loop with call_soon_threadsafe.
"""

import asyncio
import logging
import os
from collections.abc import Awaitable, Callable

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from suitesync.core.models import WorkspaceChange

logger = logging.getLogger(__name__)

IGNORED_DIRECTORIES = {"node_modules", ".git"}


class ChangeAccumulator:
    """Coalesces created/changed/deleted paths between flushes."""

    def __init__(self) -> None:
        self.created: set[str] = set()
        self.changed: set[str] = set()
        self.deleted: set[str] = set()

    def record(self, kind: str, path: str) -> None:
        if kind == "created":
            self.deleted.discard(path)
            self.created.add(path)
        elif kind == "modified":
            if path not in self.created:
                self.changed.add(path)
        elif kind == "deleted":
            if path in self.created:
                self.created.discard(path)
            else:
                self.deleted.add(path)
            self.changed.discard(path)

    def flush(self) -> WorkspaceChange:
        change = WorkspaceChange(
            created=frozenset(self.created),
            changed=frozenset(self.changed),
            deleted=frozenset(self.deleted),
        )
        self.created, self.changed, self.deleted = set(), set(), set()
        return change


class _ForwardingHandler(FileSystemEventHandler):
    """Forwards watchdog events from the observer thread to the loop."""

    def __init__(self, observer: "WorkspaceObserver", loop: asyncio.AbstractEventLoop):
        super().__init__()
        self._observer = observer
        self._loop = loop

    def on_any_event(self, event: FileSystemEvent) -> None:
        if event.is_directory:
            return
        if event.event_type == "moved":
            records = [("deleted", event.src_path), ("created", event.dest_path)]
        elif event.event_type in ("created", "modified", "deleted"):
            records = [(event.event_type, event.src_path)]
        else:
            return
        for kind, path in records:
            path = os.fsdecode(path)
            if any(part in IGNORED_DIRECTORIES for part in path.split(os.sep)):
                continue
            try:
                self._loop.call_soon_threadsafe(self._observer.record, kind, path)
            except RuntimeError:
                logger.debug(f"Event loop closed, dropping {kind} event for {path}")


class WorkspaceObserver:
    """Observes directories and reports coalesced changes."""

    def __init__(
        self,
        on_change: Callable[[WorkspaceChange], Awaitable[None]],
        debounce_seconds: float = 0.1,
    ):
        """Initialize the observer.

        Args:
            on_change: Coroutine function receiving each coalesced change.
                Calls never overlap.
            debounce_seconds: Quiet period before a change is delivered.
        """
        self._on_change = on_change
        self._debounce_seconds = debounce_seconds
        self._accumulator = ChangeAccumulator()
        self._observer: Observer | None = None
        self._handler: _ForwardingHandler | None = None
        self._watched: set[str] = set()
        self._flush_task: asyncio.Task[None] | None = None
        self._delivery_lock = asyncio.Lock()

    def start(self, directories: list[str]) -> None:
        """Start watching ``directories`` recursively. Missing ones are skipped."""
        self._handler = _ForwardingHandler(self, asyncio.get_running_loop())
        self._observer = Observer()
        self.watch(directories)
        self._observer.start()

    def watch(self, directories: list[str]) -> None:
        """Also watch those of ``directories`` not watched yet.

        Directories already watched are left alone; nothing is unscheduled.
        """
        if self._observer is None or self._handler is None:
            raise RuntimeError("Observer is not started")
        for directory in dict.fromkeys(directories):
            if directory in self._watched:
                continue
            if not os.path.isdir(directory):
                logger.warning(f"Not watching missing directory {directory}")
                continue
            self._observer.schedule(self._handler, directory, recursive=True)
            self._watched.add(directory)
            logger.info(f"Watching {directory}")

    @property
    def watched_directories(self) -> set[str]:
        return set(self._watched)

    def record(self, kind: str, path: str) -> None:
        """Record one event and restart the quiet-period timer."""
        self._accumulator.record(kind, path)
        if self._flush_task is not None:
            self._flush_task.cancel()
        self._flush_task = asyncio.create_task(self._flush_later())

    async def _flush_later(self) -> None:
        await asyncio.sleep(self._debounce_seconds)
        # Detached so later events start a new timer instead of cancelling delivery.
        self._flush_task = None
        async with self._delivery_lock:
            change = self._accumulator.flush()
            if change.is_empty():
                return
            logger.debug(
                f"Workspace changed: {len(change.created)} created, "
                f"{len(change.changed)} changed, {len(change.deleted)} deleted"
            )
            try:
                await self._on_change(change)
            except Exception as e:
                logger.error(f"Failed to handle workspace change: {e}", exc_info=True)

    async def stop(self) -> None:
        if self._flush_task is not None and not self._flush_task.done():
            self._flush_task.cancel()
        if self._observer is not None:
            self._observer.stop()
            await asyncio.to_thread(self._observer.join, 5.0)
            self._observer = None
        self._handler = None
        self._watched.clear()

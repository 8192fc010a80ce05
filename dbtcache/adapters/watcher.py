"""Watch workspace roots for top-level project folders coming and going.

watchdog delivers events on its own thread; they are handed to the asyncio
loop with ``call_soon_threadsafe``. Creations are debounced (a checkout or
archive extraction takes a while to materialize), deletions rebuild at once.
A rename inside a root is handled as a deletion followed by a creation.
"""
from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Iterable
from pathlib import Path
from typing import TYPE_CHECKING

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

if TYPE_CHECKING:
    from dbtcache.engine.container import DbtProjectContainer

logger = logging.getLogger(__name__)


class Debouncer:
    """Run an async callback once activity has been quiet for *delay* seconds.

    Every ``trigger()`` restarts the timer, so a burst of triggers inside
    the window produces a single run.
    """

    def __init__(
        self,
        delay: float,
        callback: Callable[[], Awaitable[None]],
        *,
        loop: asyncio.AbstractEventLoop | None = None,
    ) -> None:
        self.delay = delay
        self._callback = callback
        self._loop = loop
        self._handle: asyncio.TimerHandle | None = None
        self._tasks: set[asyncio.Task] = set()

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def trigger(self) -> None:
        """Must be called from the loop thread."""
        loop = self._loop or asyncio.get_running_loop()
        if self._handle is not None:
            self._handle.cancel()
        self._handle = loop.call_later(self.delay, self._fire, loop)

    def _fire(self, loop: asyncio.AbstractEventLoop) -> None:
        self._handle = None
        task = loop.create_task(self._callback())
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    async def wait_idle(self) -> None:
        """Wait for runs already started by the debouncer."""
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)


def _as_str(path: str | bytes) -> str:
    if isinstance(path, bytes):
        return path.decode("utf-8", errors="replace")
    return path


class _TopLevelHandler(FileSystemEventHandler):
    """Forwards create/delete/move events from the watchdog thread to the loop."""

    def __init__(self, watcher: ProjectFolderWatcher) -> None:
        super().__init__()
        self._watcher = watcher

    def on_created(self, event: FileSystemEvent) -> None:
        self._watcher.dispatch_threadsafe("created", event.src_path)

    def on_deleted(self, event: FileSystemEvent) -> None:
        self._watcher.dispatch_threadsafe("deleted", event.src_path)

    def on_moved(self, event: FileSystemEvent) -> None:
        # A rename is a deletion of the old entry plus a creation of the new
        # one, unless the entry left the watched root.
        self._watcher.dispatch_threadsafe("deleted", event.src_path)
        dest_path = _as_str(event.dest_path)
        if self._watcher.is_top_level(dest_path):
            self._watcher.dispatch_threadsafe("created", dest_path)


class ProjectFolderWatcher:
    """Rebuilds the container when entries appear in or vanish from a root."""

    def __init__(
        self,
        container: DbtProjectContainer,
        roots: Iterable[Path | str] | None = None,
        *,
        create_delay: float | None = None,
    ) -> None:
        self._container = container
        self._roots = [Path(r) for r in (roots if roots is not None else container.workspace_roots)]
        delay = container.config.create_debounce_seconds if create_delay is None else create_delay
        self._debouncer = Debouncer(delay, self._rebuild)
        self._loop: asyncio.AbstractEventLoop | None = None
        self._observer: Observer | None = None
        self._tasks: set[asyncio.Task] = set()
        self.rebuild_count = 0

    @property
    def running(self) -> bool:
        return self._observer is not None

    def start(self) -> None:
        """Schedule one non-recursive watch per root. Call from the loop."""
        if self._observer is not None:
            return
        self._loop = asyncio.get_running_loop()
        observer = Observer()
        handler = _TopLevelHandler(self)
        for root in self._roots:
            if not root.is_dir():
                logger.warning("Watcher: skipping missing workspace root %s", root)
                continue
            observer.schedule(handler, str(root), recursive=False)
            logger.info("Watcher: watching %s", root)
        observer.start()
        self._observer = observer

    def stop(self) -> None:
        self._debouncer.cancel()
        if self._observer is None:
            return
        self._observer.stop()
        self._observer.join(timeout=5.0)
        self._observer = None
        logger.info("Watcher: stopped")

    def is_top_level(self, path: Path | str) -> bool:
        """True when *path* is a direct child of one of the watched roots."""
        return Path(path).parent in self._roots

    def dispatch_threadsafe(self, kind: str, src_path: str | bytes) -> None:
        loop = self._loop
        if loop is None or loop.is_closed():
            return
        src_path = _as_str(src_path)
        try:
            loop.call_soon_threadsafe(self.handle_event, kind, Path(src_path))
        except RuntimeError as exc:
            logger.debug("Watcher: loop gone, dropping %s %s: %s", kind, src_path, exc)

    def handle_event(self, kind: str, path: Path) -> None:
        """Process one top-level event on the loop thread."""
        logger.debug("Watcher: %s %s", kind, path)
        if kind == "created":
            self._debouncer.trigger()
        elif kind == "deleted":
            task = asyncio.get_running_loop().create_task(self._rebuild())
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)

    async def _rebuild(self) -> None:
        self.rebuild_count += 1
        try:
            await self._container.rebuild_and_refresh()
        except Exception:
            logger.exception("Watcher: rebuild failed")

    async def wait_idle(self) -> None:
        """Wait for rebuilds already in flight."""
        await self._debouncer.wait_idle()
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

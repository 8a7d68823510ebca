"""
Thin wrapper over watchdog that turns OS notifications into ChangeEvents.

Every subscribed directory gets its own non-recursive watch; the watch set is
fixed at start. Notifications are delivered on the observer's dispatch thread,
one at a time, to the callbacks registered with on_change / on_error.
"""

from __future__ import annotations

import logging
import os
import threading
from typing import Callable, Iterable, Optional

from watchdog.events import (
    FileSystemEvent,
    FileSystemEventHandler,
    FileSystemMovedEvent,
)
from watchdog.observers import Observer

from hotrun.core.errors import WatchInitError
from .types import ChangeEvent, ChangeKind, WatchError

log = logging.getLogger(__name__)


def _fs_path(p) -> str:
    return os.path.abspath(os.fsdecode(p))


class _Handler(FileSystemEventHandler):
    def __init__(self, watcher: "ChangeWatcher") -> None:
        super().__init__()
        self._watcher = watcher

    def on_modified(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._watcher._deliver_change(_fs_path(event.src_path), "WRITE")

    def on_created(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._watcher._deliver_change(_fs_path(event.src_path), "CREATE")

    def on_deleted(self, event: FileSystemEvent) -> None:
        if event.is_directory:
            self._watcher._dir_removed(_fs_path(event.src_path))
            return
        self._watcher._deliver_change(_fs_path(event.src_path), "REMOVE")

    def on_moved(self, event: FileSystemMovedEvent) -> None:
        if event.is_directory:
            self._watcher._dir_removed(_fs_path(event.src_path))
            return
        self._watcher._deliver_change(_fs_path(event.src_path), "RENAME")
        # atomic saves land as a rename onto the real file name
        if event.dest_path:
            self._watcher._deliver_change(_fs_path(event.dest_path), "CREATE")


class ChangeWatcher:
    """Subscribes a fixed set of directories and reports changes and errors."""

    def __init__(
        self,
        dirs: Iterable[str],
        root: Optional[str] = None,
        observer_factory: Callable[[], object] = Observer,
    ) -> None:
        self._dirs = frozenset(os.path.abspath(d) for d in dirs)
        self._root = os.path.abspath(root) if root else None
        self._observer_factory = observer_factory
        self._observer = None
        self._handler = _Handler(self)
        self._lock = threading.Lock()
        self._subscribed: set[str] = set()
        self._removed: set[str] = set()

        self._change_cb: Optional[Callable[[ChangeEvent], None]] = None
        self._error_cb: Optional[Callable[[WatchError], None]] = None

    def on_change(self, cb: Callable[[ChangeEvent], None]) -> None:
        self._change_cb = cb

    def on_error(self, cb: Callable[[WatchError], None]) -> None:
        self._error_cb = cb

    def watched_dirs(self) -> frozenset[str]:
        with self._lock:
            return frozenset(self._subscribed)

    def is_running(self) -> bool:
        return self._observer is not None and self._observer.is_alive()

    def start(self) -> None:
        """
        Start the observer and subscribe every directory.

        Raises WatchInitError if the observer cannot start or the root directory
        cannot be subscribed. Any other directory that fails is reported on the
        error stream and skipped.
        """
        if self.is_running():
            return

        observer = self._observer_factory()
        try:
            observer.start()
        except Exception as e:
            raise WatchInitError(f"cannot start file watcher: {e}") from e
        self._observer = observer

        # root first so a fatal failure happens before anything else is subscribed
        ordered = sorted(self._dirs, key=lambda d: (d != self._root, d))
        for d in ordered:
            try:
                observer.schedule(self._handler, d, recursive=False)
            except OSError as e:
                if d == self._root:
                    self.stop()
                    raise WatchInitError(f"cannot watch {d}: {e}") from e
                self._emit_error(WatchError(f"cannot watch directory: {e}", d))
                continue
            with self._lock:
                self._subscribed.add(d)

        log.debug("Watching %d directories", len(self._subscribed))

    def stop(self) -> None:
        observer = self._observer
        self._observer = None
        if observer is None:
            return
        observer.stop()
        if observer is not threading.current_thread():
            observer.join(timeout=5.0)
        with self._lock:
            self._subscribed.clear()

    def _deliver_change(self, path: str, kind: ChangeKind) -> None:
        cb = self._change_cb
        if cb is None:
            return
        try:
            cb(ChangeEvent(path=path, kind=kind))
        except Exception as e:
            # the dispatch thread must survive a failing consumer
            log.exception("Change handler error")
            self._emit_error(WatchError(f"change handler failed: {e}", path))

    def _dir_removed(self, path: str) -> None:
        with self._lock:
            if path not in self._subscribed or path in self._removed:
                return
            self._removed.add(path)
            self._subscribed.discard(path)
        self._emit_error(WatchError("watched directory was removed", path))

    def _emit_error(self, err: WatchError) -> None:
        if self._error_cb is None:
            log.warning("Watch error: %s", err)
            return
        try:
            self._error_cb(err)
        except Exception:
            log.exception("Watch error handler failed")

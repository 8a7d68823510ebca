"""
Wires the pipeline together:

    enumerate dirs -> ChangeWatcher -> EventFilter -> ProcessLifecycleManager

Startup problems (bad root, blank command, watcher init failure) raise
StartupError before anything runs. Everything after that is reported through
status events and never stops the daemon.
"""

from __future__ import annotations

import logging
import threading
import time
from pathlib import Path
from typing import Callable, Optional

from hotrun.core.errors import ConfigError, WatchInitError
from hotrun.core.lifecycle.commands import split_command
from hotrun.core.lifecycle.manager import ProcessLifecycleManager
from hotrun.core.watch.debounce import EventFilter
from hotrun.core.watch.enumerator import enumerate_watch_dirs
from hotrun.core.watch.types import WatchError
from hotrun.core.watch.watcher import ChangeWatcher
from hotrun.shared.config import HotrunConfig

log = logging.getLogger(__name__)


def _now_iso() -> str:
    return time.strftime("%Y-%m-%dT%H:%M:%S", time.localtime())


def validate_root(root: Path) -> Path:
    if not root.exists():
        raise ConfigError(f"directory does not exist: {root}")
    if not root.is_dir():
        raise ConfigError(f"the path isn't a directory: {root}")
    return root.resolve()


class Daemon:
    def __init__(
        self,
        config: HotrunConfig,
        watcher_factory: Callable[..., ChangeWatcher] = ChangeWatcher,
        manager_factory: Callable[..., ProcessLifecycleManager] = ProcessLifecycleManager,
    ) -> None:
        self._cfg = config
        self._watcher_factory = watcher_factory
        self._manager_factory = manager_factory

        self._watcher: Optional[ChangeWatcher] = None
        self._manager: Optional[ProcessLifecycleManager] = None

        self._event_cb: Optional[Callable[[dict], None]] = None
        self._stop_evt = threading.Event()

    def on_event(self, cb: Callable[[dict], None]) -> None:
        self._event_cb = cb

    @property
    def manager(self) -> Optional[ProcessLifecycleManager]:
        return self._manager

    @property
    def watcher(self) -> Optional[ChangeWatcher]:
        return self._watcher

    def start(self) -> None:
        cfg = self._cfg
        root = validate_root(Path(cfg.root_dir))
        build_argv = split_command(cfg.build_cmd)
        run_argv = split_command(cfg.run_cmd)

        dirs = enumerate_watch_dirs(root)

        manager = self._manager_factory(build_argv, run_argv, **cfg.to_lifecycle_config())
        manager.on_event(self._emit)
        event_filter = EventFilter(manager, cfg.source_ext)

        watcher = self._watcher_factory(dirs, root=str(root))
        watcher.on_change(event_filter.handle)
        watcher.on_error(self._on_watch_error)

        manager.start()
        try:
            watcher.start()
        except WatchInitError:
            manager.shutdown()
            raise

        self._manager = manager
        self._watcher = watcher
        self._stop_evt.clear()

        self._emit({"type": "WATCHING", "path": str(root), "dirs": len(dirs)})
        if cfg.run_on_start:
            manager.trigger_cycle()

    def stop(self) -> None:
        """Request shutdown; safe to call from a signal handler."""
        self._stop_evt.set()

    def wait(self, poll_interval: float = 0.5) -> None:
        """Block until stop() is called, then shut everything down."""
        while not self._stop_evt.wait(poll_interval):
            pass
        self.shutdown()

    def shutdown(self) -> None:
        watcher, self._watcher = self._watcher, None
        manager, self._manager = self._manager, None
        if watcher is not None:
            watcher.stop()
        if manager is not None:
            manager.shutdown()

    def _on_watch_error(self, err: WatchError) -> None:
        self._emit({"type": "WATCH_ERROR", "path": err.path, "error": err.message})

    def _emit(self, evt: dict) -> None:
        evt.setdefault("at", _now_iso())
        if self._event_cb:
            try:
                self._event_cb(evt)
            except Exception:
                log.exception("Status event handler error")

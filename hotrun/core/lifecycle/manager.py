"""
Build / restart lifecycle.

State machine: IDLE -> BUILDING -> RESTARTING -> IDLE

One worker thread runs cycles. A trigger accepted by the debounce gate marks
the cycle as in flight before the worker is woken, and the flag is cleared
only when the cycle is over, so at most one cycle can ever be in flight and a
trigger that arrives meanwhile is dropped rather than queued.
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Callable, Optional, Sequence

from hotrun.core.watch.debounce import DebounceWindow
from hotrun.core.watch.types import FilterDecision
from .commands import run_build
from .process import start_child, stop_child
from .types import (
    BuildResult,
    ChildProcess,
    KillResult,
    LifecycleState,
    ManagerState,
    ManagerStatus,
)

log = logging.getLogger(__name__)


def _now_iso() -> str:
    return time.strftime("%Y-%m-%dT%H:%M:%S", time.localtime())


class ProcessLifecycleManager:
    """
    Owns the build command, the run command and the single running child.

    The debounce window, the cycle state and the child handle live here and
    are only touched under self._lock.
    """

    def __init__(
        self,
        build_argv: Sequence[str],
        run_argv: Sequence[str],
        cwd: Optional[str] = None,
        quiet_period_s: float = 1.0,
        stop_timeout_s: float = 5.0,
        clock: Callable[[], float] = time.monotonic,
        build_runner: Callable[..., BuildResult] = run_build,
        child_starter: Callable[..., ChildProcess] = start_child,
        child_stopper: Callable[..., KillResult] = stop_child,
    ) -> None:
        self._build_argv = list(build_argv)
        self._run_argv = list(run_argv)
        self._cwd = cwd
        self._stop_timeout_s = stop_timeout_s
        self._clock = clock
        self._run_build = build_runner
        self._start_child = child_starter
        self._stop_child = child_stopper

        self._lock = threading.Lock()
        self._idle = threading.Condition(self._lock)
        self._status: ManagerStatus = "STOPPED"
        self._window = DebounceWindow(quiet_period_s=quiet_period_s)
        self._cycle_state: LifecycleState = "IDLE"
        self._child: Optional[ChildProcess] = None
        self._build_proc = None
        self._cycles_completed = 0

        self._event_cb: Optional[Callable[[dict], None]] = None

        self._thread: Optional[threading.Thread] = None
        self._wake = threading.Event()
        self._stop_evt = threading.Event()

    def on_event(self, cb: Callable[[dict], None]) -> None:
        self._event_cb = cb

    def get_state(self) -> ManagerState:
        with self._lock:
            return ManagerState(
                status=self._status,
                cycle_state=self._cycle_state,
                build_in_flight=self._window.build_in_flight,
                last_trigger=self._window.last_trigger,
                child_pid=self._child.pid if self._child else None,
                cycles_completed=self._cycles_completed,
            )

    def current_child(self) -> Optional[ChildProcess]:
        with self._lock:
            return self._child

    def start(self) -> None:
        with self._lock:
            if self._status == "RUNNING":
                return
            if self._thread is not None and self._thread.is_alive():
                raise RuntimeError("previous lifecycle worker is still running")
            self._status = "RUNNING"
            self._stop_evt.clear()
            self._wake.clear()

        self._thread = threading.Thread(target=self._run, name="hotrun-lifecycle", daemon=True)
        self._thread.start()

    def shutdown(self, join_timeout: Optional[float] = 10.0) -> None:
        """
        Stop the worker and the current child so nothing is left orphaned.

        An in-flight build is terminated; the worker will not start a new child
        once shutdown has begun.
        """
        with self._lock:
            if self._status == "STOPPED":
                return
            self._status = "STOPPED"
            self._stop_evt.set()
            build_proc = self._build_proc
        self._wake.set()

        if build_proc is not None and build_proc.poll() is None:
            log.info("Terminating in-flight build (pid %s)", build_proc.pid)
            try:
                build_proc.terminate()
            except OSError:
                log.debug("Build process already gone")

        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=join_timeout)
            if thread.is_alive():
                log.warning("Lifecycle worker still busy after %.1fs", join_timeout or 0.0)

        with self._lock:
            child = self._child
            self._child = None
        if child is not None:
            self._stop(child)

        with self._lock:
            self._window.release()
            self._idle.notify_all()

    def request_cycle(self, path: Optional[str] = None, now: Optional[float] = None) -> FilterDecision:
        """
        Debounce gate. Returns ACCEPTED if a cycle was scheduled.

        The in-flight check and the timestamp update happen under one lock.
        Requests made while the manager is stopped are reported as BUSY.
        """
        with self._lock:
            if self._status != "RUNNING":
                return "BUSY"
            decision = self._window.admit(self._clock() if now is None else now)

        if decision == "ACCEPTED":
            if path is not None:
                log.debug("Accepted change %s", path)
                self._emit({"type": "CHANGED", "path": path})
            self._wake.set()
        return decision

    def trigger_cycle(self) -> bool:
        """Schedule a cycle regardless of the quiet period (e.g. the initial build)."""
        with self._lock:
            if self._status != "RUNNING":
                return False
            accepted = self._window.force(self._clock())
        if accepted:
            self._wake.set()
        return accepted

    def wait_idle(self, timeout: Optional[float] = None) -> bool:
        """Block until no cycle is in flight. Returns False on timeout."""
        with self._idle:
            return self._idle.wait_for(lambda: not self._window.build_in_flight, timeout)

    def _emit(self, evt: dict) -> None:
        evt.setdefault("at", _now_iso())
        if self._event_cb:
            try:
                self._event_cb(evt)
            except Exception:
                log.exception("Status event handler error")

    def _run(self) -> None:
        while True:
            self._wake.wait()
            self._wake.clear()
            if self._stop_evt.is_set():
                break

            with self._lock:
                if not self._window.build_in_flight:
                    continue
            try:
                self._run_cycle()
            except Exception:
                log.exception("Lifecycle cycle error")
            finally:
                with self._lock:
                    self._cycle_state = "IDLE"
                    self._build_proc = None
                    self._cycles_completed += 1
                    self._window.release()
                    self._idle.notify_all()

    def _track_build(self, proc) -> None:
        with self._lock:
            self._build_proc = proc
            stopping = self._stop_evt.is_set()
        if stopping:
            # shutdown ran before this build was tracked
            log.info("Terminating build started during shutdown (pid %s)", proc.pid)
            try:
                proc.terminate()
            except OSError:
                log.debug("Build process already gone")

    def _run_cycle(self) -> None:
        with self._lock:
            self._cycle_state = "BUILDING"

        self._emit({"type": "BUILD_STARTED", "argv": list(self._build_argv)})
        try:
            result = self._run_build(self._build_argv, self._cwd, on_spawn=self._track_build)
        except Exception as e:
            log.exception("Build runner error")
            result = BuildResult(success=False, error=str(e))

        if not result.success:
            # the running child keeps serving the previous build
            self._emit({"type": "BUILD_FAILED", "error": result.error, "returncode": result.returncode})
            return
        self._emit({"type": "BUILD_SUCCEEDED"})

        with self._lock:
            if self._stop_evt.is_set():
                return
            self._cycle_state = "RESTARTING"
            old = self._child
            self._child = None

        if old is not None:
            self._stop(old)
        self._start_new()

    def _stop(self, child: ChildProcess) -> KillResult:
        try:
            result = self._stop_child(child, self._stop_timeout_s)
        except Exception as e:
            log.exception("Stopping pid %s failed", child.pid)
            result = KillResult(outcome="FAILED", error=str(e))

        if result.outcome == "FAILED":
            self._emit({"type": "KILL_FAILED", "pid": child.pid, "error": result.error})
        else:
            if result.outcome == "ALREADY_EXITED":
                log.debug("pid %s had already exited", child.pid)
            self._emit({
                "type": "PROCESS_STOPPED",
                "pid": child.pid,
                "outcome": result.outcome,
                "returncode": result.returncode,
            })
        return result

    def _start_new(self) -> None:
        try:
            child = self._start_child(self._run_argv, self._cwd)
        except OSError as e:
            self._emit({"type": "PROCESS_START_FAILED", "argv": list(self._run_argv), "error": str(e)})
            return
        except Exception as e:
            log.exception("Starting %s failed", self._run_argv[0])
            self._emit({"type": "PROCESS_START_FAILED", "argv": list(self._run_argv), "error": str(e)})
            return

        with self._lock:
            stopping = self._stop_evt.is_set()
            if not stopping:
                self._child = child
        if stopping:
            self._stop(child)
            return

        self._emit({"type": "PROCESS_STARTED", "pid": child.pid, "argv": list(child.argv)})
        threading.Thread(
            target=self._reap, args=(child,), name=f"hotrun-reaper-{child.pid}", daemon=True
        ).start()

    def _reap(self, child: ChildProcess) -> None:
        try:
            returncode = child.wait()
        except Exception as e:
            log.debug("Waiting on pid %s failed: %s", child.pid, e)
            returncode = None

        with self._lock:
            if self._child is not child:
                # replaced or shut down; the stop path already reported it
                return
            self._child = None
        self._emit({"type": "PROCESS_EXITED", "pid": child.pid, "returncode": returncode})

"""
Starting and stopping the run-command child with psutil.

Stop results are classified by exception type: psutil.NoSuchProcess means the
child already went away on its own and is reported as ALREADY_EXITED, which
callers treat as success. AccessDenied and other OS errors are FAILED.
"""

from __future__ import annotations

import logging
import os
import subprocess
import time
from typing import Optional, Sequence

import psutil

from .types import ChildProcess, KillResult

log = logging.getLogger(__name__)


def start_child(argv: Sequence[str], cwd: Optional[str] = None) -> ChildProcess:
    """
    Spawn the run command without waiting for it.

    stdout/stderr are inherited; stdin is detached so the child cannot hold the
    terminal. On POSIX the child gets its own session so a terminal Ctrl+C
    reaches hotrun, which then stops the child itself.

    Raises OSError if the program cannot be started.
    """
    kwargs = {}
    if os.name == "posix":
        kwargs["start_new_session"] = True
    proc = psutil.Popen(
        list(argv),
        cwd=cwd,
        env=os.environ.copy(),
        stdin=subprocess.DEVNULL,
        **kwargs,
    )
    return ChildProcess(proc=proc, argv=list(argv), started_at=time.time())


def _returncode(proc) -> Optional[int]:
    return getattr(proc, "returncode", None)


def stop_child(child: ChildProcess, timeout: float = 5.0) -> KillResult:
    """
    Terminate the child and its descendants and wait for them to exit.

    Anything still alive after `timeout` seconds is killed.
    """
    proc = child.proc
    pid = child.pid

    try:
        descendants = proc.children(recursive=True)
    except psutil.NoSuchProcess:
        return KillResult(outcome="ALREADY_EXITED", returncode=_returncode(proc))
    except psutil.AccessDenied:
        descendants = []

    try:
        proc.terminate()
    except psutil.NoSuchProcess:
        return KillResult(outcome="ALREADY_EXITED", returncode=_returncode(proc))
    except psutil.AccessDenied:
        return KillResult(outcome="FAILED", error=f"permission denied terminating pid {pid}")
    except OSError as e:
        return KillResult(outcome="FAILED", error=f"cannot terminate pid {pid}: {e}")

    for d in descendants:
        try:
            d.terminate()
        except (psutil.NoSuchProcess, psutil.AccessDenied):
            continue

    _, alive = psutil.wait_procs([proc, *descendants], timeout=timeout)
    if alive:
        log.warning("pid %s did not exit within %.1fs, killing", pid, timeout)
        for p in alive:
            try:
                p.kill()
            except psutil.NoSuchProcess:
                continue
            except psutil.AccessDenied:
                log.debug("Cannot kill pid %s", p.pid)
        _, alive = psutil.wait_procs(alive, timeout=max(timeout, 1.0))
        if any(p.pid == pid for p in alive):
            return KillResult(outcome="FAILED", error=f"pid {pid} survived kill")

    return KillResult(outcome="STOPPED", returncode=_returncode(proc))

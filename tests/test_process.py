"""Tests for starting and stopping the child with real processes."""

import os
import sys
import time

import psutil
import pytest

from hotrun.core.lifecycle.process import start_child, stop_child
from hotrun.core.lifecycle.types import ChildProcess

SLEEPER = [sys.executable, "-c", "import time; time.sleep(30)"]


@pytest.fixture
def started():
    children = []

    def _start(argv=SLEEPER, cwd=None):
        child = start_child(argv, cwd)
        children.append(child)
        return child

    yield _start
    for c in children:
        try:
            c.proc.kill()
            c.proc.wait(5)
        except psutil.Error:
            pass


class TestStartChild:
    def test_does_not_wait(self, started):
        t0 = time.monotonic()
        child = started()
        assert time.monotonic() - t0 < 5.0
        assert child.proc.is_running()
        assert child.argv == SLEEPER
        assert child.pid == child.proc.pid

    def test_missing_program_raises_oserror(self, tmp_path):
        with pytest.raises(OSError):
            start_child([str(tmp_path / "nope")])

    @pytest.mark.skipif(os.name != "posix", reason="sessions are POSIX only")
    def test_child_gets_own_session(self, started):
        child = started()
        assert os.getsid(child.pid) == child.pid


class TestStopChild:
    def test_stops_running_child(self, started):
        child = started()
        result = stop_child(child, timeout=5.0)

        assert result.outcome == "STOPPED"
        assert result.ok
        assert not child.proc.is_running()

    def test_already_exited_is_benign(self, started):
        child = started([sys.executable, "-c", "pass"])
        child.proc.wait(10)

        result = stop_child(child, timeout=1.0)

        assert result.outcome == "ALREADY_EXITED"
        assert result.ok
        assert result.error is None

    @pytest.mark.skipif(os.name != "posix", reason="SIGTERM handling is POSIX only")
    def test_kills_child_that_ignores_terminate(self, started):
        script = (
            "import signal, sys, time\n"
            "signal.signal(signal.SIGTERM, signal.SIG_IGN)\n"
            "print('ready', flush=True)\n"
            "time.sleep(30)\n"
        )
        child = started([sys.executable, "-c", script])
        time.sleep(0.5)

        result = stop_child(child, timeout=0.5)

        assert result.outcome == "STOPPED"
        assert not child.proc.is_running()

    @pytest.mark.skipif(os.name != "posix", reason="process tree semantics")
    def test_descendants_are_stopped(self, started):
        script = (
            "import subprocess, sys, time\n"
            f"subprocess.Popen([{sys.executable!r}, '-c', 'import time; time.sleep(30)'])\n"
            "time.sleep(30)\n"
        )
        child = started([sys.executable, "-c", script])
        deadline = time.time() + 10
        grandchildren = []
        while time.time() < deadline and not grandchildren:
            grandchildren = child.proc.children(recursive=True)
            time.sleep(0.05)
        assert grandchildren

        stop_child(child, timeout=5.0)

        _, alive = psutil.wait_procs(grandchildren, timeout=5.0)
        for g in alive:
            # orphans may linger as zombies when nothing reaps them
            try:
                assert g.status() == psutil.STATUS_ZOMBIE
            except psutil.NoSuchProcess:
                pass


class _DeniedProc:
    pid = 424242

    def children(self, recursive=False):
        return []

    def terminate(self):
        raise psutil.AccessDenied(self.pid)


class _GoneProc:
    pid = 424243

    def children(self, recursive=False):
        raise psutil.NoSuchProcess(self.pid)


def test_access_denied_is_failure():
    child = ChildProcess(proc=_DeniedProc(), argv=["x"], started_at=0.0)
    result = stop_child(child)

    assert result.outcome == "FAILED"
    assert not result.ok
    assert "424242" in result.error


def test_no_such_process_is_already_exited():
    child = ChildProcess(proc=_GoneProc(), argv=["x"], started_at=0.0)
    assert stop_child(child).outcome == "ALREADY_EXITED"

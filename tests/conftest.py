import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))
sys.path.insert(0, str(Path(__file__).parent))

from hotrun.core.lifecycle.manager import ProcessLifecycleManager
from fakes import EventLog, FakeBuild, FakeChildren, FakeClock


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def events():
    return EventLog()


@pytest.fixture
def children():
    return FakeChildren()


@pytest.fixture
def make_manager(clock, events, children):
    created = []

    def _make(build=None, quiet_period_s=1.0, **kwargs):
        kwargs.setdefault("child_starter", children.start)
        kwargs.setdefault("child_stopper", children.stop)
        mgr = ProcessLifecycleManager(
            ["go", "build"],
            ["./app"],
            cwd=None,
            quiet_period_s=quiet_period_s,
            clock=clock,
            build_runner=build or FakeBuild(),
            **kwargs,
        )
        mgr.on_event(events)
        mgr.start()
        created.append(mgr)
        return mgr

    yield _make
    for mgr in created:
        mgr.shutdown(join_timeout=2.0)

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Literal, Optional

ManagerStatus = Literal["STOPPED", "RUNNING"]

LifecycleState = Literal["IDLE", "BUILDING", "RESTARTING"]

KillOutcome = Literal["STOPPED", "ALREADY_EXITED", "FAILED"]

StatusType = Literal[
    "WATCHING",
    "CHANGED",
    "BUILD_STARTED",
    "BUILD_FAILED",
    "BUILD_SUCCEEDED",
    "PROCESS_STOPPED",
    "KILL_FAILED",
    "PROCESS_STARTED",
    "PROCESS_START_FAILED",
    "PROCESS_EXITED",
    "WATCH_ERROR",
]


@dataclass
class BuildResult:
    success: bool
    error: Optional[str] = None
    returncode: Optional[int] = None


@dataclass
class KillResult:
    outcome: KillOutcome
    error: Optional[str] = None
    returncode: Optional[int] = None

    @property
    def ok(self) -> bool:
        # a process that was already gone counts as stopped
        return self.outcome != "FAILED"


@dataclass
class ChildProcess:
    """The running artifact instance. `proc` is a psutil.Popen in production."""
    proc: Any
    argv: list[str]
    started_at: float

    @property
    def pid(self) -> int:
        return self.proc.pid

    def wait(self) -> Optional[int]:
        return self.proc.wait()


@dataclass
class ManagerState:
    status: ManagerStatus = "STOPPED"
    cycle_state: LifecycleState = "IDLE"
    build_in_flight: bool = False
    last_trigger: Optional[float] = None
    child_pid: Optional[int] = None
    cycles_completed: int = 0

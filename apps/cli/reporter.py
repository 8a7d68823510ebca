from __future__ import annotations

import logging
from typing import Optional

from hotrun.core.lifecycle.types import StatusType

log = logging.getLogger("hotrun")

_ERROR_TYPES: frozenset[StatusType] = frozenset({
    "BUILD_FAILED",
    "KILL_FAILED",
    "PROCESS_START_FAILED",
    "WATCH_ERROR",
})


class StatusReporter:
    """Turns lifecycle status events into log lines."""

    def __init__(self, logger: Optional[logging.Logger] = None) -> None:
        self._log = logger or log

    def level_for(self, evt: dict) -> int:
        t = evt.get("type")
        if t in _ERROR_TYPES:
            return logging.ERROR
        if t == "PROCESS_EXITED" and evt.get("returncode") not in (0, None):
            return logging.WARNING
        return logging.INFO

    def format(self, evt: dict) -> str:
        t = evt.get("type")
        if t == "WATCHING":
            return f"Watching [{evt.get('path')}] ({evt.get('dirs', '?')} directories)"
        if t == "CHANGED":
            return f"File [{evt.get('path')}] has changed!"
        if t == "BUILD_STARTED":
            return "Building: " + " ".join(evt.get("argv") or [])
        if t == "BUILD_FAILED":
            return f"BUILD ERROR: {evt.get('error')}"
        if t == "BUILD_SUCCEEDED":
            return "BUILD SUCCESS"
        if t == "PROCESS_STOPPED":
            if evt.get("outcome") == "ALREADY_EXITED":
                return f"Previous process (pid {evt.get('pid')}) had already exited"
            return f"Stopped process (pid {evt.get('pid')})"
        if t == "KILL_FAILED":
            return f"KILL ERROR: pid {evt.get('pid')}: {evt.get('error')}"
        if t == "PROCESS_STARTED":
            return f"Running (pid {evt.get('pid')}): " + " ".join(evt.get("argv") or [])
        if t == "PROCESS_START_FAILED":
            return f"RUN ERROR: {evt.get('error')}"
        if t == "PROCESS_EXITED":
            return f"Process (pid {evt.get('pid')}) exited with status {evt.get('returncode')}"
        if t == "WATCH_ERROR":
            path = evt.get("path")
            suffix = f" ({path})" if path else ""
            return f"WATCH ERROR: {evt.get('error')}{suffix}"
        return f"{t}: {evt}"

    def handle(self, evt: dict) -> None:
        self._log.log(self.level_for(evt), self.format(evt))

"""
Event filtering and debounce.

Each change event passes three gates in order:

  1. operation: only WRITE / CREATE are relevant
  2. extension: only the configured source extension is relevant
  3. debounce: dropped while a cycle is in flight, or when the previous
     accepted trigger is younger than the quiet period

The third gate is answered by whoever owns the DebounceWindow (the lifecycle
manager), inside its lock, so two events can never both be accepted for the
same burst.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Optional, Protocol

from .types import RELEVANT_KINDS, ChangeEvent, FilterDecision

log = logging.getLogger(__name__)


@dataclass
class DebounceWindow:
    """
    Trigger throttling state. Not synchronized: the owner must hold its lock
    around every call.

    The quiet period is measured from the last *accepted* trigger, so a steady
    stream of edits yields one cycle per period instead of postponing forever.
    """
    quiet_period_s: float
    last_trigger: Optional[float] = None
    build_in_flight: bool = False

    def admit(self, now: float) -> FilterDecision:
        if self.build_in_flight:
            return "BUSY"
        if self.last_trigger is not None and now - self.last_trigger < self.quiet_period_s:
            return "TOO_SOON"
        self.last_trigger = now
        self.build_in_flight = True
        return "ACCEPTED"

    def force(self, now: float) -> bool:
        """Accept regardless of the quiet period; still refused while in flight."""
        if self.build_in_flight:
            return False
        self.last_trigger = now
        self.build_in_flight = True
        return True

    def release(self) -> None:
        self.build_in_flight = False


class CycleGate(Protocol):
    def request_cycle(self, path: Optional[str] = None, now: Optional[float] = None) -> FilterDecision:
        ...


def is_relevant_kind(kind: str) -> bool:
    return kind in RELEVANT_KINDS


def has_source_ext(path: str, source_ext: str) -> bool:
    return os.path.splitext(path)[1] == source_ext


class EventFilter:
    """Applies the operation and extension gates, then asks the gate owner."""

    def __init__(self, gate: CycleGate, source_ext: str) -> None:
        self._gate = gate
        self._source_ext = source_ext

    def handle(self, event: ChangeEvent) -> FilterDecision:
        if not is_relevant_kind(event.kind):
            return "IGNORED_KIND"
        if not has_source_ext(event.path, self._source_ext):
            return "IGNORED_EXT"

        decision = self._gate.request_cycle(path=event.path)
        if decision != "ACCEPTED":
            log.debug("Dropped %s %s: %s", event.kind, event.path, decision)
        return decision

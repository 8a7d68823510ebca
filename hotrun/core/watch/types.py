from __future__ import annotations

from dataclasses import dataclass
from typing import Literal, Optional

ChangeKind = Literal["WRITE", "CREATE", "REMOVE", "RENAME"]

# Outcome of running one change event through the filter gates.
FilterDecision = Literal["IGNORED_KIND", "IGNORED_EXT", "BUSY", "TOO_SOON", "ACCEPTED"]

RELEVANT_KINDS: frozenset[str] = frozenset({"WRITE", "CREATE"})


@dataclass(frozen=True)
class ChangeEvent:
    path: str
    kind: ChangeKind


@dataclass(frozen=True)
class WatchError:
    message: str
    path: Optional[str] = None

    def __str__(self) -> str:
        if self.path:
            return f"{self.message} ({self.path})"
        return self.message

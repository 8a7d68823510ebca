"""
Directory enumeration for the watch set.

Hidden directories (leading dot) are pruned together with their subtrees.
Unreadable branches are skipped; the walk never fails as a whole.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Union

log = logging.getLogger(__name__)


def is_hidden(name: str) -> bool:
    return name.startswith(".")


def enumerate_watch_dirs(root: Union[str, Path]) -> frozenset[str]:
    """Return the absolute paths of `root` and every non-hidden directory below it."""
    root_path = os.path.abspath(str(root))
    found: set[str] = {root_path}
    stack = [root_path]

    while stack:
        current = stack.pop()
        try:
            with os.scandir(current) as it:
                entries = list(it)
        except OSError as e:
            # permission denied, or removed while walking
            log.debug("Skipping unreadable directory %s: %s", current, e)
            continue

        for entry in entries:
            try:
                if not entry.is_dir(follow_symlinks=False):
                    continue
            except OSError:
                continue
            if is_hidden(entry.name):
                continue
            found.add(entry.path)
            stack.append(entry.path)

    return frozenset(found)

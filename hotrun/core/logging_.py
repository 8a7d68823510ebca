from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler

from hotrun.shared.paths import log_path, ensure_app_dirs


def setup_logging(verbose: bool = False, log_to_file: bool = True) -> None:
    root = logging.getLogger()
    level = logging.DEBUG if verbose else logging.INFO
    root.setLevel(level)

    if root.handlers:
        return

    fmt = logging.Formatter("%(asctime)s %(levelname)s %(name)s - %(message)s")

    ch = logging.StreamHandler()
    ch.setLevel(level)
    ch.setFormatter(logging.Formatter("[hotrun] %(levelname)s %(message)s"))
    root.addHandler(ch)

    if log_to_file:
        ensure_app_dirs()
        fh = RotatingFileHandler(str(log_path()), maxBytes=2_000_000, backupCount=3, encoding="utf-8")
        fh.setLevel(level)
        fh.setFormatter(fmt)
        root.addHandler(fh)

    # watchdog logs every inotify hiccup at DEBUG; keep it out of the console
    logging.getLogger("watchdog").setLevel(logging.WARNING)

from __future__ import annotations

import logging
import os
import shlex
import subprocess
from typing import Callable, Optional, Sequence

from hotrun.core.errors import CommandError
from .types import BuildResult

log = logging.getLogger(__name__)


def split_command(command: Optional[str]) -> list[str]:
    """
    Split a command line on whitespace into argv.

    Shell-style quotes are honoured so a path with spaces can be passed.
    Raises CommandError for a blank or unparsable command.
    """
    if command is None or not command.strip():
        raise CommandError("command is empty")
    try:
        argv = shlex.split(command, posix=(os.name != "nt"))
    except ValueError as e:
        raise CommandError(f"cannot parse command {command!r}: {e}") from e
    if not argv:
        raise CommandError(f"command {command!r} has no program name")
    if os.name == "nt":
        argv = [a[1:-1] if len(a) > 1 and a[0] == a[-1] == '"' else a for a in argv]
    return argv


def quote_arg(arg: str) -> str:
    """Quote one argument so split_command gives it back as a single item."""
    if os.name == "nt":
        return f'"{arg}"' if any(c.isspace() for c in arg) else arg
    return shlex.quote(arg)


def run_build(
    argv: Sequence[str],
    cwd: Optional[str] = None,
    on_spawn: Optional[Callable[[subprocess.Popen], None]] = None,
) -> BuildResult:
    """
    Run the build to completion with inherited stdio and environment.

    Never raises for a failing build: spawn errors and non-zero exits are
    returned as an unsuccessful BuildResult.
    """
    log.debug("Build: %s (cwd=%s)", " ".join(argv), cwd)
    try:
        proc = subprocess.Popen(list(argv), cwd=cwd, env=os.environ.copy())
    except OSError as e:
        return BuildResult(success=False, error=f"cannot start {argv[0]}: {e}")

    if on_spawn is not None:
        on_spawn(proc)

    returncode = proc.wait()
    if returncode != 0:
        return BuildResult(success=False, error=f"build exited with status {returncode}", returncode=returncode)
    return BuildResult(success=True, returncode=0)

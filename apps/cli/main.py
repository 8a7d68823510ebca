from __future__ import annotations

import argparse
import logging
import signal
import sys
from pathlib import Path
from typing import Optional, Sequence

from hotrun.core.daemon import Daemon
from hotrun.core.errors import StartupError
from hotrun.core.logging_ import setup_logging
from hotrun.shared.store import ConfigStore
from .reporter import StatusReporter

VERSION = "0.2.0"

log = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="hotrun",
        usage="hotrun [options] [directory]",
        description="Rebuild and restart a program whenever its sources change.",
    )
    parser.add_argument("directory", nargs="?", help="Directory to watch (default: current directory)")
    parser.add_argument("--build-cmd", help='Build command (default: "go build -o <output>")')
    parser.add_argument("--run-cmd", help="Run command (default: ./<directory name>)")
    parser.add_argument("-o", "--output", help="Artifact name passed to the default build and run commands")
    parser.add_argument("--ext", dest="source_ext", help="Source file extension that triggers a rebuild (default: .go)")
    parser.add_argument("--quiet-ms", dest="quiet_period_ms", type=int, help="Minimum time between two rebuilds")
    parser.add_argument("--stop-timeout-ms", type=int, help="Grace period before the old process is killed")
    parser.add_argument("--no-initial-run", action="store_true", help="Wait for the first change before building")
    parser.add_argument("--no-log-file", action="store_true", help="Log to the console only")
    parser.add_argument("-v", "--verbose", action="store_true")
    parser.add_argument("--version", action="version", version=f"%(prog)s {VERSION}")
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    setup_logging(verbose=args.verbose, log_to_file=not args.no_log_file)

    root = Path(args.directory) if args.directory else Path.cwd()
    try:
        cfg = ConfigStore(root).load(
            root_dir=str(root),
            build_cmd=args.build_cmd,
            run_cmd=args.run_cmd,
            output=args.output,
            source_ext=args.source_ext,
            quiet_period_ms=args.quiet_period_ms,
            stop_timeout_ms=args.stop_timeout_ms,
            run_on_start=False if args.no_initial_run else None,
        )
        daemon = Daemon(cfg)
        daemon.on_event(StatusReporter().handle)
        daemon.start()
    except StartupError as e:
        log.error("Fatal: %s", e)
        parser.print_usage(sys.stderr)
        return 2

    def signal_handler(sig, frame):
        log.info("Received signal %s, shutting down...", sig)
        daemon.stop()

    signal.signal(signal.SIGINT, signal_handler)
    if hasattr(signal, "SIGTERM"):
        signal.signal(signal.SIGTERM, signal_handler)

    daemon.wait()
    return 0


def run() -> None:
    sys.exit(main())


if __name__ == "__main__":
    run()

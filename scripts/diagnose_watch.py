"""
Diagnostic script for the change watcher.
Run this against a directory, then edit files in it and check what arrives.

Expected behavior:
- One line per raw notification (WRITE / CREATE / REMOVE / RENAME)
- "gate" column shows which filter gate would drop the event
- Deleting a watched subdirectory prints a WATCH ERROR line
"""

import sys
import os
import time
import logging

# Add parent directory to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from hotrun.core.watch.debounce import has_source_ext, is_relevant_kind
from hotrun.core.watch.enumerator import enumerate_watch_dirs
from hotrun.core.watch.watcher import ChangeWatcher

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s [%(levelname)s] %(name)s: %(message)s'
)

def main():
    root = os.path.abspath(sys.argv[1] if len(sys.argv) > 1 else ".")
    ext = sys.argv[2] if len(sys.argv) > 2 else ".go"

    print("=" * 60)
    print("Change Watcher Test")
    print("=" * 60)

    dirs = enumerate_watch_dirs(root)
    print(f"Root: {root}")
    print(f"Subscribing {len(dirs)} directories (extension filter: {ext})")
    for d in sorted(dirs):
        print(f"  {d}")
    print("-" * 60)

    count = 0

    def on_change(evt):
        nonlocal count
        count += 1
        if not is_relevant_kind(evt.kind):
            gate = "kind"
        elif not has_source_ext(evt.path, ext):
            gate = "ext"
        else:
            gate = "pass"
        print(f"[{count:4d}] {evt.kind:<7} {gate:<5} {evt.path}")

    def on_error(err):
        print(f"WATCH ERROR: {err}")

    watcher = ChangeWatcher(dirs, root=root)
    watcher.on_change(on_change)
    watcher.on_error(on_error)
    watcher.start()

    print("Watching (press Ctrl+C to stop)...")
    try:
        while True:
            time.sleep(1.0)
    except KeyboardInterrupt:
        print()
        print("-" * 60)
        print("Test stopped by user")
    finally:
        watcher.stop()
        print(f"Received {count} events")

    print("=" * 60)
    return 0

if __name__ == "__main__":
    sys.exit(main())

#!/usr/bin/env python3
"""
Gather bot logs from the usual openclaw / moltbot locations into the logs
directory, keeping each source's relative layout (cron_snap/ and session
subfolders matter to the parser).

Sources, in order: $OPENCLAW_LOG_DIR, ~/Downloads/chat-and-cron-logs,
~/Downloads/moltbot-chat-logs, /tmp/openclaw, ~/.openclaw

Usage:
    python3 tools/collect_logs.py             # copy
    python3 tools/collect_logs.py --move      # move (frees the source)
    python3 tools/collect_logs.py --source ~/somewhere/logs
"""

import argparse
import os
import shutil
import sys
from pathlib import Path
from typing import List

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from config import LOG_SUFFIXES, LOGS_DIR


def default_sources() -> List[Path]:
    home = Path.home()
    sources = [
        os.getenv("OPENCLAW_LOG_DIR"),
        home / "Downloads" / "chat-and-cron-logs",
        home / "Downloads" / "moltbot-chat-logs" / "chat-and-cron-logs",
        home / "Downloads" / "moltbot-chat-logs",
        Path("/tmp/openclaw"),
        home / ".openclaw",
    ]
    return [Path(s).expanduser() for s in sources if s]


def collect(src_dir: Path, dest_dir: Path, move: bool = False) -> int:
    """Copy (or move) every log file under src_dir; returns the count."""
    src_dir = Path(src_dir)
    if not src_dir.is_dir():
        return 0
    count = 0
    for src in sorted(src_dir.rglob("*")):
        if not src.is_file() or not src.name.endswith(LOG_SUFFIXES):
            continue
        dest = Path(dest_dir) / src.relative_to(src_dir)
        dest.parent.mkdir(parents=True, exist_ok=True)
        if move:
            shutil.move(str(src), str(dest))
        else:
            shutil.copy2(src, dest)
        count += 1
    return count


def main():
    parser = argparse.ArgumentParser(description="Collect bot logs into the logs directory")
    parser.add_argument("--source", type=Path, action="append",
                        help="Source directory (repeatable; default: the usual locations)")
    parser.add_argument("--logs-dir", type=Path, default=LOGS_DIR)
    parser.add_argument("--move", action="store_true", help="Move instead of copy")
    args = parser.parse_args()

    args.logs_dir.mkdir(parents=True, exist_ok=True)
    total = 0
    for src in args.source or default_sources():
        n = collect(src, args.logs_dir, move=args.move)
        if n:
            print(f"{'Moved' if args.move else 'Copied'} {n} log file(s) from {src}")
        total += n

    if not total:
        print("No log files found. Checked:")
        for src in args.source or default_sources():
            print(f"  {src}")
        return
    print(f"\n{total} file(s) in {args.logs_dir}")


if __name__ == "__main__":
    main()

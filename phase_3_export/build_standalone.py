#!/usr/bin/env python3
"""
Phase 3: Standalone Build
=========================

Builds a deploy directory for static hosting (GitHub Pages etc.):

  deploy/events-slim.json   slim events, secrets redacted
  deploy/index.html         the dashboard view, if BOTLOG_VIEW_HTML / --view is set

Usage:
    python3 phase_3_export/build_standalone.py
    python3 phase_3_export/build_standalone.py --view public/md-edits-view.html --deploy-dir deploy
"""

import argparse
import sys
from pathlib import Path
from typing import Dict, Optional

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from config import DEPLOY_DIR, EVENTS_PATH, VIEW_HTML
from phase_1_parse.event_store import (
    EventsFileNotFoundError,
    file_size_mb,
    load_collection,
    write_json,
)
from phase_3_export.redact import redact_value
from phase_3_export.slim_events import build_slim

SLIM_FILENAME = "events-slim.json"

# Dev server serves from /, the deployed page lives under a sub-path
FETCH_REPLACEMENTS = [
    ('fetch("/events-slim.json")', 'fetch("./events-slim.json")'),
    ("fetch('/events-slim.json')", "fetch('./events-slim.json')"),
]


def standalone_html(html: str) -> str:
    for old, new in FETCH_REPLACEMENTS:
        html = html.replace(old, new)
    return html


def build_standalone(events_path: Path, deploy_dir: Path,
                     view_html: Optional[Path] = None) -> Dict:
    """Slim → redact → deploy_dir. Raises EventsFileNotFoundError without events.json."""
    collection = load_collection(events_path)
    slim, redactions = redact_value(build_slim(collection))

    deploy_dir = Path(deploy_dir)
    deploy_dir.mkdir(parents=True, exist_ok=True)
    slim_path = deploy_dir / SLIM_FILENAME
    write_json(slim, slim_path)

    result = {
        "events": len(slim["events"]),
        "redactions": redactions,
        "slim_path": slim_path,
        "slim_mb": file_size_mb(slim_path),
        "index_path": None,
    }

    if view_html:
        view_html = Path(view_html)
        if not view_html.exists():
            raise FileNotFoundError(f"View HTML not found: {view_html}")
        index_path = deploy_dir / "index.html"
        index_path.write_text(standalone_html(view_html.read_text(encoding="utf-8")), encoding="utf-8")
        result["index_path"] = index_path

    return result


def main():
    parser = argparse.ArgumentParser(description="Phase 3 — Build the standalone deploy directory")
    parser.add_argument("--events", type=Path, default=EVENTS_PATH)
    parser.add_argument("--deploy-dir", type=Path, default=DEPLOY_DIR)
    parser.add_argument("--view", type=Path, default=Path(VIEW_HTML) if VIEW_HTML else None,
                        help="Dashboard HTML to copy as index.html")
    args = parser.parse_args()

    try:
        result = build_standalone(args.events, args.deploy_dir, args.view)
    except FileNotFoundError as e:
        print(f"ERROR: {e}")
        sys.exit(1)

    print(f"Standalone build → {args.deploy_dir}/")
    if result["index_path"]:
        print("  index.html")
    print(f"  {SLIM_FILENAME} ({result['slim_mb']:.1f} MB, {result['events']} events)")
    print(f"  Secrets redacted: {result['redactions']}")


if __name__ == "__main__":
    main()

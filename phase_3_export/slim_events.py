#!/usr/bin/env python3
"""
Phase 3: Slim Events
====================

events.json carries 384-float embeddings and full write contents, which
makes it slow for the dashboard to load. events-slim.json drops the
embeddings and caps message length; every other field is kept as is.

The slim file is output only. Nothing ever reads it back into events.json.

Usage:
    python3 phase_3_export/slim_events.py
    python3 phase_3_export/slim_events.py --input public/events.json --output public/events-slim.json
"""

import argparse
import sys
from pathlib import Path
from typing import Dict

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from config import EVENTS_PATH, SLIM_EVENTS_PATH
from phase_1_parse.event_store import (
    EventCollection,
    EventsFileNotFoundError,
    file_size_mb,
    load_collection,
    write_json,
)
from phase_1_parse.extractors import ELLIPSIS
from phase_1_parse.models import EventType, LogEvent

MAX_MESSAGE_LEN = 400
MAX_MESSAGE_LEN_MD_WRITE = 50_000  # full content for the md_write modal

STRIPPED_KEYS = ("embedding", "embeddingText")


def message_cap(event_type: str) -> int:
    return MAX_MESSAGE_LEN_MD_WRITE if event_type == EventType.MD_WRITE else MAX_MESSAGE_LEN


def cap_message(message: str, cap: int) -> str:
    """Truncate to at most cap characters, the ellipsis included."""
    if len(message) <= cap:
        return message
    return message[:cap - len(ELLIPSIS)] + ELLIPSIS


def slim_event(event: LogEvent) -> Dict:
    out = {k: v for k, v in event.to_dict().items() if k not in STRIPPED_KEYS}
    out["message"] = cap_message(event.message or "", message_cap(event.type))
    return out


def build_slim(collection: EventCollection) -> Dict:
    return {
        "events": [slim_event(e) for e in collection.events],
        "summary": collection.summary,
    }


def write_slim(input_path: Path, output_path: Path) -> Dict:
    """Load, slim, write. Raises EventsFileNotFoundError when input is missing."""
    collection = load_collection(input_path)
    slim = build_slim(collection)
    Path(output_path).parent.mkdir(parents=True, exist_ok=True)
    write_json(slim, output_path)
    return {
        "events": len(slim["events"]),
        "input_mb": file_size_mb(input_path),
        "output_mb": file_size_mb(output_path),
    }


def main():
    parser = argparse.ArgumentParser(description="Phase 3 — Write events-slim.json for the dashboard")
    parser.add_argument("--input", type=Path, default=EVENTS_PATH)
    parser.add_argument("--output", type=Path, default=SLIM_EVENTS_PATH)
    args = parser.parse_args()

    try:
        stats = write_slim(args.input, args.output)
    except EventsFileNotFoundError as e:
        print(f"ERROR: {e}")
        sys.exit(1)

    print(f"Slim: {stats['input_mb']:.1f}MB → {stats['output_mb']:.1f}MB ({stats['events']} events)")
    print(f"Output: {args.output}")


if __name__ == "__main__":
    main()

#!/usr/bin/env python3
"""
Phase 1: Parse Logs
===================

Reads every .log / .jsonl file under the logs directory and writes one
events.json holding the deduplicated, time-ordered event stream plus a
summary block for the dashboard.

Pipeline:
  File Walker → Classifiers → Event Builder → Dedup → Sort
              → Merge Policy (keep prior enrichment) → Aggregator → events.json

Re-running is safe: summaries, sentiment and embeddings already attached
to an event survive as long as the event itself is still extracted.

Usage:
    python3 phase_1_parse/parse_logs.py
    python3 phase_1_parse/parse_logs.py --logs-dir ~/openclaw/logs --output public/events.json
    python3 phase_1_parse/parse_logs.py --no-merge     # discard prior enrichment
"""

import argparse
import sys
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from config import EVENTS_PATH, LOGS_DIR
from phase_1_parse.aggregator import build_summary
from phase_1_parse.event_builder import EventBuilder, dedupe_events, sort_events
from phase_1_parse.event_store import (
    EventCollection,
    load_previous_collection,
    save_collection,
)
from phase_1_parse.log_walker import discover_log_files, process_log_file
from phase_1_parse.merge_policy import merge_enrichment
from phase_1_parse.models import LogEvent


def extract_events(files: Iterable[Path]) -> Tuple[List[LogEvent], Dict]:
    """Run every file through the classifiers; returns final events and stats."""
    builder = EventBuilder()
    stats = {"files": 0, "lines": 0, "skipped_lines": 0, "raw_events": 0}
    for path in files:
        file_stats = process_log_file(path, builder)
        stats["files"] += 1
        stats["lines"] += file_stats["lines"]
        stats["skipped_lines"] += file_stats["skipped"]
    stats["raw_events"] = len(builder)

    events = sort_events(dedupe_events(builder.events))
    stats["events"] = len(events)
    stats["duplicates"] = stats["raw_events"] - len(events)
    return events, stats


def build_collection(files: Iterable[Path],
                     previous: Optional[EventCollection] = None) -> Tuple[EventCollection, Dict]:
    """Full extraction pass, with prior enrichment merged on."""
    events, stats = extract_events(files)
    merge_stats = merge_enrichment(events, previous)
    stats["merge"] = merge_stats

    embedding_model = None
    if previous is not None and merge_stats["embeddings_copied"]:
        embedding_model = previous.embedding_model

    collection = EventCollection(
        events=events,
        summary=build_summary(events),
        embedding_model=embedding_model,
    )
    return collection, stats


def run_parse(logs_dir: Path, output_path: Path, merge: bool = True) -> Dict:
    """Parse logs_dir into output_path. Always writes, even with no input files."""
    files = discover_log_files(logs_dir)
    previous = load_previous_collection(output_path) if merge else None
    collection, stats = build_collection(files, previous)
    save_collection(collection, output_path)
    stats["output"] = str(output_path)
    stats["summary"] = collection.summary
    return stats


def main():
    parser = argparse.ArgumentParser(
        description="Phase 1 — Parse bot logs into events.json"
    )
    parser.add_argument("--logs-dir", type=Path, default=LOGS_DIR,
                        help=f"Directory of .log/.jsonl files (default: {LOGS_DIR})")
    parser.add_argument("--output", type=Path, default=EVENTS_PATH,
                        help=f"Output events.json (default: {EVENTS_PATH})")
    parser.add_argument("--no-merge", action="store_true",
                        help="Don't carry summaries/sentiment/embeddings over from the previous output")
    args = parser.parse_args()

    files = discover_log_files(args.logs_dir)
    if not files:
        print(f"No log files in {args.logs_dir}.")
        print("Generate demo logs: python3 tools/generate_sample_logs.py")
        print("Writing empty events.json for the dashboard.")

    stats = run_parse(args.logs_dir, args.output, merge=not args.no_merge)
    summary = stats["summary"]

    print(f"\n{'=' * 60}")
    print(f"Parsed {stats['files']} log file(s) -> {stats['events']} events")
    print(f"{'=' * 60}")
    print(f"  Lines read:        {stats['lines']} ({stats['skipped_lines']} unparseable, skipped)")
    print(f"  Duplicates merged: {stats['duplicates']}")
    merge = stats["merge"]
    if merge["matched"]:
        print(f"  Enrichment kept:   {merge['matched']} events "
              f"({merge['fields_copied']} fields, {merge['embeddings_copied']} embeddings)")
    print(f"  Output: {stats['output']}")
    print(f"\n  MD write counts: {summary['mdWriteCounts']}")
    print(f"  Activity:        {summary['activityCounts']}")


if __name__ == "__main__":
    main()

#!/usr/bin/env python3
"""
Phase 2: Embeddings
===================

Attach embedding vectors to events.json for the dashboard's semantic search.
Three ways in:

  --export-inputs FILE   write {index, text} JSONL for an external embedder
  --from-file FILE       merge {index, embedding} JSONL (or JSON array) back in
  --api                  fetch vectors from the embedding sidecar (POST /embed)

and one way out:

  --query TEXT           embed TEXT via the sidecar and print the closest events

Usage:
    python3 phase_2_enrich/embed_events.py --export-inputs embed_inputs.jsonl
    python3 phase_2_enrich/embed_events.py --from-file embed_outputs.jsonl
    python3 phase_2_enrich/embed_events.py --api --api-url http://localhost:3001/embed
    python3 phase_2_enrich/embed_events.py --query "changed its personality" --top-k 5
"""

import argparse
import sys
from pathlib import Path

import requests

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from config import EMBED_API_URL, EMBEDDING_MODEL, EVENTS_PATH
from phase_1_parse.event_store import EventsFileNotFoundError, load_collection, save_collection
from phase_2_enrich.batch_runner import first_errors, progress_line
from phase_2_enrich.embeddings import (
    EmbeddingMismatchError,
    EmbeddingServiceError,
    fetch_embedding,
    fetch_embeddings,
    merge_embeddings,
    read_embedding_outputs,
    semantic_search,
    write_embedding_inputs,
)


def main():
    parser = argparse.ArgumentParser(description="Phase 2 — Embedding vectors for events.json")
    mode = parser.add_mutually_exclusive_group(required=True)
    mode.add_argument("--export-inputs", type=Path, metavar="FILE",
                      help="Write {index, text} JSONL for an external embedder")
    mode.add_argument("--from-file", type=Path, metavar="FILE",
                      help="Merge {index, embedding} entries into events.json")
    mode.add_argument("--api", action="store_true", help="Fetch vectors from the embedding sidecar")
    mode.add_argument("--query", metavar="TEXT", help="Semantic search over embedded events")
    parser.add_argument("--events", type=Path, default=EVENTS_PATH)
    parser.add_argument("--api-url", default=EMBED_API_URL)
    parser.add_argument("--model", default=EMBEDDING_MODEL,
                        help=f"Model name recorded as embeddingModel (default: {EMBEDDING_MODEL})")
    parser.add_argument("--force", action="store_true",
                        help="Re-embed events that already have vectors (a model switch re-embeds everything)")
    parser.add_argument("--limit", type=int, default=0)
    parser.add_argument("--top-k", type=int, default=10)
    args = parser.parse_args()

    try:
        collection = load_collection(args.events)
    except EventsFileNotFoundError as e:
        print(f"ERROR: {e}")
        sys.exit(1)

    if args.export_inputs:
        count = write_embedding_inputs(collection.events, args.export_inputs,
                                       force=args.force, limit=args.limit)
        print(f"Wrote {count} inputs to {args.export_inputs}")
        if not count:
            print("Every event with text already has an embedding (use --force to redo).")
        return

    if args.query:
        try:
            vector = fetch_embedding(args.query, url=args.api_url)
        except (requests.RequestException, EmbeddingServiceError) as e:
            print(f"ERROR: embedding sidecar at {args.api_url}: {e}")
            sys.exit(1)
        results = semantic_search(collection.events, vector, top_k=args.top_k)
        if not results:
            print("No embedded events to search. Run with --api or --from-file first.")
            return
        for score, event in results:
            print(f"  {score:.3f}  {event.time}  {event.type:<18} {event.category:<14} "
                  f"{(event.summary or event.message)[:80]}")
        return

    try:
        if args.from_file:
            if not args.from_file.exists():
                print(f"ERROR: {args.from_file} not found")
                sys.exit(1)
            stats = merge_embeddings(collection, read_embedding_outputs(args.from_file),
                                     model=args.model, force=args.force)
            save_collection(collection, args.events)
            print(f"Attached {stats['attached']} embeddings ({stats['skipped']} skipped). "
                  f"Wrote {args.events}")
            return

        print(f"\n{'=' * 60}")
        print(f"Embedding via {args.api_url} — {args.model}")
        print(f"{'=' * 60}")
        stats = fetch_embeddings(
            collection, url=args.api_url, model=args.model, force=args.force,
            limit=args.limit, events_path=args.events,
            on_progress=lambda p: print(progress_line(p)) if p["done"] % 50 == 0 else None,
        )
    except EmbeddingMismatchError as e:
        print(f"ERROR: {e}")
        sys.exit(1)

    save_collection(collection, args.events)
    print(f"  Done. {stats['ok']} embedded, {stats['errors']} errors. Wrote {args.events}")
    for msg in first_errors(stats):
        print(f"    error: {msg}")


if __name__ == "__main__":
    main()

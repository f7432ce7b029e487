#!/usr/bin/env python3
"""
Phase 2: LLM Enrichment
=======================

Adds LLM-derived fields to events.json in place:

  summary    one-sentence gist of each md_write            (20 parallel, 0.4s apart)
  mods       modSummary for edits to the core workspace files (sequential)
  sentiment  five-level label for each user_message         (sequential, neutral on failure)

Each pass skips events that already carry its field, so a killed run picks up
where it stopped. Progress is checkpointed to events.json every 50 items.

Usage:
    python3 phase_2_enrich/enrich_events.py --pass summary
    python3 phase_2_enrich/enrich_events.py --pass all --test-first
    python3 phase_2_enrich/enrich_events.py --pass mods --limit 10
    python3 phase_2_enrich/enrich_events.py --pass sentiment --force
    python3 phase_2_enrich/enrich_events.py --pass all --dry-run    # token/cost estimate only
"""

import argparse
import sys
from pathlib import Path
from typing import Callable, Dict, List, Optional

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from config import EVENTS_PATH, MissingCredentialsError, require_api_key
from phase_1_parse.event_store import (
    EventCollection,
    EventsFileNotFoundError,
    load_collection,
    save_collection,
)
from phase_1_parse.models import LogEvent
from phase_2_enrich.batch_runner import first_errors, progress_line, run_batch
from phase_2_enrich.llm_client import LLMClient, count_tokens, estimate_cost
from phase_2_enrich.prompts import PASS_CONFIGS, PASS_ORDER, build_user_prompt

TEST_FIRST_COUNT = 10


class EnrichmentAbortedError(RuntimeError):
    """--test-first batch had errors (or produced nothing)."""


def select_events(events: List[LogEvent], config: Dict, force: bool = False,
                  limit: int = 0) -> List[LogEvent]:
    """Events this pass should process, in file order."""
    attr = config["attr"]
    selected = [
        e for e in events
        if config["event_filter"](e) and (force or getattr(e, attr) is None)
    ]
    if limit and limit > 0:
        selected = selected[:limit]
    return selected


def enrich_one(llm: LLMClient, config: Dict, event: LogEvent):
    """Worker-thread call: returns (value, usage)."""
    text, usage = llm.complete(
        config["model"],
        config["system_prompt"],
        build_user_prompt(config, event),
        config["max_tokens"],
    )
    return config["parse_response"](text), usage


def run_enrichment_pass(collection: EventCollection, pass_name: str, llm: LLMClient,
                        events_path: Optional[Path] = None, force: bool = False,
                        limit: int = 0,
                        on_progress: Optional[Callable[[Dict], None]] = None) -> Dict:
    """Run one pass over the collection, mutating its events.

    With events_path set, the collection is checkpointed there during the run.
    The final save is left to the caller.
    """
    config = PASS_CONFIGS[pass_name]
    attr = config["attr"]
    selected = select_events(collection.events, config, force=force, limit=limit)
    if force:
        for event in selected:
            setattr(event, attr, None)

    cost = {"total": 0.0}

    def apply(event: LogEvent, result) -> bool:
        value, usage = result
        cost["total"] += usage.get("cost", 0.0)
        if not value:
            return False
        setattr(event, attr, value)
        return True

    def on_error(event: LogEvent, exc: Exception):
        if config["fallback"] is not None:
            setattr(event, attr, config["fallback"])

    checkpoint = None
    if events_path is not None:
        def checkpoint():
            save_collection(collection, events_path)

    stats = run_batch(
        selected,
        task=lambda e: enrich_one(llm, config, e),
        apply=apply,
        concurrency=config["concurrency"],
        delay=config["delay"],
        on_checkpoint=checkpoint,
        on_error=on_error,
        on_progress=on_progress,
    )
    stats["pass"] = pass_name
    stats["cost"] = cost["total"]
    return stats


def run_with_test_first(collection: EventCollection, pass_name: str, llm: LLMClient,
                        events_path: Optional[Path] = None, force: bool = False,
                        limit: int = 0,
                        on_progress: Optional[Callable[[Dict], None]] = None) -> Dict:
    """Run TEST_FIRST_COUNT items; abort on any error, else run the rest."""
    if force:
        config = PASS_CONFIGS[pass_name]
        for event in select_events(collection.events, config, force=True, limit=limit):
            setattr(event, config["attr"], None)

    test_limit = min(limit, TEST_FIRST_COUNT) if limit else TEST_FIRST_COUNT
    test = run_enrichment_pass(collection, pass_name, llm, events_path,
                               limit=test_limit, on_progress=on_progress)
    if test["total"] and (test["errors"] or not test["ok"]):
        detail = "; ".join(first_errors(test))
        raise EnrichmentAbortedError(
            f"Test batch failed: {test['ok']} ok, {test['errors']} errors. {detail}".strip()
        )
    remaining = max(0, limit - test["total"]) if limit else 0
    if limit and not remaining:
        return test

    # Cleared fields (force) and untouched ones are picked up by presence alone
    rest = run_enrichment_pass(collection, pass_name, llm, events_path,
                               limit=remaining, on_progress=on_progress)
    for key in ("total", "ok", "empty", "errors"):
        rest[key] += test[key]
    rest["error_messages"] = test["error_messages"] + rest["error_messages"]
    rest["cost"] += test["cost"]
    return rest


def estimate_pass(collection: EventCollection, pass_name: str, force: bool = False,
                  limit: int = 0) -> Dict:
    """Dry-run token and cost estimate (max_tokens taken as output upper bound)."""
    config = PASS_CONFIGS[pass_name]
    selected = select_events(collection.events, config, force=force, limit=limit)
    system_tokens = count_tokens(config["system_prompt"])
    input_tokens = sum(system_tokens + count_tokens(build_user_prompt(config, e)) for e in selected)
    output_tokens = len(selected) * config["max_tokens"]
    return {
        "pass": pass_name,
        "events": len(selected),
        "input_tokens": input_tokens,
        "output_tokens": output_tokens,
        "cost": estimate_cost(config["model"], input_tokens, output_tokens),
    }


def _print_progress(progress: Dict):
    if progress["done"] % 10 == 0 or progress["done"] == progress["total"]:
        print(progress_line(progress))


def main():
    parser = argparse.ArgumentParser(description="Phase 2 — LLM enrichment of events.json")
    parser.add_argument("--pass", dest="pass_name", default="all",
                        choices=PASS_ORDER + ["all"], help="Which pass to run")
    parser.add_argument("--events", type=Path, default=EVENTS_PATH,
                        help=f"events.json to enrich (default: {EVENTS_PATH})")
    parser.add_argument("--limit", type=int, default=0, help="Process at most N events per pass")
    parser.add_argument("--force", action="store_true", help="Redo events that already have the field")
    parser.add_argument("--test-first", action="store_true",
                        help=f"Run {TEST_FIRST_COUNT} items first and stop on any error")
    parser.add_argument("--dry-run", action="store_true", help="Estimate tokens and cost, no API calls")
    args = parser.parse_args()

    passes = PASS_ORDER if args.pass_name == "all" else [args.pass_name]

    try:
        collection = load_collection(args.events)
        if not args.dry_run:
            require_api_key()
    except (EventsFileNotFoundError, MissingCredentialsError) as e:
        print(f"ERROR: {e}")
        sys.exit(1)

    if args.dry_run:
        total_cost = 0.0
        for pass_name in passes:
            est = estimate_pass(collection, pass_name, force=args.force, limit=args.limit)
            total_cost += est["cost"]
            print(f"  [DRY RUN] {pass_name}: {est['events']} events, "
                  f"~{est['input_tokens']:,} input tokens, "
                  f"~{est['output_tokens']:,} output tokens, ~${est['cost']:.3f}")
        print(f"  [DRY RUN] Total: ~${total_cost:.3f}")
        return

    llm = LLMClient()
    for pass_name in passes:
        config = PASS_CONFIGS[pass_name]
        print(f"\n{'=' * 60}")
        print(f"{config['name']} — {config['model']}")
        print(f"Concurrency: {config['concurrency']} | delay {config['delay']}s"
              f"{' | FORCE' if args.force else ''}")
        print(f"{'=' * 60}")

        runner = run_with_test_first if args.test_first else run_enrichment_pass
        try:
            stats = runner(collection, pass_name, llm, args.events, force=args.force,
                           limit=args.limit, on_progress=_print_progress)
        except EnrichmentAbortedError as e:
            save_collection(collection, args.events)
            print(f"ERROR: {e}")
            sys.exit(1)

        save_collection(collection, args.events)
        if not stats["total"]:
            print(f"  Nothing to do: every matching event already has {config['field']}.")
            continue
        print(f"  Done. {stats['ok']} ok, {stats['errors']} errors, "
              f"{stats['empty']} empty. ${stats['cost']:.4f}")
        for msg in first_errors(stats):
            print(f"    error: {msg}")

    print(f"\nWrote {args.events}")


if __name__ == "__main__":
    main()

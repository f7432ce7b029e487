#!/usr/bin/env python3
"""
End-to-end pipeline runner for bot log analysis.

Runs the free phases by default (no API calls):
  Phase 1: parse_logs.py        → public/events.json
  Phase 3: slim_events.py       → public/events-slim.json

Optional:
  --enrich [PASS]: run the LLM enrichment passes between parse and slim
                   (requires ANTHROPIC_API_KEY)
  --embed-api:     fetch embeddings from the sidecar after enrichment
  --deploy:        build the standalone deploy directory at the end
  --sample:        generate demo logs first

Usage:
    python3 tools/run_pipeline.py                        # parse + slim
    python3 tools/run_pipeline.py --sample --deploy      # demo from scratch
    python3 tools/run_pipeline.py --enrich all --deploy  # everything
    python3 tools/run_pipeline.py --enrich mods          # mods pass, then re-slim
"""

import argparse
import subprocess
import sys
from pathlib import Path
from typing import List, Optional

REPO_ROOT = Path(__file__).resolve().parent.parent
PHASE_1_DIR = REPO_ROOT / "phase_1_parse"
PHASE_2_DIR = REPO_ROOT / "phase_2_enrich"
PHASE_3_DIR = REPO_ROOT / "phase_3_export"
TOOLS_DIR = REPO_ROOT / "tools"

SCRIPT_TIMEOUT = 3600  # enrichment over a large history takes a while


def run_script(script_path: Path, args: Optional[List[str]] = None, description: str = "") -> bool:
    """Run one phase script, echoing the tail of its output."""
    print(f"\n{'=' * 60}")
    print(f"  Running: {description or script_path.name}")
    print(f"  Script:  {script_path}")
    print(f"{'=' * 60}")

    cmd = [sys.executable, str(script_path)] + (args or [])
    result = subprocess.run(
        cmd,
        cwd=str(REPO_ROOT),
        capture_output=True,
        text=True,
        timeout=SCRIPT_TIMEOUT,
    )

    if result.stdout:
        lines = result.stdout.strip().split("\n")
        if len(lines) > 20:
            print(f"  ... ({len(lines) - 20} lines omitted)")
        for line in lines[-20:]:
            print(f"  {line}")

    if result.returncode != 0:
        print(f"\n  ERROR (exit code {result.returncode}):")
        if result.stderr:
            for line in result.stderr.strip().split("\n")[-10:]:
                print(f"  {line}")
        return False

    return True


def build_steps(args) -> List[tuple]:
    """(script, argv, description) in run order."""
    steps = []
    if args.sample:
        steps.append((TOOLS_DIR / "generate_sample_logs.py", [], "Generate sample logs"))
    steps.append((PHASE_1_DIR / "parse_logs.py", [], "Phase 1: parse logs"))
    if args.enrich:
        enrich_args = ["--pass", args.enrich]
        if args.test_first:
            enrich_args.append("--test-first")
        steps.append((PHASE_2_DIR / "enrich_events.py", enrich_args, f"Phase 2: enrich ({args.enrich})"))
    if args.embed_api:
        steps.append((PHASE_2_DIR / "embed_events.py", ["--api"], "Phase 2: embeddings"))
    steps.append((PHASE_3_DIR / "slim_events.py", [], "Phase 3: slim events"))
    if args.deploy:
        steps.append((PHASE_3_DIR / "build_standalone.py", [], "Phase 3: standalone build"))
    return steps


def main():
    parser = argparse.ArgumentParser(
        description="Run the bot log analysis pipeline.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python3 tools/run_pipeline.py                         # parse + slim (free)
  python3 tools/run_pipeline.py --enrich all --deploy   # full run
  python3 tools/run_pipeline.py --sample                # demo data
        """,
    )
    parser.add_argument("--sample", action="store_true", help="Generate demo logs first")
    parser.add_argument("--enrich", choices=["summary", "mods", "sentiment", "all"],
                        help="Run LLM enrichment (needs ANTHROPIC_API_KEY)")
    parser.add_argument("--test-first", action="store_true", help="Pass --test-first to enrichment")
    parser.add_argument("--embed-api", action="store_true", help="Fetch embeddings from the sidecar")
    parser.add_argument("--deploy", action="store_true", help="Build the standalone deploy directory")
    args = parser.parse_args()

    print("Bot Log Analysis Pipeline Runner")

    ok = True
    for script, script_args, description in build_steps(args):
        ok = run_script(script, script_args, description)
        if not ok:
            break

    if ok:
        print(f"\n{'=' * 60}")
        print("  Pipeline run succeeded.")
        print(f"{'=' * 60}")
    else:
        print("\n  Pipeline run had errors. Check output above.")
        sys.exit(1)


if __name__ == "__main__":
    main()

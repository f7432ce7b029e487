#!/usr/bin/env python3
"""
Generate demo logs so the pipeline and dashboard have something to show.

Writes three files under the logs directory, one per input format:
  openclaw-sample.log            plain JSON log lines
  sessions/sample-session.jsonl  session transcript with tool calls
  cron_snap/sample-jobs.jsonl    cron run snapshots

Usage:
    python3 tools/generate_sample_logs.py
    python3 tools/generate_sample_logs.py --logs-dir /tmp/demo-logs
"""

import argparse
import json
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Dict, List

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from config import LOGS_DIR


def _iso(base: datetime, offset_s: int) -> str:
    t = base + timedelta(seconds=offset_s)
    return t.strftime("%Y-%m-%dT%H:%M:%S.") + f"{t.microsecond // 1000:03d}Z"


def _plain(base: datetime, offset_s: int, message: str, level: str = "info",
           subsystem: str = "agent/embedded") -> Dict:
    return {"time": _iso(base, offset_s), "level": level, "subsystem": subsystem,
            "message": message, "0": message}


def plain_lines(base: datetime) -> List[Dict]:
    return [
        _plain(base, 0, "Written to MEMORY.md"),
        _plain(base, 60, "Updated SOUL.md with persona"),
        _plain(base, 120, "Edited AGENTS.md runId=run-1 sessionId=sess-a"),
        _plain(base, 180, "heartbeat run complete HEARTBEAT_OK", subsystem="gateway/heartbeat"),
        _plain(base, 240, "embedded run tool start: runId=run-2 tool=search_replace toolCallId=tc-1"),
        _plain(base, 300, "embedded run tool end: runId=run-2 tool=search_replace toolCallId=tc-1"),
        _plain(base, 360, "Wrote 1024 bytes to HEARTBEAT.md"),
        _plain(base, 420, "API call failed: rate limit", level="error"),
        _plain(base, 480, "embedded run agent start: runId=run-3 sessionId=sess-b"),
        _plain(base, 540, "embedded run agent end: runId=run-3 sessionId=sess-b"),
        _plain(base, 600, "Updated MEMORY.md with new context"),
        _plain(base, 660, "embedded run tool start: runId=run-4 tool=read_file toolCallId=tc-2 path=MEMORY.md"),
        _plain(base, 720, "Edited TOOLS.md in workspace"),
        _plain(base, 780, "heartbeat skipped: HEARTBEAT.md empty", level="warn",
               subsystem="gateway/heartbeat"),
        _plain(base, 840, "embedded run tool start: runId=run-5 tool=memory_search toolCallId=tc-3"),
        _plain(base, 900, "Data written to data/workspace/IDENTITY.md"),
    ]


def session_lines(base: datetime) -> List[Dict]:
    return [
        {"type": "session", "id": "sess-demo", "timestamp": _iso(base, 1000)},
        {"type": "message", "id": "m1", "timestamp": _iso(base, 1010), "message": {
            "role": "user",
            "content": [{"type": "text", "text": "[Discord #general] dana (1234): "
                                                 "thanks, that looks great! can you remember I prefer short replies?"}],
        }},
        {"type": "message", "id": "m2", "timestamp": _iso(base, 1020), "message": {
            "role": "assistant",
            "content": [
                {"type": "text", "text": "Noted, I'll keep replies short."},
                {"type": "toolCall", "name": "write", "arguments": {
                    "path": "USER.md", "content": "- Prefers short replies\n"}},
            ],
        }},
        {"type": "message", "id": "m3", "timestamp": _iso(base, 1030), "message": {
            "role": "assistant",
            "content": [{"type": "toolCall", "name": "exec", "arguments": {
                "command": "curl -X POST https://www.moltbook.com/api/posts -d '{\"title\":\"hello\"}'"}}],
        }},
        {"type": "message", "id": "m4", "timestamp": _iso(base, 1040), "message": {
            "role": "assistant",
            "content": [{"type": "toolCall", "name": "send_email", "arguments": {
                "to": "dana@example.com", "subject": "Daily digest"}}],
        }},
    ]


def cron_lines(base: datetime) -> List[Dict]:
    start_ms = int(base.timestamp() * 1000)
    return [
        {"ts": start_ms + 2_000_000, "jobId": "daily-digest", "status": "ok",
         "summary": "Sent daily digest email"},
        {"ts": start_ms + 2_100_000, "jobId": "memory-tidy", "status": "ok",
         "summary": "Updated MEMORY.md with weekly notes"},
        {"ts": start_ms + 2_200_000, "jobId": "moltbook-check", "status": "error",
         "summary": "Moltbook browse aborted: timeout fetching feed"},
    ]


def write_jsonl(path: Path, records: List[Dict]) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        for record in records:
            f.write(json.dumps(record) + "\n")
    return path


def generate(logs_dir: Path, now: datetime = None) -> List[Path]:
    now = now or datetime.now(timezone.utc)
    base = now - timedelta(days=1)
    logs_dir = Path(logs_dir)
    return [
        write_jsonl(logs_dir / "openclaw-sample.log", plain_lines(base)),
        write_jsonl(logs_dir / "sessions" / "sample-session.jsonl", session_lines(base)),
        write_jsonl(logs_dir / "cron_snap" / "sample-jobs.jsonl", cron_lines(base)),
    ]


def main():
    parser = argparse.ArgumentParser(description="Generate demo bot logs")
    parser.add_argument("--logs-dir", type=Path, default=LOGS_DIR)
    args = parser.parse_args()

    for path in generate(args.logs_dir):
        print(f"Generated: {path}")


if __name__ == "__main__":
    main()

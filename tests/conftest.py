"""Shared fixtures for the bot log analysis test suite."""
import json
import sys
from pathlib import Path

import pytest

# Add project root to path so imports work
PROJECT_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from phase_1_parse.models import LogEvent


# ── Minimal records for each input format ──────────────────────────

PLAIN_LINES = [
    {"time": "2026-02-01T10:00:00.000Z", "level": "info", "subsystem": "agent/embedded",
     "message": "Written to MEMORY.md"},
    {"time": "2026-02-01T10:01:00.000Z", "level": "info", "subsystem": "agent/embedded",
     "message": "Wrote 1024 bytes to HEARTBEAT.md"},
    {"time": "2026-02-01T10:02:00.000Z", "level": "info", "subsystem": "agent/embedded",
     "message": "embedded run tool start: runId=run-2 tool=read_file toolCallId=tc-1 path=SOUL.md"},
    {"time": "2026-02-01T10:03:00.000Z", "level": "error", "subsystem": "agent/embedded",
     "message": "API call failed: rate limit"},
    {"time": "2026-02-01T10:04:00.000Z", "level": "info", "subsystem": "gateway/heartbeat",
     "message": "heartbeat run complete HEARTBEAT_OK"},
]

SESSION_LINES = [
    {"type": "session", "id": "sess-1", "timestamp": "2026-02-01T09:00:00.000Z"},
    {"type": "message", "id": "m1", "timestamp": "2026-02-01T09:00:05.000Z", "message": {
        "role": "user",
        "content": [{"type": "text", "text": "[Discord #general] dana (1234): nice work, thanks!"}],
    }},
    {"type": "message", "id": "m2", "timestamp": "2026-02-01T09:00:10.000Z", "message": {
        "role": "assistant",
        "content": [{"type": "toolCall", "name": "write",
                     "arguments": {"path": "SOUL.md", "content": "hello"}}],
    }},
    {"type": "message", "id": "m3", "timestamp": "2026-02-01T09:00:12.000Z", "message": {
        "role": "toolResult", "toolName": "write",
        "content": [{"type": "text", "text": "Successfully wrote 5 bytes to SOUL.md"}],
    }},
]

CRON_LINES = [
    {"ts": 1769940000000, "jobId": "daily-digest", "status": "ok",
     "summary": "Sent daily digest email to dana"},
    {"ts": 1769940060000, "jobId": "feed-check", "status": "error",
     "summary": "Moltbook browse aborted"},
]


def write_jsonl(path: Path, records) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        for record in records:
            f.write((record if isinstance(record, str) else json.dumps(record)) + "\n")
    return path


def make_event(**kwargs) -> LogEvent:
    defaults = {
        "time": "2026-02-01T10:00:00.000Z",
        "type": "md_write",
        "category": "SOUL.md",
        "message": "Updated SOUL.md",
    }
    defaults.update(kwargs)
    return LogEvent(**defaults)


@pytest.fixture
def logs_dir(tmp_path):
    """A logs directory holding one file per input format."""
    root = tmp_path / "logs"
    write_jsonl(root / "gateway.log", PLAIN_LINES)
    write_jsonl(root / "sessions" / "sess-1.jsonl", SESSION_LINES)
    write_jsonl(root / "cron_snap" / "runs.jsonl", CRON_LINES)
    return root


@pytest.fixture
def events_path(tmp_path):
    return tmp_path / "public" / "events.json"

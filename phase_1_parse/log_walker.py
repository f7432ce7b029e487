"""
File Walker / Format Dispatcher.

Finds .log / .jsonl files under the logs directory and routes every line
to the session, cron or plain-line classifiers. Lines that aren't JSON
objects are skipped: partial and mixed logs are the normal case here.
"""
import json
from pathlib import Path
from typing import Dict, List, Optional

from config import CRON_PATH_MARKER, LOG_SUFFIXES
from phase_1_parse.classifiers import (
    RecordContext,
    classify_cron,
    classify_plain,
    classify_session,
)
from phase_1_parse.event_builder import EventBuilder
from phase_1_parse.extractors import (
    extract_run_id,
    extract_session_id,
    format_time,
    get_level,
    get_message,
    get_subsystem,
    get_timestamp,
)

SESSION_RECORD_TYPES = ("message", "session")


def discover_log_files(logs_dir: Path) -> List[Path]:
    """All .log/.jsonl files under logs_dir, sorted by path."""
    logs_dir = Path(logs_dir)
    if not logs_dir.exists():
        return []
    files = [p for p in logs_dir.rglob("*") if p.is_file() and p.name.endswith(LOG_SUFFIXES)]
    return sorted(files, key=lambda p: str(p))


def parse_json_line(line: str) -> Optional[Dict]:
    try:
        obj = json.loads(line.strip())
    except (json.JSONDecodeError, ValueError):
        return None
    return obj if isinstance(obj, dict) else None


def is_cron_file(path: Path) -> bool:
    return CRON_PATH_MARKER in str(path)


def record_kind(record: Dict, cron_file: bool = False) -> str:
    """'session', 'cron' or 'plain'."""
    if record.get("type") in SESSION_RECORD_TYPES:
        return "session"
    has_epoch = record.get("ts") is not None or record.get("runAtMs") is not None
    if has_epoch and (cron_file or "jobId" in record):
        return "cron"
    return "plain"


def process_record(record: Dict, builder: EventBuilder, session_id: str,
                   cron_file: bool = False) -> int:
    """Classify one parsed line; returns the number of events added."""
    ts = get_timestamp(record)
    if ts is None:
        return 0
    time = format_time(ts)
    kind = record_kind(record, cron_file)

    if kind == "session":
        run_id = record.get("id")
        ctx = RecordContext(
            time=time,
            subsystem="session",
            run_id=str(run_id) if run_id is not None else None,
            session_id=session_id,
        )
        return builder.add_all(ctx, classify_session(record))

    if kind == "cron":
        job_id = record.get("jobId")
        job_id = str(job_id) if job_id is not None else None
        ctx = RecordContext(time=time, subsystem="cron", run_id=job_id, session_id=job_id)
        return builder.add_all(ctx, classify_cron(record))

    msg = get_message(record)
    if not msg:
        return 0
    ctx = RecordContext(
        time=time,
        message=msg,
        level=get_level(record),
        subsystem=get_subsystem(record),
        run_id=extract_run_id(msg),
        session_id=extract_session_id(msg),
    )
    return builder.add_all(ctx, classify_plain(ctx))


def process_log_file(path: Path, builder: EventBuilder) -> Dict:
    """Feed every line of one file through the classifiers."""
    path = Path(path)
    stats = {"file": str(path), "lines": 0, "skipped": 0, "events": 0}
    cron_file = is_cron_file(path)
    session_id = path.stem

    with open(path, encoding="utf-8", errors="replace") as f:
        for line in f:
            if not line.strip():
                continue
            stats["lines"] += 1
            record = parse_json_line(line)
            if record is None:
                stats["skipped"] += 1
                continue
            stats["events"] += process_record(record, builder, session_id, cron_file)
    return stats

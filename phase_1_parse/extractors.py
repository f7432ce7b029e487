"""
Field extractors for heterogeneous log records.

Every function here is pure and never raises on odd input: a value that
can't be found comes back as None (or "" for text). Callers decide whether
a missing field drops the record.

The byte-count and id patterns are heuristics carried over unchanged from
the first version of the parser. Output of earlier runs depends on them, so
they are not tightened here even where they are ambiguous (a message with
several numbers yields the leftmost pattern hit).
"""
import json
import re
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Sequence

from config import MD_FILES

# ── Timestamps ─────────────────────────────────────────────────

TIMESTAMP_KEYS = ("time", "date", "timestamp", "ts", "runAtMs")

# Epoch values above this are milliseconds
EPOCH_MS_THRESHOLD = 1e12

_NUMERIC = re.compile(r"^-?\d+(?:\.\d+)?$")


def _from_epoch(value: float) -> Optional[datetime]:
    if value <= 0:
        return None
    seconds = value / 1000 if value > EPOCH_MS_THRESHOLD else value
    try:
        return datetime.fromtimestamp(seconds, tz=timezone.utc)
    except (OverflowError, OSError, ValueError):
        return None


def parse_time_value(value: Any) -> Optional[datetime]:
    """Parse one timestamp value (ISO string, epoch number, numeric string)."""
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if isinstance(value, (int, float)):
        try:
            return _from_epoch(float(value))
        except OverflowError:
            return None
    if isinstance(value, str):
        s = value.strip()
        if not s:
            return None
        if _NUMERIC.match(s):
            return _from_epoch(float(s))
        try:
            dt = datetime.fromisoformat(s.replace("Z", "+00:00"))
            if dt.tzinfo is None:
                dt = dt.replace(tzinfo=timezone.utc)
            return dt.astimezone(timezone.utc)
        except (OverflowError, ValueError):
            return None
    return None


def get_timestamp(record: Dict) -> Optional[datetime]:
    """First plausible timestamp among TIMESTAMP_KEYS, in priority order."""
    if not isinstance(record, dict):
        return None
    for key in TIMESTAMP_KEYS:
        dt = parse_time_value(record.get(key))
        if dt is not None:
            return dt
    return None


def format_time(dt: datetime) -> str:
    """Canonical event time: 2026-02-01T10:00:00.000Z"""
    dt = dt.astimezone(timezone.utc)
    return dt.strftime("%Y-%m-%dT%H:%M:%S.") + f"{dt.microsecond // 1000:03d}Z"


def parse_event_time(text: str) -> Optional[datetime]:
    """Parse a canonical event time back into a datetime."""
    return parse_time_value(text)


# ── Record fields ──────────────────────────────────────────────

def to_json(value: Any) -> str:
    """Compact JSON, matching what the logs themselves contain."""
    try:
        return json.dumps(value, ensure_ascii=False, separators=(",", ":"))
    except (TypeError, ValueError):
        return str(value)


def content_blocks(content: Any) -> List[Any]:
    """Normalize message.content into a list of blocks."""
    if isinstance(content, list):
        return content
    if isinstance(content, dict):
        return list(content.values())
    if isinstance(content, str) and content:
        return [{"type": "text", "text": content}]
    return []


def get_message(record: Dict) -> str:
    """Best-effort message text for a record."""
    if not isinstance(record, dict):
        return ""
    message = record.get("message")
    if isinstance(message, str):
        return message

    positional = record.get("0")
    if isinstance(positional, str):
        return positional

    args = record.get("arguments")
    if isinstance(args, list) and args and args[0]:
        first = args[0]
        return first if isinstance(first, str) else to_json(first)

    if isinstance(message, dict) and message.get("content"):
        parts = []
        for block in content_blocks(message["content"]):
            if isinstance(block, dict):
                text = block.get("text") or block.get("thinking")
                if isinstance(text, str) and text:
                    parts.append(text)
        return " ".join(parts)

    summary = record.get("summary")
    if isinstance(summary, str):
        return summary
    return ""


def get_level(record: Dict) -> str:
    level = record.get("level") or record.get("logLevel")
    return str(level) if level else "info"


def get_subsystem(record: Dict) -> str:
    subsystem = record.get("subsystem") or record.get("name")
    return str(subsystem) if subsystem else ""


# ── Text scanners ──────────────────────────────────────────────

_MD_PATH_PATTERN = re.compile(r"(?:data[/\\]workspace[/\\])?([A-Z][A-Za-z0-9_-]+\.md)")

_BYTES_PATTERN = re.compile(
    r"(\d+)\s*bytes?|\b(\d+)\s*chars?|written\s*(\d+)|(\d+)\s*B\b|bytesWritten[\"\s:]+(\d+)",
    re.IGNORECASE,
)
_SIZE_PATTERN = re.compile(r'"size"\s*:\s*(\d+)')

_TOOL_PATTERNS = (
    re.compile(r"tool=([a-z_]+)", re.IGNORECASE),
    re.compile(r"tool\s*[=:]\s*[\"']?([a-z_]+)", re.IGNORECASE),
)
_RUN_ID_PATTERNS = (
    re.compile(r"runId=([^\s,]+)"),
    re.compile(r"runId[\"']?\s*[=:]\s*[\"']?([^\s\"',]+)"),
)
_SESSION_ID_PATTERNS = (
    re.compile(r"sessionId=([^\s,]+)"),
    re.compile(r"sessionId[\"']?\s*[=:]\s*[\"']?([^\s\"',]+)"),
)


def extract_md_file(text: str, md_files: Sequence[str] = MD_FILES) -> Optional[str]:
    """Tracked file named in the text (case-insensitive), else a path-like Name.md."""
    if not text:
        return None
    upper = text.upper()
    for name in md_files:
        if name.upper() in upper:
            return name
    match = _MD_PATH_PATTERN.search(text)
    return match.group(1) if match else None


def extract_bytes(text: str) -> Optional[int]:
    if not text:
        return None
    match = _BYTES_PATTERN.search(text) or _SIZE_PATTERN.search(text)
    if not match:
        return None
    for group in match.groups():
        if group:
            return int(group)
    return None


def _first_capture(patterns: Iterable[re.Pattern], text: str) -> Optional[str]:
    if not text:
        return None
    for pattern in patterns:
        match = pattern.search(text)
        if match:
            return match.group(1)
    return None


def extract_tool_name(text: str) -> Optional[str]:
    return _first_capture(_TOOL_PATTERNS, text)


def extract_run_id(text: str) -> Optional[str]:
    return _first_capture(_RUN_ID_PATTERNS, text)


def extract_session_id(text: str) -> Optional[str]:
    return _first_capture(_SESSION_ID_PATTERNS, text)


# ── Message shaping ────────────────────────────────────────────

PROMPT_SUMMARY_CHARS = 120
DISPLAY_MESSAGE_CHARS = 1500
EMBEDDING_TEXT_CHARS = 512
MD_WRITE_MAX_CHARS = 100_000

ELLIPSIS = "…"

_SPEAKER_PATTERN = re.compile(r"\):\s*([^\n]+)")
_SPEAKER_FIRST_LINE_PATTERN = re.compile(r"\):\s*(.+)")
_FROM_SUFFIX_PATTERN = re.compile(r"\s*\[from:\s*[^\]]+\]\s*$", re.IGNORECASE)
_MENTION_PATTERN = re.compile(r"<@\d+>")
_UNTRUSTED_BLOCK_PATTERN = re.compile(
    r"<<<EXTERNAL_UNTRUSTED_CONTENT>>>[\s\S]*?<<<END_EXTERNAL_UNTRUSTED_CONTENT>>>"
)
_METADATA_LINE_PATTERN = re.compile(r"message_id|^\[from:", re.IGNORECASE)


def summarize_prompt(text: str) -> str:
    """One-line message for non-content events."""
    text = text or ""
    if len(text) > PROMPT_SUMMARY_CHARS:
        text = text[:PROMPT_SUMMARY_CHARS] + ELLIPSIS
    return text.replace("\n", " ").strip()


def full_content_for_md_write(text: str) -> str:
    """md_write keeps full content (up to 100k) for summaries and the modal view."""
    t = (text or "").strip()
    if len(t) > MD_WRITE_MAX_CHARS:
        return t[:MD_WRITE_MAX_CHARS] + "\n" + ELLIPSIS + "[truncated]"
    return t


def truncate_display(text: str, limit: int = DISPLAY_MESSAGE_CHARS) -> str:
    return text[:limit] + ELLIPSIS if len(text) > limit else text


def extract_user_message_text(text: str) -> str:
    """Pull the typed message out of a chat-bridge transcript line.

    Bridged messages look like "[Discord ...] Name (handle): message [from: ...]".
    Untrusted external content blocks are dropped before looking.
    """
    without_blocks = _UNTRUSTED_BLOCK_PATTERN.sub("", text).strip()

    match = _SPEAKER_PATTERN.search(without_blocks)
    if match:
        msg = _FROM_SUFFIX_PATTERN.sub("", match.group(1).strip())
        msg = _MENTION_PATTERN.sub("", msg).strip()
        if msg:
            return msg

    lines = without_blocks.split("\n")
    match = _SPEAKER_FIRST_LINE_PATTERN.search(lines[0])
    if match:
        return match.group(1).strip()

    for line in lines:
        t = line.strip()
        if t and not t.startswith("[") and not _METADATA_LINE_PATTERN.search(t):
            return t
    return text


def build_assistant_message_text(content: Any) -> str:
    """Response text first, then thinking (better embedding basis)."""
    text_parts = []
    thinking_parts = []
    for block in content_blocks(content):
        if not isinstance(block, dict):
            continue
        if isinstance(block.get("text"), str) and block["text"]:
            text_parts.append(block["text"])
        if isinstance(block.get("thinking"), str) and block["thinking"]:
            thinking_parts.append(block["thinking"])
    text = " ".join(text_parts).strip()
    thinking = " ".join(thinking_parts).strip()
    if text:
        return text + (" " + thinking if thinking else "")
    return thinking

"""
Event classifiers.

Each classifier looks at one record (already reduced to a RecordContext and
message text) and answers "does this produce event type X?". They hold no
state across records and may fire together on the same record: a tool
result can be both a success and an md_write.

Three record shapes are handled:
  plain   — {"time", "level", "message", "subsystem"} gateway log lines
  session — {"type": "message", "message": {"role", "content": [...]}}
  cron    — {"ts"/"runAtMs", "jobId", "status", "summary"} run snapshots

md_write is writes only, never reads. Plain text needs a write verb or a
byte count next to the file name; session records need a write/edit tool
call or a "successfully wrote" tool result.
"""
import re
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from phase_1_parse.extractors import (
    EMBEDDING_TEXT_CHARS,
    build_assistant_message_text,
    content_blocks,
    extract_bytes,
    extract_md_file,
    extract_tool_name,
    full_content_for_md_write,
    summarize_prompt,
    to_json,
    truncate_display,
    extract_user_message_text,
)
from phase_1_parse.models import EventType


@dataclass
class RecordContext:
    """Metadata resolved once per record and stamped on every event it yields."""
    time: str
    message: str = ""
    level: str = "info"
    subsystem: str = ""
    run_id: Optional[str] = None
    session_id: Optional[str] = None


@dataclass
class EventSignal:
    """A classifier hit: what to emit, before record metadata is attached."""
    type: str
    category: str
    message: str
    bytes: Optional[int] = None
    level: Optional[str] = None
    role: Optional[str] = None
    embedding_text: Optional[str] = None


# ── Shared patterns ────────────────────────────────────────────

WRITE_VERB_PATTERN = re.compile(r"\b(wrote|written|updated|edited|replaced)\b", re.IGNORECASE)
TOOL_MARKERS = ("tool start", "run tool", "tool_call")
LIFECYCLE_START = "run agent start"
LIFECYCLE_END = "run agent end"
SUCCESS_MARKERS = ("HEARTBEAT_OK", "completed successfully", LIFECYCLE_END)
FAILURE_LEVELS = ("error", "fatal")

WRITE_TOOLS = ("write", "edit")
EMAIL_TOOLS = ("send_email", "sessions_send")
SHELL_TOOLS = ("process", "exec")
TOOL_CALL_BLOCK_TYPES = ("toolCall", "tool_use")

_SUCCESSFUL_WRITE_PATTERN = re.compile(r"successfully\s+(wrote|replaced|updated)", re.IGNORECASE)
_POST_CALL_PATTERN = re.compile(
    r"moltbook\.sh\s+create|moltbook\.sh\s+post|api/posts.*POST|POST.*moltbook\.com/api/posts",
    re.IGNORECASE,
)
_COMMENT_CALL_PATTERN = re.compile(
    r"moltbook\.sh\s+reply|api/posts/[^/]+/comments|reply.*POST", re.IGNORECASE
)
_EMAIL_RESULT_PATTERN = re.compile(
    r"sent\s+email|reply\s+sent|email\s+sent|responded\s+to", re.IGNORECASE
)
_EMAIL_DONE_PATTERN = re.compile(r"Done:\s*(\d+)\s+unread,\s*(\d+)\s+responded", re.IGNORECASE)
_POST_RESULT_PATTERN = re.compile(
    r"\"success\"\s*:\s*true|post\s+created|created\s+post", re.IGNORECASE
)
_COMMENT_RESULT_PATTERN = re.compile(
    r"\"success\"\s*:\s*true|reply\s+posted|comment\s+posted|posted\s+reply", re.IGNORECASE
)


def _bare_tool_name(name: Any) -> str:
    return re.sub(r"^functions\.", "", str(name or ""))


def md_write_from_text(text: str) -> Optional[EventSignal]:
    """md_write from free text: tracked file + write verb or byte count."""
    md_file = extract_md_file(text)
    if not md_file:
        return None
    nbytes = extract_bytes(text)
    if not WRITE_VERB_PATTERN.search(text) and nbytes is None:
        return None
    return EventSignal(
        EventType.MD_WRITE, md_file, full_content_for_md_write(text), bytes=nbytes,
    )


# ── Plain log lines ────────────────────────────────────────────

def classify_md_write(ctx: RecordContext) -> Optional[EventSignal]:
    return md_write_from_text(ctx.message)


def classify_tool_call(ctx: RecordContext) -> Optional[EventSignal]:
    msg = ctx.message
    tool = extract_tool_name(msg)
    if tool and any(marker in msg for marker in TOOL_MARKERS):
        return EventSignal(EventType.TOOL_CALL, tool, summarize_prompt(msg))
    return None


def classify_lifecycle(ctx: RecordContext) -> Optional[EventSignal]:
    msg = ctx.message
    if LIFECYCLE_START in msg:
        return EventSignal(EventType.RUN_LIFECYCLE, "start", summarize_prompt(msg))
    if LIFECYCLE_END in msg:
        return EventSignal(EventType.RUN_LIFECYCLE, "end", summarize_prompt(msg))
    return None


def classify_heartbeat(ctx: RecordContext) -> Optional[EventSignal]:
    lower = ctx.message.lower()
    # Mentions of the HEARTBEAT.md file belong to md_write, not heartbeats
    if "heartbeat" in lower and "heartbeat.md" not in lower:
        return EventSignal(EventType.HEARTBEAT, "heartbeat", summarize_prompt(ctx.message))
    return None


def classify_failure(ctx: RecordContext) -> Optional[EventSignal]:
    lower = ctx.message.lower()
    if ctx.level.lower() in FAILURE_LEVELS or "failed" in lower or "error" in lower:
        return EventSignal(EventType.FAILURE, "error", summarize_prompt(ctx.message))
    return None


def classify_success(ctx: RecordContext) -> Optional[EventSignal]:
    if any(marker in ctx.message for marker in SUCCESS_MARKERS):
        return EventSignal(EventType.SUCCESS, "success", summarize_prompt(ctx.message))
    return None


PLAIN_CLASSIFIERS: List[Callable[[RecordContext], Optional[EventSignal]]] = [
    classify_md_write,
    classify_tool_call,
    classify_lifecycle,
    classify_heartbeat,
    classify_failure,
    classify_success,
]


def classify_plain(ctx: RecordContext) -> List[EventSignal]:
    """Run every plain-line classifier; records without text yield nothing."""
    if not ctx.message:
        return []
    signals = []
    for classifier in PLAIN_CLASSIFIERS:
        signal = classifier(ctx)
        if signal is not None:
            signals.append(signal)
    return signals


# ── Session transcripts ────────────────────────────────────────

def _block_text(block: Dict) -> str:
    """text or thinking of a content block; non-string values are ignored."""
    for key in ("text", "thinking"):
        value = block.get(key)
        if isinstance(value, str) and value:
            return value
    return ""


def _session_full_text(blocks: List[Any]) -> str:
    parts = []
    for block in blocks:
        if isinstance(block, dict):
            part = _block_text(block) or to_json(block)
        else:
            part = str(block)
        if part:
            parts.append(part)
    return " ".join(parts)


def classify_tool_call_block(block: Dict) -> List[EventSignal]:
    """tool_call plus whatever the call itself is evidence of (write, email, post)."""
    name = str(block.get("name") or "")
    args = block.get("arguments")
    if args is None:
        args = block.get("input")
    if args is None:
        args = {}
    args_str = to_json(args)

    signals = [EventSignal(EventType.TOOL_CALL, name, summarize_prompt(args_str))]

    if _bare_tool_name(name) in WRITE_TOOLS:
        path = None
        if isinstance(args, dict):
            path = args.get("path") or args.get("file_path") or args.get("target")
        md_file = extract_md_file(str(path)) if path else extract_md_file(args_str)
        if md_file:
            content = args.get("content") if isinstance(args, dict) else None
            if content:
                content = content if isinstance(content, str) else to_json(content)
                nbytes = len(content.encode("utf-8"))
            else:
                nbytes = extract_bytes(args_str)
            signals.append(EventSignal(
                EventType.MD_WRITE, md_file,
                full_content_for_md_write(content or args_str), bytes=nbytes,
            ))

    if name in EMAIL_TOOLS:
        signals.append(EventSignal(EventType.EMAIL_SENT, "email", summarize_prompt(args_str)))

    if name == "exec" and "moltbook" in args_str:
        if _POST_CALL_PATTERN.search(args_str):
            signals.append(EventSignal(EventType.MOLTBOOK_POST, "post", summarize_prompt(args_str)))
        if _COMMENT_CALL_PATTERN.search(args_str):
            signals.append(EventSignal(EventType.MOLTBOOK_COMMENT, "comment", summarize_prompt(args_str)))

    return signals


def classify_role_message(role: str, blocks: List[Any]) -> Optional[EventSignal]:
    """user_message / assistant_message with a cleaned embedding basis."""
    full_text = _session_full_text(blocks)
    if not full_text.strip():
        return None
    if role == "user":
        clean = extract_user_message_text(full_text)
    elif role == "assistant":
        clean = build_assistant_message_text(blocks)
    else:
        return None
    if not clean.strip():
        return None
    event_type = EventType.USER_MESSAGE if role == "user" else EventType.ASSISTANT_MESSAGE
    return EventSignal(
        event_type, role, truncate_display(clean),
        level="info", role=role, embedding_text=clean[:EMBEDDING_TEXT_CHARS],
    )


def classify_tool_result(message: Dict) -> List[EventSignal]:
    """success/failure for a tool result, plus writes and outbound actions it confirms."""
    tool_name = str(message.get("toolName") or "")
    blocks = content_blocks(message.get("content"))
    result_text = " ".join(
        block["text"] if isinstance(block, dict) and isinstance(block.get("text"), str) else ""
        for block in blocks
    )
    is_error = "error" in result_text or "Error" in result_text or bool(message.get("isError"))

    signals = [EventSignal(
        EventType.FAILURE if is_error else EventType.SUCCESS,
        tool_name,
        summarize_prompt(result_text or to_json(message.get("details") or {})),
        level="error" if is_error else "info",
    )]

    if _bare_tool_name(tool_name) in WRITE_TOOLS and _SUCCESSFUL_WRITE_PATTERN.search(result_text):
        md_file = extract_md_file(result_text)
        if md_file:
            signals.append(EventSignal(
                EventType.MD_WRITE, md_file, full_content_for_md_write(result_text),
                bytes=extract_bytes(result_text), level="info",
            ))

    if tool_name in SHELL_TOOLS:
        lower = result_text.lower()
        done = _EMAIL_DONE_PATTERN.search(result_text)
        if "email" in lower and (
            _EMAIL_RESULT_PATTERN.search(lower) or (done and int(done.group(2)) > 0)
        ):
            signals.append(EventSignal(EventType.EMAIL_SENT, "email", summarize_prompt(result_text)))
        if "moltbook" in lower:
            if _POST_RESULT_PATTERN.search(lower):
                signals.append(EventSignal(EventType.MOLTBOOK_POST, "post", summarize_prompt(result_text)))
            if _COMMENT_RESULT_PATTERN.search(lower):
                signals.append(EventSignal(EventType.MOLTBOOK_COMMENT, "comment", summarize_prompt(result_text)))

    return signals


def classify_session(record: Dict) -> List[EventSignal]:
    """All events for one session transcript record."""
    message = record.get("message")
    if not isinstance(message, dict):
        return []
    blocks = content_blocks(message.get("content"))
    role = message.get("role")
    signals: List[EventSignal] = []

    for block in blocks:
        if (isinstance(block, dict) and block.get("type") in TOOL_CALL_BLOCK_TYPES
                and block.get("name")):
            signals.extend(classify_tool_call_block(block))

    if role in ("user", "assistant"):
        signal = classify_role_message(role, blocks)
        if signal is not None:
            signals.append(signal)

    if role == "toolResult" and message.get("toolName"):
        signals.extend(classify_tool_result(message))

    # Default session events to info; tool results set their own level
    for signal in signals:
        if signal.level is None:
            signal.level = "info"
    return signals


# ── Cron run snapshots ─────────────────────────────────────────

def cron_message(record: Dict) -> str:
    text = record.get("summary") or record.get("action") or ""
    return text if isinstance(text, str) else to_json(text)


def classify_cron(record: Dict) -> List[EventSignal]:
    """Job outcome plus outbound actions / writes its summary reports."""
    msg = cron_message(record)
    if not msg:
        return []
    ok = record.get("status") == "ok"
    signals = [EventSignal(
        EventType.CRON, "success" if ok else "failure", summarize_prompt(msg),
        level="info" if ok else "warn",
    )]

    lower = msg.lower()
    if ("email" in lower and any(w in lower for w in ("sent", "responded", "reply"))
            and "0 responded" not in lower):
        signals.append(EventSignal(EventType.EMAIL_SENT, "email", summarize_prompt(msg), level="info"))
    if "moltbook" in lower and ("post" in lower or "browse" in lower):
        if any(w in lower for w in ("posted", "created", "new post")):
            signals.append(EventSignal(EventType.MOLTBOOK_POST, "post", summarize_prompt(msg), level="info"))

    write = md_write_from_text(msg)
    if write is not None:
        write.level = "info"
        signals.append(write)
    return signals

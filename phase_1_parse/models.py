"""
Event model for the bot log timeline.

A LogEvent is the canonical unit the dashboard plots. Events are persisted
as plain JSON objects with camelCase keys; optional fields that are absent
are omitted rather than written as null.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple


class EventType:
    """Wire values for event types (the dashboard reads these strings)."""
    MD_WRITE = "md_write"
    TOOL_CALL = "tool_call"
    USER_MESSAGE = "user_message"
    ASSISTANT_MESSAGE = "assistant_message"
    RUN_LIFECYCLE = "run_lifecycle"
    HEARTBEAT = "heartbeat"
    SUCCESS = "success"
    FAILURE = "failure"
    EMAIL_SENT = "email_sent"
    MOLTBOOK_POST = "moltbook_post"
    MOLTBOOK_COMMENT = "moltbook_comment"
    CRON = "cron"

    ALL = (
        MD_WRITE, TOOL_CALL, USER_MESSAGE, ASSISTANT_MESSAGE, RUN_LIFECYCLE,
        HEARTBEAT, SUCCESS, FAILURE, EMAIL_SENT, MOLTBOOK_POST,
        MOLTBOOK_COMMENT, CRON,
    )

    # Outbound communication counted in summary.activityCounts
    ACTIVITY = (EMAIL_SENT, MOLTBOOK_POST, MOLTBOOK_COMMENT)


SENTIMENT_LABELS = ["very_delighted", "delighted", "neutral", "upset", "very_upset"]

# Fields produced by external enrichment passes, preserved across re-parses
ENRICHMENT_FIELDS = ("summary", "modSummary", "sentiment", "embedding", "embeddingText")

# Persisted key order
_KEYS = [
    ("time", "time"),
    ("type", "type"),
    ("category", "category"),
    ("message", "message"),
    ("level", "level"),
    ("subsystem", "subsystem"),
    ("run_id", "runId"),
    ("session_id", "sessionId"),
    ("bytes", "bytes"),
    ("role", "role"),
    ("summary", "summary"),
    ("mod_summary", "modSummary"),
    ("sentiment", "sentiment"),
    ("embedding_text", "embeddingText"),
    ("embedding", "embedding"),
]
_ATTR_BY_KEY = {key: attr for attr, key in _KEYS}


@dataclass
class LogEvent:
    """One typed event extracted from a log record."""
    time: str
    type: str
    category: str
    message: str = ""

    level: Optional[str] = None
    subsystem: Optional[str] = None
    run_id: Optional[str] = None
    session_id: Optional[str] = None
    bytes: Optional[int] = None
    role: Optional[str] = None

    # Enrichment (external batch passes)
    summary: Optional[str] = None
    mod_summary: Optional[str] = None
    sentiment: Optional[str] = None
    embedding_text: Optional[str] = None
    embedding: Optional[List[float]] = None

    # Unknown keys from a persisted collection, written back verbatim
    extra: Dict[str, Any] = field(default_factory=dict)

    def identity(self) -> Tuple[str, str, str, str]:
        """Dedup / merge identity: (time, type, category, message)."""
        return (self.time, self.type, self.category, self.message)

    def to_dict(self) -> Dict:
        out = {}
        for attr, key in _KEYS:
            value = getattr(self, attr)
            if value is not None:
                out[key] = value
        out.update(self.extra)
        return out

    @classmethod
    def from_dict(cls, data: Dict) -> "LogEvent":
        kwargs = {}
        extra = {}
        for key, value in data.items():
            attr = _ATTR_BY_KEY.get(key)
            if attr:
                kwargs[attr] = value
            else:
                extra[key] = value
        kwargs.setdefault("time", "")
        kwargs.setdefault("type", "")
        kwargs.setdefault("category", "")
        if kwargs.get("message") is None:
            kwargs["message"] = ""
        return cls(extra=extra, **kwargs)

"""
Event Builder, Deduplicator and Sorter.

The builder turns classifier signals into LogEvents stamped with the
record's metadata and keeps them in input order. Dedup and sort run once,
after every input file has been read.
"""
import hashlib
from datetime import datetime, timezone
from typing import Iterable, List

from phase_1_parse.classifiers import EventSignal, RecordContext
from phase_1_parse.extractors import parse_event_time
from phase_1_parse.models import LogEvent

_MIN_TIME = datetime.min.replace(tzinfo=timezone.utc)


def identity_key(event: LogEvent) -> str:
    """Stable digest of (time, type, category, message)."""
    raw = "\x1f".join(str(part) for part in event.identity())
    return hashlib.sha1(raw.encode("utf-8")).hexdigest()


def build_event(ctx: RecordContext, signal: EventSignal) -> LogEvent:
    return LogEvent(
        time=ctx.time,
        type=signal.type,
        category=signal.category,
        message=signal.message,
        level=signal.level or ctx.level,
        subsystem=ctx.subsystem,
        run_id=ctx.run_id,
        session_id=ctx.session_id,
        bytes=signal.bytes,
        role=signal.role,
        embedding_text=signal.embedding_text,
    )


class EventBuilder:
    """Flat, input-ordered collection of extracted events."""

    def __init__(self):
        self.events: List[LogEvent] = []

    def add(self, ctx: RecordContext, signal: EventSignal) -> LogEvent:
        event = build_event(ctx, signal)
        self.events.append(event)
        return event

    def add_all(self, ctx: RecordContext, signals: Iterable[EventSignal]) -> int:
        count = 0
        for signal in signals:
            self.add(ctx, signal)
            count += 1
        return count

    def __len__(self):
        return len(self.events)


def dedupe_events(events: Iterable[LogEvent]) -> List[LogEvent]:
    """Keep the first event for each identity key."""
    seen = set()
    unique = []
    for event in events:
        key = identity_key(event)
        if key in seen:
            continue
        seen.add(key)
        unique.append(event)
    return unique


def _sort_key(event: LogEvent) -> datetime:
    return parse_event_time(event.time) or _MIN_TIME


def sort_events(events: Iterable[LogEvent]) -> List[LogEvent]:
    """Ascending by time; ties keep input order."""
    return sorted(events, key=_sort_key)

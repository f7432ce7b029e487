"""Summary block for events.json: write counts, activity counts, time span."""
from typing import Dict, List, Sequence

from config import MD_FILES
from phase_1_parse.extractors import parse_event_time
from phase_1_parse.models import EventType, LogEvent


def build_summary(events: List[LogEvent], md_files: Sequence[str] = MD_FILES) -> Dict:
    """Fold the final (deduplicated, sorted) events into the summary.

    The watch-list files are always present, at zero if never written.
    Other .md files picked up by the path pattern are added as they appear.
    """
    md_write_counts = {name: 0 for name in md_files}
    md_write_bytes = {name: 0 for name in md_files}
    activity_counts = {t: 0 for t in EventType.ACTIVITY}
    event_types = []
    seen_types = set()

    for event in events:
        if event.type not in seen_types:
            seen_types.add(event.type)
            event_types.append(event.type)
        if event.type == EventType.MD_WRITE:
            md_write_counts[event.category] = md_write_counts.get(event.category, 0) + 1
            md_write_bytes.setdefault(event.category, 0)
            if event.bytes:
                md_write_bytes[event.category] += event.bytes
        elif event.type in activity_counts:
            activity_counts[event.type] += 1

    time_range = None
    timed = [(parse_event_time(e.time), e.time) for e in events]
    timed = [t for t in timed if t[0] is not None]
    if timed:
        time_range = {"start": min(timed)[1], "end": max(timed)[1]}

    return {
        "mdWriteCounts": md_write_counts,
        "mdWriteBytes": md_write_bytes,
        "activityCounts": activity_counts,
        "totalEvents": len(events),
        "eventTypes": event_types,
        "timeRange": time_range,
    }

"""
Re-run merge policy.

Re-parsing the logs rebuilds every event from scratch, which would throw
away summaries, sentiment labels and embeddings that took API calls to
produce. Before the new collection is written, enrichment fields from the
previous events.json are copied onto new events with the same identity.
"""
from typing import Dict, List, Optional

from phase_1_parse.event_builder import identity_key
from phase_1_parse.event_store import EventCollection
from phase_1_parse.models import ENRICHMENT_FIELDS, LogEvent

_ATTR_BY_FIELD = {
    "summary": "summary",
    "modSummary": "mod_summary",
    "sentiment": "sentiment",
    "embedding": "embedding",
    "embeddingText": "embedding_text",
}


def index_enrichment(events: List[LogEvent]) -> Dict[str, LogEvent]:
    """identity key → first previous event carrying any enrichment."""
    index = {}
    for event in events:
        if not any(getattr(event, _ATTR_BY_FIELD[f]) is not None for f in ENRICHMENT_FIELDS):
            continue
        index.setdefault(identity_key(event), event)
    return index


def merge_enrichment(new_events: List[LogEvent],
                     previous: Optional[EventCollection]) -> Dict:
    """Copy present enrichment fields from previous events onto matching new ones.

    Returns merge stats. A missing previous collection means nothing to merge.
    """
    stats = {"matched": 0, "fields_copied": 0, "embeddings_copied": 0}
    if previous is None or not previous.events:
        return stats

    index = index_enrichment(previous.events)
    for event in new_events:
        old = index.get(identity_key(event))
        if old is None:
            continue
        stats["matched"] += 1
        for field_name in ENRICHMENT_FIELDS:
            attr = _ATTR_BY_FIELD[field_name]
            value = getattr(old, attr)
            if value is None:
                continue
            setattr(event, attr, value)
            stats["fields_copied"] += 1
            if field_name == "embedding":
                stats["embeddings_copied"] += 1
    return stats

"""
Load and save the persisted event collection (events.json).

Writes go through a temp file + os.replace so an interrupted enrichment
pass leaves the previous checkpoint intact rather than a half-written file.
"""
import json
import os
from pathlib import Path
from typing import Dict, List, Optional

from phase_1_parse.models import LogEvent

PARSE_COMMAND = "python3 phase_1_parse/parse_logs.py"


class EventsFileNotFoundError(FileNotFoundError):
    """Enrichment / slim / export started before extraction produced events.json."""

    def __init__(self, path: Path):
        super().__init__(f"{Path(path).name} not found at {path}. Run: {PARSE_COMMAND}")
        self.path = Path(path)


class EventCollection:
    """events + summary (+ embeddingModel and any other top-level keys)."""

    def __init__(self, events: Optional[List[LogEvent]] = None,
                 summary: Optional[Dict] = None,
                 embedding_model: Optional[str] = None,
                 extra: Optional[Dict] = None):
        self.events = events if events is not None else []
        self.summary = summary if summary is not None else {}
        self.embedding_model = embedding_model
        self.extra = extra or {}

    def to_dict(self) -> Dict:
        out = {
            "events": [e.to_dict() for e in self.events],
            "summary": self.summary,
        }
        if self.embedding_model:
            out["embeddingModel"] = self.embedding_model
        out.update(self.extra)
        return out

    @classmethod
    def from_dict(cls, data: Dict) -> "EventCollection":
        events = [LogEvent.from_dict(e) for e in data.get("events") or [] if isinstance(e, dict)]
        extra = {k: v for k, v in data.items() if k not in ("events", "summary", "embeddingModel")}
        return cls(
            events=events,
            summary=data.get("summary") or {},
            embedding_model=data.get("embeddingModel"),
            extra=extra,
        )


def load_collection(path: Path) -> EventCollection:
    """Load events.json; missing file is fatal for every consumer but the parser."""
    path = Path(path)
    if not path.exists():
        raise EventsFileNotFoundError(path)
    with open(path, encoding="utf-8") as f:
        return EventCollection.from_dict(json.load(f))


def load_previous_collection(path: Path) -> Optional[EventCollection]:
    """Previous extraction output, or None when there isn't a usable one."""
    try:
        return load_collection(path)
    except (FileNotFoundError, json.JSONDecodeError, OSError):
        return None


def save_collection(collection: EventCollection, path: Path) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    write_json(collection.to_dict(), path)
    return path


def write_json(data: Dict, path: Path):
    tmp = Path(str(path) + ".tmp")
    with open(tmp, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=2, ensure_ascii=False)
    os.replace(tmp, path)


def file_size_mb(path: Path) -> float:
    return Path(path).stat().st_size / (1024 * 1024)

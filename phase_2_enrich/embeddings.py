"""
Embedding vectors for semantic search.

The model itself runs outside this repo: either an external embedder reads
the JSONL written by write_embedding_inputs and hands back {index, embedding}
lines, or the embedding sidecar answers POST /embed {"text"} → {"embedding"}.
Either way the vectors land on events here, with the collection's
embeddingModel recording which model produced them.
"""
import json
import math
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Tuple

import requests

from config import EMBED_API_URL, EMBED_CONCURRENCY, EMBEDDING_MODEL
from phase_1_parse.event_store import EventCollection, save_collection
from phase_1_parse.extractors import EMBEDDING_TEXT_CHARS
from phase_1_parse.models import LogEvent
from phase_2_enrich.batch_runner import run_batch

REQUEST_TIMEOUT = 30  # seconds


class EmbeddingMismatchError(ValueError):
    """Vectors from a different model, or of a different dimension, than the collection's."""


class EmbeddingServiceError(RuntimeError):
    """The sidecar answered, but not with an embedding."""


def embedding_text(event: LogEvent) -> Optional[str]:
    """Text to embed: embeddingText when the classifier set one, else message."""
    source = event.embedding_text if event.embedding_text is not None else event.message
    text = (source or "").strip()
    if not text:
        return None
    return text[:EMBEDDING_TEXT_CHARS]


def embeddable_events(events: Sequence[LogEvent], force: bool = False,
                      limit: int = 0) -> List[Tuple[int, LogEvent, str]]:
    """(index, event, text) for events with text and (unless force) no vector yet."""
    out = []
    for index, event in enumerate(events):
        if event.embedding is not None and not force:
            continue
        text = embedding_text(event)
        if text:
            out.append((index, event, text))
    if limit and limit > 0:
        out = out[:limit]
    return out


def write_embedding_inputs(events: Sequence[LogEvent], path: Path, force: bool = False,
                           limit: int = 0) -> int:
    """JSONL of {index, text} for an external embedder; returns the line count."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    rows = embeddable_events(events, force=force, limit=limit)
    with open(path, "w", encoding="utf-8") as f:
        for index, _, text in rows:
            f.write(json.dumps({"index": index, "text": text}, ensure_ascii=False) + "\n")
    return len(rows)


def read_embedding_outputs(path: Path) -> List[Dict]:
    """{index, embedding} entries from a JSONL file or a single JSON array."""
    text = Path(path).read_text(encoding="utf-8").strip()
    if not text:
        return []
    if text.startswith("["):
        return [e for e in json.loads(text) if isinstance(e, dict)]
    entries = []
    for line in text.splitlines():
        line = line.strip()
        if line:
            entries.append(json.loads(line))
    return entries


def existing_dimension(events: Iterable[LogEvent]) -> Optional[int]:
    for event in events:
        if event.embedding:
            return len(event.embedding)
    return None


def check_model(collection: EventCollection, model: str, force: bool = False):
    if collection.embedding_model and collection.embedding_model != model and not force:
        raise EmbeddingMismatchError(
            f"events.json holds {collection.embedding_model} vectors; refusing to mix in "
            f"{model} (pass --force to re-embed everything)"
        )


def switches_model(collection: EventCollection, model: str) -> bool:
    return bool(collection.embedding_model) and collection.embedding_model != model


def clear_for_force(collection: EventCollection, model: str, replaced: Iterable[LogEvent],
                    limited: bool = False):
    """Drop the vectors a forced run is about to replace.

    Under the same model only the replaced events lose their vectors. A model
    switch invalidates every vector, so it has to cover the whole collection.
    """
    if switches_model(collection, model):
        if limited:
            raise EmbeddingMismatchError(
                f"switching from {collection.embedding_model} to {model} re-embeds every "
                f"event; drop --limit"
            )
        replaced = collection.events
    for event in replaced:
        event.embedding = None


def merge_embeddings(collection: EventCollection, entries: Iterable[Dict],
                     model: str = EMBEDDING_MODEL, force: bool = False) -> Dict:
    """Attach {index, embedding} vectors to the collection's events.

    All vectors must share one dimension. Unless forced, that dimension must
    match the vectors already present, and model must match embeddingModel.
    Forcing replaces the vectors of the listed events, or every vector when
    the model changes.
    """
    check_model(collection, model, force)
    events = collection.events
    entries = list(entries)
    if force:
        clear_for_force(collection, model, [
            events[e["index"]] for e in entries
            if isinstance(e.get("index"), int) and 0 <= e["index"] < len(events)
        ])

    expected = existing_dimension(events)
    stats = {"attached": 0, "skipped": 0}
    for entry in entries:
        index = entry.get("index")
        vector = entry.get("embedding")
        if not isinstance(index, int) or not 0 <= index < len(events) or not vector:
            stats["skipped"] += 1
            continue
        if expected is None:
            expected = len(vector)
        elif len(vector) != expected:
            raise EmbeddingMismatchError(
                f"vector for event {index} has dimension {len(vector)}, expected {expected}"
            )
        events[index].embedding = [float(x) for x in vector]
        stats["attached"] += 1

    if stats["attached"]:
        collection.embedding_model = model
    return stats


def fetch_embedding(text: str, url: str = EMBED_API_URL, post: Callable = requests.post,
                    timeout: float = REQUEST_TIMEOUT) -> List[float]:
    """One sidecar call: POST {"text"} → {"embedding"}."""
    res = post(url, json={"text": text}, timeout=timeout)
    res.raise_for_status()
    data = res.json()
    embedding = data.get("embedding") if isinstance(data, dict) else None
    if not isinstance(embedding, list) or not embedding:
        raise EmbeddingServiceError(f"no embedding in response from {url}")
    return [float(x) for x in embedding]


def fetch_embeddings(collection: EventCollection, url: str = EMBED_API_URL,
                     model: str = EMBEDDING_MODEL, force: bool = False, limit: int = 0,
                     concurrency: int = EMBED_CONCURRENCY,
                     events_path: Optional[Path] = None,
                     post: Callable = requests.post,
                     on_progress: Optional[Callable[[Dict], None]] = None) -> Dict:
    """Embed every eligible event through the sidecar, checkpointing like the LLM passes."""
    check_model(collection, model, force)
    rows = embeddable_events(collection.events, force=force, limit=limit)
    if force:
        clear_for_force(collection, model, [row[1] for row in rows],
                        limited=bool(limit and limit > 0))
    expected = {"dim": existing_dimension(collection.events)}

    def apply(row, vector) -> bool:
        if expected["dim"] is None:
            expected["dim"] = len(vector)
        elif len(vector) != expected["dim"]:
            raise EmbeddingMismatchError(
                f"sidecar returned dimension {len(vector)}, expected {expected['dim']}"
            )
        row[1].embedding = vector
        collection.embedding_model = model
        return True

    checkpoint = None
    if events_path is not None:
        def checkpoint():
            save_collection(collection, events_path)

    return run_batch(
        rows,
        task=lambda row: fetch_embedding(row[2], url=url, post=post),
        apply=apply,
        concurrency=concurrency,
        on_checkpoint=checkpoint,
        on_progress=on_progress,
    )


# ── Search ─────────────────────────────────────────────────────────

def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    if len(a) != len(b):
        raise ValueError(f"dimension mismatch: {len(a)} vs {len(b)}")
    dot = sum(x * y for x, y in zip(a, b))
    norm_a = math.sqrt(sum(x * x for x in a))
    norm_b = math.sqrt(sum(y * y for y in b))
    if norm_a == 0 or norm_b == 0:
        return 0.0
    return dot / (norm_a * norm_b)


def semantic_search(events: Sequence[LogEvent], query_vector: Sequence[float],
                    top_k: int = 10,
                    types: Optional[Sequence[str]] = None) -> List[Tuple[float, LogEvent]]:
    """Events ranked by cosine similarity to query_vector, best first."""
    scored = []
    for event in events:
        if not event.embedding or len(event.embedding) != len(query_vector):
            continue
        if types and event.type not in types:
            continue
        scored.append((cosine_similarity(query_vector, event.embedding), event))
    scored.sort(key=lambda pair: pair[0], reverse=True)
    return scored[:top_k]

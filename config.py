"""
Bot Log Analysis Configuration — Central settings for all phases.

All scripts import from here. Override with environment variables:
    BOTLOG_LOGS_DIR          — Directory tree of .log / .jsonl input files
    BOTLOG_PUBLIC_DIR        — Where events.json / events-slim.json are written
    BOTLOG_DEPLOY_DIR        — Standalone deploy output
    BOTLOG_VIEW_HTML         — Dashboard HTML copied into the deploy dir (optional)
    BOTLOG_SUMMARY_MODEL     — Model for summary / modification passes
    BOTLOG_CLASSIFIER_MODEL  — Model for the sentiment pass
    BOTLOG_EMBED_API_URL     — Embedding sidecar endpoint (POST /embed)
    BOTLOG_SAVE_INTERVAL     — Checkpoint every N completed enrichment items
    ANTHROPIC_API_KEY        — Required for live enrichment passes
"""
import os
from pathlib import Path

from dotenv import load_dotenv

# ── Paths ──────────────────────────────────────────────────────
REPO_ROOT = Path(__file__).resolve().parent

# Load .env file, walking up from the repo root until one is found
_search = REPO_ROOT
for _ in range(5):
    if (_search / ".env").exists():
        load_dotenv(_search / ".env")
        break
    _search = _search.parent
else:
    load_dotenv()


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        return default


LOGS_DIR = Path(os.getenv("BOTLOG_LOGS_DIR", str(REPO_ROOT / "logs")))
PUBLIC_DIR = Path(os.getenv("BOTLOG_PUBLIC_DIR", str(REPO_ROOT / "public")))
DEPLOY_DIR = Path(os.getenv("BOTLOG_DEPLOY_DIR", str(REPO_ROOT / "deploy")))
VIEW_HTML = os.getenv("BOTLOG_VIEW_HTML", "")

EVENTS_PATH = PUBLIC_DIR / "events.json"
SLIM_EVENTS_PATH = PUBLIC_DIR / "events-slim.json"

# ── Extraction ─────────────────────────────────────────────────

# Workspace MD files the bot maintains; always present in the summary
MD_FILES = [
    "SOUL.md",
    "AGENTS.md",
    "MEMORY.md",
    "HEARTBEAT.md",
    "TOOLS.md",
    "IDENTITY.md",
    "USER.md",
    "BOOTSTRAP.md",
]

LOG_SUFFIXES = (".log", ".jsonl")

# Files under a path containing this marker hold cron run snapshots
CRON_PATH_MARKER = "cron_snap"

# ── Enrichment ─────────────────────────────────────────────────
SUMMARY_MODEL = os.getenv("BOTLOG_SUMMARY_MODEL", "claude-haiku-4-5-20251001")
CLASSIFIER_MODEL = os.getenv("BOTLOG_CLASSIFIER_MODEL", "claude-haiku-4-5-20251001")

SAVE_INTERVAL = _env_int("BOTLOG_SAVE_INTERVAL", 50)
SUMMARY_CONCURRENCY = _env_int("BOTLOG_SUMMARY_CONCURRENCY", 20)
SUMMARY_DELAY = _env_float("BOTLOG_SUMMARY_DELAY", 0.4)
SEQUENTIAL_DELAY = _env_float("BOTLOG_SEQUENTIAL_DELAY", 0.3)

# Embedding model the sidecar / external embedder uses (384-dim)
EMBEDDING_MODEL = os.getenv("BOTLOG_EMBEDDING_MODEL", "Xenova/all-MiniLM-L6-v2")
EMBED_API_URL = os.getenv("BOTLOG_EMBED_API_URL", "http://localhost:3001/embed")
EMBED_CONCURRENCY = _env_int("BOTLOG_EMBED_CONCURRENCY", 8)


class MissingCredentialsError(RuntimeError):
    """Raised when a live enrichment pass starts without an API key."""


def require_api_key() -> str:
    """Return the Anthropic API key or fail fast."""
    key = os.getenv("ANTHROPIC_API_KEY", "").strip()
    if not key:
        raise MissingCredentialsError(
            "ANTHROPIC_API_KEY not set. Add it to .env or export it before running enrichment."
        )
    return key


def get_output_dir() -> Path:
    """Get or create the public output directory."""
    PUBLIC_DIR.mkdir(parents=True, exist_ok=True)
    return PUBLIC_DIR

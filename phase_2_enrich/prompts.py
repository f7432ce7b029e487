#!/usr/bin/env python3
"""
Enrichment Pass Prompts
=======================

Prompt templates and per-pass settings for the three LLM enrichment passes
over events.json.

summary   (Haiku 4.5): one-sentence gist of every md_write, shown on hover
mods      (Haiku 4.5): concrete modification summary for the core workspace files
sentiment (Haiku 4.5): five-level label for every user_message
"""
import re
from typing import Optional

from config import (
    CLASSIFIER_MODEL,
    SEQUENTIAL_DELAY,
    SUMMARY_CONCURRENCY,
    SUMMARY_DELAY,
    SUMMARY_MODEL,
)
from phase_1_parse.models import SENTIMENT_LABELS, EventType

# Files whose edits get a modification summary (TOOLS.md and BOOTSTRAP.md are mostly boilerplate)
MOD_TARGET_FILES = ["SOUL.md", "AGENTS.md", "IDENTITY.md", "USER.md", "MEMORY.md", "HEARTBEAT.md"]

DEFAULT_SENTIMENT = "neutral"


def truncate_input(text: Optional[str], max_chars: int) -> str:
    t = (text or "").strip()
    if len(t) > max_chars:
        return t[:max_chars] + "…"
    return t


def parse_summary(text: str) -> Optional[str]:
    """First non-empty line of the reply, without wrapping quotes."""
    for line in (text or "").splitlines():
        line = line.strip().strip('"').strip()
        if line:
            return line
    return None


_LABEL_PATTERN = re.compile("|".join(sorted(SENTIMENT_LABELS, key=len, reverse=True)))


def normalize_sentiment(text: str) -> str:
    """Map a free-form reply onto one of SENTIMENT_LABELS.

    "Very Upset" → very_upset. Anything unrecognizable is neutral.
    """
    label = re.sub(r"\s+", "_", (text or "").strip().lower())
    if label in SENTIMENT_LABELS:
        return label
    match = _LABEL_PATTERN.search(label)
    return match.group() if match else DEFAULT_SENTIMENT


# ── summary ────────────────────────────────────────────────────────

SUMMARY_SYSTEM = """You summarize edits an autonomous agent made to its own workspace files.
Reply with one short sentence and nothing else."""

SUMMARY_USER_TEMPLATE = """Summarize this in one short sentence (max 15 words):

{text}"""


# ── mods ───────────────────────────────────────────────────────────

MODS_SYSTEM = """You read log messages about file writes and edits made by an AI agent.
Strip tool call markup, JSON, chat templates, and boilerplate before answering."""

MODS_USER_TEMPLATE = """Parse this log message about a file write/edit.

Your summary MUST describe the SPECIFIC CONTENT that was written: what topic, what was
added or changed, concrete details. NEVER use generic phrases like "updated with context",
"added information", "stored context", "updated memory", "wrote to file". Be concrete:
e.g. "Added task to debug Discord DM" or "Logged user preference for dark mode".

Return ONLY one sentence (max 18 words). If the message is just "Successfully wrote X bytes"
with no content, return "Wrote X bytes".

File: {filename}
Message:
{text}"""


# ── sentiment ──────────────────────────────────────────────────────

SENTIMENT_SYSTEM = """You classify the sentiment of messages a user sends to their AI assistant.
Reply with exactly one label."""

SENTIMENT_USER_TEMPLATE = """Classify the sentiment of this user message to an AI agent.

Return EXACTLY one of these labels:
- very_delighted: complimenting, praising, excited ("this is awesome!", "you're amazing")
- delighted: pleased, satisfied, positive ("thanks!", "nice", "perfect", "good job")
- neutral: factual, question, instruction, or unclear sentiment
- upset: frustrated, annoyed, or disappointed ("this isn't working", "why did you...")
- very_upset: angry, strongly criticizing ("this is terrible", "you're useless", "I'm done")

Message:
{text}"""


# ── Pass configurations ────────────────────────────────────────────

PASS_CONFIGS = {
    "summary": {
        "name": "md_write summaries",
        "model": SUMMARY_MODEL,
        "field": "summary",
        "attr": "summary",
        "system_prompt": SUMMARY_SYSTEM,
        "user_template": SUMMARY_USER_TEMPLATE,
        "event_filter": lambda e: e.type == EventType.MD_WRITE and bool(e.message.strip()),
        "max_input_chars": 1500,
        "max_tokens": 60,
        "concurrency": SUMMARY_CONCURRENCY,
        "delay": SUMMARY_DELAY,
        "parse_response": parse_summary,
        "fallback": None,
    },
    "mods": {
        "name": "Modification summaries",
        "model": SUMMARY_MODEL,
        "field": "modSummary",
        "attr": "mod_summary",
        "system_prompt": MODS_SYSTEM,
        "user_template": MODS_USER_TEMPLATE,
        "event_filter": lambda e: (e.type == EventType.MD_WRITE
                                   and e.category in MOD_TARGET_FILES
                                   and bool(e.message.strip())),
        "max_input_chars": 12000,
        "max_tokens": 80,
        "concurrency": 1,
        "delay": SEQUENTIAL_DELAY,
        "parse_response": parse_summary,
        "fallback": None,
    },
    "sentiment": {
        "name": "User sentiment",
        "model": CLASSIFIER_MODEL,
        "field": "sentiment",
        "attr": "sentiment",
        "system_prompt": SENTIMENT_SYSTEM,
        "user_template": SENTIMENT_USER_TEMPLATE,
        "event_filter": lambda e: e.type == EventType.USER_MESSAGE and bool(e.message.strip()),
        "max_input_chars": 2000,
        "max_tokens": 20,
        "concurrency": 1,
        "delay": SEQUENTIAL_DELAY,
        "parse_response": normalize_sentiment,
        # Failed calls still label the event so the chart has no gaps
        "fallback": DEFAULT_SENTIMENT,
    },
}

PASS_ORDER = ["summary", "mods", "sentiment"]


def build_user_prompt(config: dict, event) -> str:
    text = truncate_input(event.message, config["max_input_chars"])
    return config["user_template"].format(text=text, filename=event.category)

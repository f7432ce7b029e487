"""
Secret redaction for anything published outside the machine.

Bot logs routinely echo tokens back (config dumps, failed curl commands,
tool arguments). Before a deploy, every string in the document is scanned
and token-shaped substrings are replaced with REDACTION_MARKER.
"""
import re
from typing import Any, Tuple

REDACTION_MARKER = "[REDACTED]"

SECRET_PATTERNS = [
    # Discord bot token: base64 user id . timestamp . hmac
    ("discord_bot_token", re.compile(r"\b[MNO][A-Za-z\d_-]{23,25}\.[A-Za-z\d_-]{6}\.[A-Za-z\d_-]{27,38}\b")),
    ("github_token", re.compile(r"\bgh[pousr]_[A-Za-z0-9]{30,}\b")),
    ("github_pat", re.compile(r"\bgithub_pat_[A-Za-z0-9_]{22,}\b")),
    ("slack_token", re.compile(r"\bxox[abposr]-[A-Za-z0-9-]{10,}")),
    # OpenAI, OpenRouter (sk-or-), Anthropic (sk-ant-)
    ("sk_api_key", re.compile(r"\bsk-[A-Za-z0-9_-]{20,}")),
    ("google_api_key", re.compile(r"\bAIza[0-9A-Za-z_-]{35}\b")),
    ("aws_access_key_id", re.compile(r"\b(?:AKIA|ASIA)[0-9A-Z]{16}\b")),
]


def redact_text(text: str) -> Tuple[str, int]:
    """Returns (redacted text, number of replacements)."""
    total = 0
    for _, pattern in SECRET_PATTERNS:
        text, n = pattern.subn(REDACTION_MARKER, text)
        total += n
    return text, total


def redact_value(value: Any) -> Tuple[Any, int]:
    """Recursively redact every string inside dicts and lists. Input is not modified."""
    if isinstance(value, str):
        return redact_text(value)
    if isinstance(value, dict):
        out = {}
        total = 0
        for key, item in value.items():
            out[key], n = redact_value(item)
            total += n
        return out, total
    if isinstance(value, list):
        out = []
        total = 0
        for item in value:
            redacted, n = redact_value(item)
            out.append(redacted)
            total += n
        return out, total
    return value, 0

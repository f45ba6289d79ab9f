"""Redaction helpers for safe logging.

Guardian phones and message bodies are PII. Log hashes and lengths only.
"""

import hashlib
import re
from typing import Any

_PHONE_PATTERN = re.compile(r"\+?\d[\d\s\-().]{8,}\d")
_EMAIL_PATTERN = re.compile(r"[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}")

_REDACTED = "[REDACTED]"
HASH_SUFFIX = "_hash"


def hash_identifier(value: str) -> str:
    """Non-reversible short hash for log correlation (first 12 hex chars of sha256)."""
    return hashlib.sha256(value.encode()).hexdigest()[:12]


def redact_string(value: str) -> str:
    """Redact phone and e-mail patterns from a string."""
    result = _PHONE_PATTERN.sub(_REDACTED, value)
    result = _EMAIL_PATTERN.sub(_REDACTED, result)
    return result


def redact_value(value: Any) -> str:
    """Redact any value for safe logging. Returns string representation."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return str(value).lower()
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, str):
        return redact_string(value)
    if isinstance(value, dict):
        # structure only
        return f"dict(keys={list(value.keys())})"
    if isinstance(value, (list, tuple)):
        return f"list(len={len(value)})"
    return f"<{type(value).__name__}>"


def safe_log_context(**kwargs: Any) -> dict[str, str]:
    """Build a context dict safe for logging. All values are redacted.

    Keys ending in ``_hash`` carry ``hash_identifier`` output and are kept
    as is; a mostly-digit hash would otherwise match the phone pattern.
    """
    return {
        k: str(v) if k.endswith(HASH_SUFFIX) else redact_value(v)
        for k, v in kwargs.items()
    }

"""Helpers for safe debug logging.

GraphQL traces carry the user's contact address and account name, and every
request repeats a long query document. This module trims both before DEBUG
logs are emitted.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

from pydantic import BaseModel

_SENSITIVE_VALUE_KEYS: frozenset[str] = frozenset(
    {
        "sendto",
        "username",
        "password",
        "sessionsecret",
        "accesstoken",
        "authorization",
        "cookie",
    }
)

#: Keys holding GraphQL documents; logged by their first line only.
_DOCUMENT_KEYS: frozenset[str] = frozenset({"query"})


def _document_head(document: str) -> str:
    for line in document.splitlines():
        stripped = line.strip()
        if stripped:
            return stripped.rstrip("{ ").strip() + " …"
    return ""


def redact_for_log(value: Any, *, max_string: int = 512, _depth: int = 0) -> Any:
    """Return a redacted copy of *value* suitable for debug logs."""
    if _depth > 20:
        return "<max-depth>"

    if isinstance(value, BaseModel):
        value = value.model_dump(mode="json")

    if value is None or isinstance(value, (bool, int, float)):
        return value

    if isinstance(value, str):
        return value if len(value) <= max_string else f"{value[:max_string]}…<truncated>"

    if isinstance(value, Mapping):
        redacted: dict[str, Any] = {}
        for raw_key, item in value.items():
            key = str(raw_key)
            folded = key.lower().replace("_", "")
            if folded in _SENSITIVE_VALUE_KEYS:
                redacted[key] = "<redacted>"
            elif folded in _DOCUMENT_KEYS and isinstance(item, str):
                redacted[key] = _document_head(item)
            else:
                redacted[key] = redact_for_log(item, max_string=max_string, _depth=_depth + 1)
        return redacted

    if isinstance(value, Sequence) and not isinstance(value, (bytes, bytearray)):
        return [redact_for_log(item, max_string=max_string, _depth=_depth + 1) for item in value]

    return repr(value)

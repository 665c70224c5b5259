"""collector.security.redaction

Redaction helpers.

Alarm records and log lines carry request headers and identity documents.
Signatures and derived secrets do not belong in either.
"""

from __future__ import annotations

import copy
import re
from typing import Any

_REDACTION_PATTERNS: list[tuple[str, str]] = [
    # Generic key/value
    (r"(?i)(secret|password|token)\s*[:=]\s*[^\s\"']+", "[REDACTED]"),
    # Bearer tokens
    (r"(?i)bearer\s+[a-z0-9._~+/=-]+", "Bearer [REDACTED]"),
]

_SENSITIVE_FIELD_NAMES = {
    "signature",
    "x-fbtrex-signature",
    "usersecret",
    "user_secret",
    "private_key",
    "privatekey",
    "authorization",
    "auth_token",
}


def redact_secrets(text: str) -> str:
    out = text
    for pattern, repl in _REDACTION_PATTERNS:
        out = re.sub(pattern, repl, out)
    return out


def sanitize_for_log(data: Any) -> Any:
    """Deep-copy and redact sensitive fields + embedded secrets."""

    def _walk(obj: Any) -> Any:
        if isinstance(obj, dict):
            new: dict[str, Any] = {}
            for k, v in obj.items():
                if str(k).lower() in _SENSITIVE_FIELD_NAMES:
                    new[k] = "[REDACTED]"
                else:
                    new[k] = _walk(v)
            return new
        if isinstance(obj, (list, tuple)):
            return [_walk(v) for v in obj]
        if isinstance(obj, str):
            return redact_secrets(obj)
        return obj

    return _walk(copy.deepcopy(data))

"""collector.core.hashing

Deterministic, content-addressed identifiers.

The field names, their order and the value encoding are an external contract:
records already stored were keyed this way. Change any of them and resubmitted
events stop colliding with their earlier copies.
"""

from __future__ import annotations

import hashlib
import json
from collections.abc import Iterable
from typing import Any

_FIELD_SEPARATOR = "\u2234"


def _encode_value(value: Any) -> str:
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False)


def derive_id(fields: Iterable[tuple[str, Any]]) -> str:
    """Return a 40-char SHA-1 hex id over ordered ``(name, value)`` pairs.

    Each pair contributes ``name∴<json value>,``. Never feed wall-clock time in
    here unless the identifier is meant to be unique per call.
    """

    plain = "".join(f"{name}{_FIELD_SEPARATOR}{_encode_value(value)}," for name, value in fields)
    return hashlib.sha1(plain.encode("utf-8")).hexdigest()  # noqa: S324


def timeline_id(client_timeline_id: Any, user_id: int) -> str:
    return derive_id((("uuid", client_timeline_id), ("user", user_id)))


def impression_id(client_timeline_id: Any, user_id: int, order: Any) -> str:
    return derive_id((("uuid", client_timeline_id), ("user", user_id), ("order", order)))


def html_id(html: str) -> str:
    return derive_id((("html", html),))


def user_secret(public_key: str, user_id: int, when_iso: str) -> str:
    return derive_id((("publicKey", public_key), ("userId", user_id), ("when", when_iso)))

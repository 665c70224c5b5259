from __future__ import annotations

import json
from typing import Any

from collector.security.signing import ClientKeyPair

FEED = "https://www.facebook.com/"


def body_of(events: list[Any]) -> bytes:
    return json.dumps(events).encode("utf-8")


def signed_headers(
    pair: ClientKeyPair,
    body: bytes,
    *,
    user_id: int | str = 42,
    version: str = "1.2.3",
    build: str = "b-01",
    signature: str | None = None,
) -> dict[str, str]:
    return {
        "content-length": str(len(body)),
        "x-fbtrex-build": build,
        "x-fbtrex-version": version,
        "x-fbtrex-userid": str(user_id),
        "x-fbtrex-publickey": pair.public_key,
        "x-fbtrex-signature": pair.sign(body) if signature is None else signature,
    }


def timeline_event(client_id: str = "abc", *, location: str = FEED, **extra: Any) -> dict[str, Any]:
    return {
        "type": "timeline",
        "id": client_id,
        "startTime": "2024-01-01T00:00:00Z",
        "location": location,
        **extra,
    }


def impression_event(
    client_timeline: str = "abc",
    order: int | str = 1,
    *,
    visibility: str = "public",
    html: str | None = "<div>post</div>",
) -> dict[str, Any]:
    evnt: dict[str, Any] = {
        "type": "impression",
        "timelineId": client_timeline,
        "visibility": visibility,
        "impressionOrder": order,
        "impressionTime": "2024-01-01T00:00:05Z",
    }
    if html is not None:
        evnt["html"] = html
    return evnt

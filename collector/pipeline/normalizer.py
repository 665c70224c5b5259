"""collector.pipeline.normalizer

Client events -> typed records with deterministic ids.

Each event is classified by its ``type`` and converted on its own; a malformed
event becomes an entry in ``errors`` and the rest of the batch carries on.

Impressions never store html inline. Public impressions hand their html to a
content-addressed :class:`HtmlSnippet`; html that arrives with any other
visibility is dropped on the floor.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from collector.core import hashing
from collector.core.config import FEED_ROOT_URL
from collector.core.exceptions import EventTypeError
from collector.core.models import HtmlSnippet, ImpressionEvent, SessionInfo, TimelineEvent
from collector.core.time import parse_dt, utc_now

logger = logging.getLogger(__name__)

INVALID_TYPE = "invalid type"
INVALID_FIELD = "invalid field"


@dataclass
class NormalizedBatch:
    session: SessionInfo
    timelines: list[TimelineEvent] = field(default_factory=list)
    impressions: list[ImpressionEvent] = field(default_factory=list)
    htmls: list[HtmlSnippet] = field(default_factory=list)
    errors: list[dict[str, Any]] = field(default_factory=list)

    def reject(self, kind: str, event: Any, detail: str | None = None) -> None:
        entry: dict[str, Any] = {"kind": kind, "event": event}
        if detail:
            entry["detail"] = detail
        self.errors.append(entry)


def _timeline(evnt: dict[str, Any], session: SessionInfo, feed_root_url: str) -> TimelineEvent:
    nonfeed = True if evnt.get("location") != feed_root_url else None
    tag_id = evnt.get("tagId") or None
    return TimelineEvent(
        id=hashing.timeline_id(evnt.get("id"), session.user_id),
        start_time=parse_dt(evnt["startTime"]),
        user_id=session.user_id,
        geoip=session.geoip,
        nonfeed=nonfeed,
        tag_id=str(tag_id) if tag_id is not None else None,
    )


def _impression(
    evnt: dict[str, Any], session: SessionInfo, now: datetime
) -> tuple[ImpressionEvent, HtmlSnippet | None]:
    visibility = evnt.get("visibility")
    html = evnt.get("html")
    client_timeline = evnt.get("timelineId")
    raw_order = evnt.get("impressionOrder")

    timeline_id = hashing.timeline_id(client_timeline, session.user_id)
    impression_id = hashing.impression_id(client_timeline, session.user_id, raw_order)
    order = int(str(raw_order).strip())
    when = parse_dt(evnt["impressionTime"])

    snippet: HtmlSnippet | None = None
    html_id: str | None = None
    if visibility == "public":
        html = html if isinstance(html, str) else ""
        if not html:
            logger.warning("public_impression_without_html", extra={"impression_id": impression_id})
        html_id = hashing.html_id(html)
        snippet = HtmlSnippet(
            id=html_id,
            saving_time=now,
            user_id=session.user_id,
            impression_id=impression_id,
            timeline_id=timeline_id,
            html=html,
        )
    elif html:
        logger.warning(
            "private_html_leak_discarded",
            extra={"impression_id": impression_id, "bytes": len(str(html))},
        )

    impression = ImpressionEvent(
        id=impression_id,
        timeline_id=timeline_id,
        user_id=session.user_id,
        visibility=visibility,
        impression_order=order,
        impression_time=when,
        html_id=html_id,
    )
    return impression, snippet


def normalize_events(
    events: Iterable[Any],
    session: SessionInfo,
    *,
    feed_root_url: str = FEED_ROOT_URL,
    now: datetime | None = None,
) -> NormalizedBatch:
    """Fold client events into timeline, impression, html and error buckets."""

    saving_time = now or utc_now()
    batch = NormalizedBatch(session=session)

    for evnt in events:
        kind = evnt.get("type") if isinstance(evnt, dict) else None
        try:
            if kind == "timeline":
                batch.timelines.append(_timeline(evnt, session, feed_root_url))
            elif kind == "impression":
                impression, snippet = _impression(evnt, session, saving_time)
                batch.impressions.append(impression)
                if snippet is not None:
                    batch.htmls.append(snippet)
            else:
                raise EventTypeError(f"unexpected event type: {kind!r}")
        except EventTypeError as e:
            logger.warning("event_invalid_type", extra={"type": kind, "user_id": session.user_id})
            batch.reject(INVALID_TYPE, evnt, str(e))
        except (KeyError, TypeError, ValueError) as e:
            logger.warning("event_invalid_field", extra={"type": kind, "error": str(e)})
            batch.reject(INVALID_FIELD, evnt, str(e))

    return batch

"""collector.core.alarms

Out-of-band anomaly notifications.

Every alarm is written to the alarms collection; losing one is a failure of the
request that raised it. Forwarding to a webhook is best-effort on top of that.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any

import httpx

from collector.core.database import Database
from collector.core.exceptions import AlarmError, StoreError
from collector.core.models import alarm_document
from collector.core.time import utc_now
from collector.security.redaction import sanitize_for_log

logger = logging.getLogger(__name__)


@dataclass
class AlarmReporter:
    db: Database
    collection: str = "alarms"
    webhook_url: str = ""
    timeout_s: float = 3.0
    transport: httpx.AsyncBaseTransport | None = None

    async def report(self, *, what: str, info: Any, caller: str = "events") -> dict[str, Any]:
        doc = alarm_document(ts=utc_now(), caller=caller, what=what, info=sanitize_for_log(info))
        try:
            await asyncio.to_thread(self.db.write_one, self.collection, doc)
        except StoreError as e:
            logger.error("alarm_store_failed", extra={"what": what, "error": str(e)})
            raise AlarmError(str(e)) from e

        logger.warning("alarm_raised", extra={"caller": caller, "what": what})
        if self.webhook_url:
            await self._forward(doc)
        return doc

    async def _forward(self, doc: dict[str, Any]) -> None:
        try:
            async with httpx.AsyncClient(timeout=self.timeout_s, transport=self.transport) as client:
                resp = await client.post(
                    self.webhook_url,
                    json=doc,
                    headers={"User-Agent": "collector-alarms/1"},
                )
                resp.raise_for_status()
        except httpx.HTTPError as e:
            logger.warning("alarm_forward_failed", extra={"what": doc.get("what"), "error": str(e)})

    def recent(self, *, limit: int = 100, what: str | None = None) -> list[dict[str, Any]]:
        filter_ = {"what": what} if what else None
        return self.db.read(self.collection, filter_, limit=limit, newest_first=True)

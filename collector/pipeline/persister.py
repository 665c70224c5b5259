"""collector.pipeline.persister

Writes one normalized batch.

One grouped write per non-empty bucket plus one upsert of the supporter, all
started together and all awaited. The batch fails if any write failed, but the
writes that succeeded stay written: there is no rollback across collections.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable
from dataclasses import dataclass
from datetime import datetime

from collector.core.config import CollectionsConfig
from collector.core.database import Database
from collector.core.exceptions import StoreError
from collector.core.models import BucketSummary, Supporter
from collector.core.time import utc_now
from collector.pipeline.normalizer import NormalizedBatch

logger = logging.getLogger(__name__)


@dataclass
class BatchPersister:
    db: Database
    collections: CollectionsConfig

    async def _write_bucket(self, kind: str, collection: str, docs: list[dict]) -> BucketSummary:
        amount = await asyncio.to_thread(self.db.write_many, collection, docs)
        return BucketSummary(kind=kind, amount=amount)

    async def _touch_supporter(self, supporter: Supporter, now: datetime) -> BucketSummary:
        doc = supporter.model_copy(update={"last_activity": now}).to_document()
        key = {"userId": supporter.user_id, "publicKey": supporter.public_key}
        await asyncio.to_thread(self.db.update_one, self.collections.supporters, key, doc)
        return BucketSummary(kind="supporters", amount=1)

    async def persist(self, batch: NormalizedBatch, supporter: Supporter) -> list[BucketSummary]:
        """Write every bucket concurrently; return one summary per write.

        Raises:
            StoreError: at least one write failed (others may have committed).
        """

        now = utc_now()
        writes: list[Awaitable[BucketSummary]] = []
        buckets = (
            ("htmls", self.collections.htmls, batch.htmls),
            ("impressions", self.collections.impressions, batch.impressions),
            ("timelines", self.collections.timelines, batch.timelines),
        )
        for kind, collection, records in buckets:
            if records:
                writes.append(self._write_bucket(kind, collection, [r.to_document() for r in records]))
        writes.append(self._touch_supporter(supporter, now))

        outcomes = await asyncio.gather(*writes, return_exceptions=True)

        failures = [o for o in outcomes if isinstance(o, BaseException)]
        if failures:
            for f in failures:
                logger.error("bucket_write_failed", extra={"user_id": supporter.user_id, "error": str(f)})
            first = failures[0]
            if isinstance(first, StoreError):
                raise first
            raise StoreError(str(first)) from first

        summaries = [o for o in outcomes if isinstance(o, BucketSummary)]
        _log_batch(batch, supporter)
        return summaries


def _log_batch(batch: NormalizedBatch, supporter: Supporter) -> None:
    first = batch.timelines[0] if batch.timelines else None
    if first is not None and first.nonfeed:
        logger.info("non_newsfeed_navigation", extra={"user_id": supporter.user_id})
    else:
        logger.info(
            "batch_persisted",
            extra={
                "user_id": supporter.user_id,
                "timelines": len(batch.timelines),
                "impressions": len(batch.impressions),
                "htmls": len(batch.htmls),
                "tag_id": first.tag_id if first is not None else None,
                "geoip": batch.session.geoip,
                "version": supporter.version,
            },
        )
    if batch.impressions:
        logger.info(
            "impression_order_range",
            extra={
                "first": batch.impressions[0].impression_order,
                "last": batch.impressions[-1].impression_order,
            },
        )

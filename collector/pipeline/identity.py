"""collector.pipeline.identity

Who is submitting.

Lookup is by (userId, publicKey). An unknown pair is trusted on first use: a
supporter record is bootstrapped from the claimed credentials and an alarm is
raised so the bootstrap is visible. More than one record for the pair is a data
quality bug; it is reported and the first record is used.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime

from collector.core import hashing
from collector.core.alarms import AlarmReporter
from collector.core.database import Database
from collector.core.exceptions import IdentityAnomaly, StoreError
from collector.core.models import RequestContext, Supporter
from collector.core.time import dt_to_iso, utc_now

logger = logging.getLogger(__name__)


def bootstrap_supporter(ctx: RequestContext, *, now: datetime) -> Supporter:
    return Supporter(
        user_id=ctx.supporter_id,
        public_key=ctx.public_key,
        user_secret=hashing.user_secret(ctx.public_key, ctx.supporter_id, dt_to_iso(now) or ""),
        key_time=now,
        last_activity=now,
        tofu=True,
    )


@dataclass
class IdentityResolver:
    db: Database
    alarms: AlarmReporter
    collection: str = "supporters"
    atomic_bootstrap: bool = True

    async def resolve(self, ctx: RequestContext) -> Supporter:
        """Return the supporter for ``ctx``, bootstrapping it if unknown.

        Raises:
            StoreError: lookup or bootstrap write failed.
            AlarmError: the TOFU or duplicate alarm could not be recorded.
        """

        key = {"userId": ctx.supporter_id, "publicKey": ctx.public_key}
        found = await asyncio.to_thread(self.db.read, self.collection, key)

        if not found:
            created = await self._bootstrap(ctx, key)
            if created is not None:
                return created
            # lost a concurrent bootstrap; the winner's record is there now
            found = await asyncio.to_thread(self.db.read, self.collection, key)
            if not found:
                raise StoreError(f"supporter {ctx.supporter_id} neither found nor created")

        if len(found) > 1:
            anomaly = IdentityAnomaly(f"{len(found)} supporters share userId {ctx.supporter_id} and one public key")
            logger.error(
                "duplicated_supporter",
                extra={"user_id": ctx.supporter_id, "matches": len(found), "code": anomaly.code, "error": str(anomaly)},
            )
            await self.alarms.report(what="duplicated user", info=found)

        return Supporter.model_validate(found[0])

    async def _bootstrap(self, ctx: RequestContext, key: dict[str, object]) -> Supporter | None:
        supporter = bootstrap_supporter(ctx, now=utc_now())
        doc = supporter.to_document()

        if self.atomic_bootstrap:
            inserted = await asyncio.to_thread(self.db.insert_if_absent, self.collection, key, doc)
            if not inserted:
                logger.info("tofu_race_lost", extra={"user_id": ctx.supporter_id})
                return None
        else:
            await asyncio.to_thread(self.db.write_one, self.collection, doc)

        logger.info("tofu_bootstrap", extra={"user_id": ctx.supporter_id, "build": ctx.build})
        await self.alarms.report(what="TOFU", info=doc)
        return supporter

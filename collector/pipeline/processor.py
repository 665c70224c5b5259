"""collector.pipeline.processor

headers -> identity -> signature -> normalize -> persist.

Strictly in that order within a request; no ordering across requests is needed
because every id is derived and every write is an upsert. The first failing
stage ends the request. Per-event problems do not.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from collector.core.alarms import AlarmReporter
from collector.core.config import Config
from collector.core.database import Database
from collector.core.exceptions import BodyError, CollectorError
from collector.core.geoip import GeoIPResolver
from collector.core.models import BucketSummary, SessionInfo
from collector.pipeline.headers import extract_headers
from collector.pipeline.identity import IdentityResolver
from collector.pipeline.normalizer import NormalizedBatch, normalize_events
from collector.pipeline.persister import BatchPersister
from collector.pipeline.result import Failure
from collector.pipeline.signature import SignatureVerifier, Verifier

logger = logging.getLogger(__name__)


@dataclass
class Outcome:
    """What happened to one submission."""

    failure: Failure | None = None
    summaries: list[BucketSummary] = field(default_factory=list)
    batch: NormalizedBatch | None = None

    @property
    def ok(self) -> bool:
        return self.failure is None

    @property
    def status_code(self) -> int:
        return 200 if self.failure is None else self.failure.status

    def response(self) -> dict[str, Any]:
        if self.failure is not None:
            return self.failure.response()
        info = [s.as_dict() for s in self.summaries]
        if self.batch is not None and self.batch.errors:
            info.append({"kind": "errors", "amount": len(self.batch.errors)})
        return {"status": "OK", "info": info}


def parse_body(body: bytes) -> list[Any] | Failure:
    try:
        events = json.loads(body.decode("utf-8")) if body else None
    except (ValueError, RecursionError):
        # decode errors, malformed JSON, nesting deeper than the parser allows
        events = None
    if not isinstance(events, list):
        return Failure(error=BodyError(), stage="body")
    return events


@dataclass
class EventProcessor:
    config: Config
    db: Database
    alarms: AlarmReporter
    geoip: GeoIPResolver
    verify: Verifier | None = None

    def __post_init__(self) -> None:
        cols = self.config.collections
        self.identity = IdentityResolver(
            db=self.db,
            alarms=self.alarms,
            collection=cols.supporters,
            atomic_bootstrap=self.config.storage.enforce_unique_supporters,
        )
        self.verifier = SignatureVerifier(alarms=self.alarms, encoding=self.config.signing.encoding, verify=self.verify)
        self.persister = BatchPersister(db=self.db, collections=cols)

    async def process(self, headers: Mapping[str, str], body: bytes) -> Outcome:
        """Run one submission through the pipeline. Never raises.

        Classified errors keep their status; anything else becomes a 500 with the
        generic public message.
        """

        try:
            return await self._run(headers, body)
        except CollectorError as e:
            logger.warning("event_submission_ignored", extra={"code": e.code, "error": str(e)})
            return Outcome(failure=Failure(error=e, stage="io"))
        except Exception:
            logger.exception("event_submission_crashed")
            return Outcome(failure=Failure(error=CollectorError(), stage="internal"))

    async def _run(self, headers: Mapping[str, str], body: bytes) -> Outcome:
        lowered = {str(k).lower(): v for k, v in headers.items()}
        geoip = self.geoip.session_geoip(lowered.get("x-forwarded-for"))

        ctx = extract_headers(lowered, self.config.headers.manifest)
        if isinstance(ctx, Failure):
            logger.warning("header_parsing_failed", extra={"error": str(ctx.error)})
            return Outcome(failure=ctx)

        supporter = await self.identity.resolve(ctx)

        verified = await self.verifier.check(ctx, supporter, body)
        if isinstance(verified, Failure):
            return Outcome(failure=verified)

        events = parse_body(body)
        if isinstance(events, Failure):
            logger.warning("body_parsing_failed", extra={"user_id": verified.user_id})
            return Outcome(failure=events)

        session = SessionInfo(
            geoip=geoip,
            user_id=verified.user_id,
            public_key=verified.public_key,
            version=verified.version,
        )
        batch = normalize_events(events, session, feed_root_url=self.config.feed_root_url)
        if batch.errors:
            await self.alarms.report(what="body parsing", info=batch.errors)

        summaries = await self.persister.persist(batch, verified)
        return Outcome(summaries=summaries, batch=batch)


def build_processor(config: Config, db: Database, *, verify: Verifier | None = None) -> EventProcessor:
    alarms = AlarmReporter(
        db=db,
        collection=config.collections.alarms,
        webhook_url=config.alarms.webhook_url,
        timeout_s=config.alarms.timeout_s,
    )
    return EventProcessor(
        config=config,
        db=db,
        alarms=alarms,
        geoip=GeoIPResolver(config.geoip.networks),
        verify=verify,
    )


def open_database(config: Config) -> Database:
    cols = config.collections
    return Database(
        config.db_path,
        collections=cols.all(),
        identity_collection=cols.supporters,
        enforce_unique_identity=config.storage.enforce_unique_supporters,
    )

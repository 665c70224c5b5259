from __future__ import annotations

import asyncio
from pathlib import Path

import pytest

from collector.core.database import Database
from collector.core.models import RequestContext, Supporter
from collector.pipeline.identity import IdentityResolver
from tests.unit._fakes import RecordingAlarms


def _ctx(user_id: int = 42, public_key: str = "PK") -> RequestContext:
    return RequestContext(
        length="2", build="b", version="1.0", supporter_id=user_id, public_key=public_key, signature="SIG"
    )


@pytest.mark.anyio
async def test_first_contact_bootstraps_once(db) -> None:
    alarms = RecordingAlarms(db)
    resolver = IdentityResolver(db=db, alarms=alarms)

    first = await resolver.resolve(_ctx())
    assert first.tofu is True
    assert first.user_id == 42
    assert first.user_secret and len(first.user_secret) == 40
    assert first.key_time is not None and first.last_activity is not None
    assert alarms.whats() == ["TOFU"]

    again = await resolver.resolve(_ctx())
    assert again.user_secret == first.user_secret
    assert alarms.whats() == ["TOFU"]
    assert db.count("supporters") == 1


@pytest.mark.anyio
async def test_known_supporter_raises_no_alarm(db) -> None:
    db.write_one("supporters", {"userId": 42, "publicKey": "PK", "version": "0.9"})
    alarms = RecordingAlarms(db)

    s = await IdentityResolver(db=db, alarms=alarms).resolve(_ctx())
    assert isinstance(s, Supporter)
    assert s.version == "0.9"
    assert s.tofu is None
    assert alarms.raised == []


@pytest.mark.anyio
async def test_same_user_id_other_key_is_a_new_identity(db) -> None:
    db.write_one("supporters", {"userId": 42, "publicKey": "OLD"})
    alarms = RecordingAlarms(db)

    s = await IdentityResolver(db=db, alarms=alarms).resolve(_ctx(public_key="NEW"))
    assert s.tofu is True
    assert alarms.whats() == ["TOFU"]


@pytest.mark.anyio
async def test_duplicates_are_reported_and_first_is_used(temp_dir: Path, caplog: pytest.LogCaptureFixture) -> None:
    d = Database(
        temp_dir / "dup.db",
        collections=["supporters", "alarms"],
        identity_collection="supporters",
        enforce_unique_identity=False,
    )
    try:
        d.write_one("supporters", {"userId": 42, "publicKey": "PK", "version": "first"})
        d.write_one("supporters", {"userId": 42, "publicKey": "PK", "version": "second"})
        alarms = RecordingAlarms(d)

        s = await IdentityResolver(db=d, alarms=alarms, atomic_bootstrap=False).resolve(_ctx())
        assert s.version == "first"
        assert alarms.whats() == ["duplicated user"]
        assert len(alarms.raised[0]["info"]) == 2
        (record,) = [r for r in caplog.records if r.getMessage() == "duplicated_supporter"]
        assert record.code == "identity.duplicated"
        assert record.matches == 2
    finally:
        d.close()


@pytest.mark.anyio
async def test_concurrent_first_contact_bootstraps_once(db) -> None:
    alarms = RecordingAlarms(db)
    resolver = IdentityResolver(db=db, alarms=alarms)

    results = await asyncio.gather(*(resolver.resolve(_ctx()) for _ in range(8)))

    assert db.count("supporters") == 1
    assert alarms.whats() == ["TOFU"]
    assert len({r.user_secret for r in results}) == 1


@pytest.mark.anyio
async def test_tofu_alarm_does_not_leak_user_secret(db) -> None:
    alarms = RecordingAlarms(db)
    await IdentityResolver(db=db, alarms=alarms).resolve(_ctx())
    (stored,) = db.read("alarms", {"what": "TOFU"})
    assert stored["info"]["userSecret"] == "[REDACTED]"
    assert stored["info"]["publicKey"] == "PK"

from __future__ import annotations

import pytest

from collector.core.exceptions import SignatureError, ValidationError
from collector.core.models import RequestContext, Supporter
from collector.pipeline.result import Failure
from collector.pipeline.signature import SignatureVerifier
from collector.security.signing import ClientKeyPair
from tests.unit._fakes import RecordingAlarms

BODY = b'[{"type":"timeline"}]'


def _ctx(pair: ClientKeyPair, signature: str, version: str = "2.0") -> RequestContext:
    return RequestContext(
        length=str(len(BODY)),
        build="b",
        version=version,
        supporter_id=42,
        public_key=pair.public_key,
        signature=signature,
    )


def _supporter(pair: ClientKeyPair, version: str | None = "1.0") -> Supporter:
    return Supporter(user_id=42, public_key=pair.public_key, version=version)


@pytest.mark.anyio
async def test_valid_signature_tracks_client_version(db) -> None:
    pair = ClientKeyPair.generate()
    alarms = RecordingAlarms(db)
    verifier = SignatureVerifier(alarms=alarms)

    out = await verifier.check(_ctx(pair, pair.sign(BODY)), _supporter(pair), BODY)
    assert isinstance(out, Supporter)
    assert out.version == "2.0"
    assert alarms.raised == []


@pytest.mark.anyio
async def test_missing_signature_is_validation_failure(db) -> None:
    pair = ClientKeyPair.generate()
    alarms = RecordingAlarms(db)

    out = await SignatureVerifier(alarms=alarms).check(_ctx(pair, ""), _supporter(pair), BODY)
    assert isinstance(out, Failure)
    assert isinstance(out.error, ValidationError)
    assert out.status == 401
    assert alarms.whats() == ["Validation fail"]


@pytest.mark.anyio
async def test_missing_public_key_is_validation_failure(db) -> None:
    pair = ClientKeyPair.generate()
    alarms = RecordingAlarms(db)
    supporter = Supporter(user_id=42, public_key="")

    out = await SignatureVerifier(alarms=alarms).check(_ctx(pair, pair.sign(BODY)), supporter, BODY)
    assert isinstance(out, Failure)
    assert isinstance(out.error, ValidationError)


@pytest.mark.anyio
async def test_tampered_body_is_signature_failure(db) -> None:
    pair = ClientKeyPair.generate()
    alarms = RecordingAlarms(db)

    out = await SignatureVerifier(alarms=alarms).check(_ctx(pair, pair.sign(BODY)), _supporter(pair), BODY + b" ")
    assert isinstance(out, Failure)
    assert isinstance(out.error, SignatureError)
    assert alarms.whats() == ["Signature verification failure"]
    assert alarms.raised[0]["info"]["signature"] == "[REDACTED]"


@pytest.mark.anyio
async def test_injected_verify_primitive_is_used(db) -> None:
    pair = ClientKeyPair.generate()
    seen: list[tuple[bytes, str, str]] = []

    def fake_verify(message: bytes, signature: str, public_key: str) -> bool:
        seen.append((message, signature, public_key))
        return True

    out = await SignatureVerifier(alarms=RecordingAlarms(db), verify=fake_verify).check(
        _ctx(pair, "opaque"), _supporter(pair), BODY
    )
    assert isinstance(out, Supporter)
    assert seen == [(BODY, "opaque", pair.public_key)]
